"""
Application-wide constants

Magic numbers for the Money Race contract, token scale, gas and timing.
Values that differ per deployment (package ids, RPC url) live in settings.
"""

# =============================================================================
# BLOCKCHAIN
# =============================================================================

# Deployed Money Race package (used when PACKAGE_ID is not set)
DEFAULT_PACKAGE_ID = '0xaa90da2945b7b5dee82c73a535f0717724b0fa58643aba43972b8e8fbc67c280'

# Shared Clock object
CLOCK_ID = '0x6'

# Signature scheme flag for Ed25519 keys
ED25519_FLAG = 0x00

# Bech32 prefix of exported private keys
PRIVATE_KEY_PREFIX = 'suiprivkey'

# =============================================================================
# TOKEN & DECIMALS
# =============================================================================

# 1 USDC = 1_000_000 base units
USDC_DECIMALS = 1_000_000

# Maximum USDC that can be minted per request (display units)
MAX_USDC_MINT = 1000
MAX_USDC_MINT_UNITS = MAX_USDC_MINT * USDC_DECIMALS

# Faucet cooldown enforced by the contract
MINT_COOLDOWN_SECONDS = 24 * 60 * 60

# =============================================================================
# GAS & QUERY LIMITS
# =============================================================================

# 0.1 SUI in MIST
GAS_BUDGET = 100_000_000

EVENT_QUERY_LIMITS = {
    'PLAYER_JOINED': 50,
    'DEPOSIT_MADE': 100,
    'DEFAULT': 50,
}

# Largest page the fullnode returns for suix_queryEvents
RPC_PAGE_SIZE = 50

# =============================================================================
# TIME
# =============================================================================

MILLISECONDS_PER_YEAR = 365.25 * 24 * 60 * 60 * 1000
MILLISECONDS_PER_WEEK = 7 * 24 * 60 * 60 * 1000
DEFAULT_PERIOD_LENGTH_MS = MILLISECONDS_PER_WEEK

# Let the new Room be indexed before starting it
AUTO_START_DELAY_MS = 3000

# Let created objects be indexed before fetching their types
DISCOVERY_FETCH_DELAY_MS = 1000

JWKS_CACHE_MAX_AGE_SECONDS = 24 * 60 * 60

# =============================================================================
# MOVE EVENT TYPES (package id prepended at runtime)
# =============================================================================

EVENT_NAMES = {
    'PLAYER_JOINED': 'PlayerJoined',
    'DEPOSIT_MADE': 'DepositMade',
    'ROOM_CREATED': 'RoomCreated',
    'ROOM_STARTED': 'RoomStarted',
    'ROOM_FINALIZED': 'RoomFinalized',
}

# Struct names of the objects created by create_room
ROOM_STRUCT = 'Room'
VAULT_STRUCT = 'Vault'

# Room status codes reported to clients
ROOM_STATUS_ACTIVE = 0
ROOM_STATUS_CLAIMING = 1
ROOM_STATUS_ENDED = 2
