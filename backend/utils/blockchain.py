"""
Blockchain helpers: unit conversion, event type names, object id
normalization and room password hashing.
"""
import re
import secrets
from typing import Optional

from Crypto.Hash import keccak

from config.constants import EVENT_NAMES, MILLISECONDS_PER_YEAR, USDC_DECIMALS

# Unambiguous characters for generated room passwords (no 0/O, 1/l/I)
PASSWORD_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789'
PASSWORD_LENGTH = 8

OBJECT_ID_PATTERN = re.compile(r'^0x[0-9a-fA-F]{1,64}$')

# <address>::<module>::<Struct><...generics>
TYPE_TAG_PATTERN = re.compile(r'^(0x[0-9a-fA-F]+)::(\w+)::(\w+)')


def from_units(amount_in_units: int, scale: int = USDC_DECIMALS) -> float:
    """Base units -> display units (1_000_000 -> 1.0)"""
    return amount_in_units / scale


def to_units(amount: float, scale: int = USDC_DECIMALS) -> int:
    """Display units -> base units (0.5 -> 500_000)"""
    return int(round(amount * scale))


def ms_to_years(elapsed_ms: float) -> float:
    """Elapsed milliseconds as a fraction of a 365.25-day year"""
    return elapsed_ms / MILLISECONDS_PER_YEAR


def build_event_type(package_id: str, module: str, event_key: str) -> str:
    """
    Full Move event type for an entry in EVENT_NAMES.

    Example:
        build_event_type('0xabc', 'money_race_v2', 'PLAYER_JOINED')
        # '0xabc::money_race_v2::PlayerJoined'
    """
    return f"{package_id}::{module}::{EVENT_NAMES[event_key]}"


def normalize_object_id(object_id: str) -> str:
    """Lowercase and ensure the 0x prefix"""
    object_id = object_id.strip().lower()
    if not object_id.startswith('0x'):
        object_id = f"0x{object_id}"
    return object_id


def is_valid_object_id(object_id: Optional[str]) -> bool:
    if not object_id:
        return False
    return bool(OBJECT_ID_PATTERN.match(normalize_object_id(object_id)))


def struct_name(type_tag: Optional[str]) -> Optional[str]:
    """
    Struct name of a fully-qualified Move type.

    '0x2::coin::Coin<0x2::sui::SUI>' -> 'Coin'
    """
    if not type_tag:
        return None
    match = TYPE_TAG_PATTERN.match(type_tag)
    if not match:
        return None
    return match.group(3)


def generate_room_password(length: int = PASSWORD_LENGTH) -> str:
    """Random password shown once to the creator of a private room"""
    return ''.join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def hash_password(password: str) -> str:
    """keccak-256 hex digest of the UTF-8 password"""
    digest = keccak.new(digest_bits=256)
    digest.update(password.encode('utf-8'))
    return digest.hexdigest()
