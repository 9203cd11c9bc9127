"""
Sponsor identity - the gas-paying Ed25519 keypair.

Loaded once at startup and shared read-only by every request. It co-signs
user transactions and is the sole signer of backend-initiated calls.
"""
import base64
import hashlib
import logging
from typing import Optional

import bech32
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from config.constants import ED25519_FLAG, PRIVATE_KEY_PREFIX

logger = logging.getLogger(__name__)

# Intent prefix for transaction data: scope=TransactionData, version=V0, app=Sui
TRANSACTION_INTENT = bytes([0, 0, 0])


class SponsorKeyError(ValueError):
    """Sponsor key material is missing or malformed."""


def _blake2b_256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def decode_private_key(encoded: str) -> bytes:
    """
    Decode a 32-byte Ed25519 secret from either format Sui tooling exports.

    - 'suiprivkey1...' bech32 (flag byte + secret)
    - '0x' + 64 hex characters
    """
    encoded = (encoded or '').strip()
    if not encoded:
        raise SponsorKeyError("SPONSOR_PRIVATE_KEY is not set")

    if encoded.startswith(PRIVATE_KEY_PREFIX):
        hrp, data = bech32.bech32_decode(encoded)
        if hrp != PRIVATE_KEY_PREFIX or data is None:
            raise SponsorKeyError("Invalid bech32 private key")
        raw = bytes(bech32.convertbits(data, 5, 8, False) or [])
        if len(raw) != 33:
            raise SponsorKeyError(f"Unexpected private key length: {len(raw)}")
        if raw[0] != ED25519_FLAG:
            raise SponsorKeyError(f"Unsupported key scheme flag: {raw[0]}")
        return raw[1:]

    if encoded.startswith('0x'):
        try:
            raw = bytes.fromhex(encoded[2:])
        except ValueError as e:
            raise SponsorKeyError("Invalid hex private key") from e
        if len(raw) != 32:
            raise SponsorKeyError(f"Unexpected private key length: {len(raw)}")
        return raw

    raise SponsorKeyError("Sponsor key must be 'suiprivkey1...' or '0x'-prefixed hex")


def encode_private_key(secret: bytes) -> str:
    """Bech32 'suiprivkey1...' form of a 32-byte secret."""
    data = bech32.convertbits(bytes([ED25519_FLAG]) + secret, 8, 5)
    return bech32.bech32_encode(PRIVATE_KEY_PREFIX, data)


def address_from_public_key(public_key: bytes) -> str:
    """0x + hex(blake2b-256(flag || public key))"""
    return '0x' + _blake2b_256(bytes([ED25519_FLAG]) + public_key).hex()


class SponsorIdentity:
    """Ed25519 keypair that pays gas for every relayed transaction."""

    def __init__(self, secret: bytes):
        self._private_key = Ed25519PrivateKey.from_private_bytes(secret)
        self.public_key = self._private_key.public_key().public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )
        self.address = address_from_public_key(self.public_key)

    @classmethod
    def from_encoded(cls, encoded: Optional[str]) -> 'SponsorIdentity':
        identity = cls(decode_private_key(encoded or ''))
        logger.info(f"Sponsor identity loaded: {identity.address}")
        return identity

    @classmethod
    def generate(cls) -> 'SponsorIdentity':
        secret = Ed25519PrivateKey.generate().private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )
        return cls(secret)

    def export_private_key(self) -> str:
        secret = self._private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return encode_private_key(secret)

    def export_private_key_hex(self) -> str:
        secret = self._private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return '0x' + secret.hex()

    def sign_transaction(self, tx_bytes_b64: str) -> str:
        """
        Sign base64 transaction bytes.

        Returns:
            base64(flag || signature || public key)
        """
        tx_bytes = base64.b64decode(tx_bytes_b64)
        digest = _blake2b_256(TRANSACTION_INTENT + tx_bytes)
        signature = self._private_key.sign(digest)
        return base64.b64encode(bytes([ED25519_FLAG]) + signature + self.public_key).decode('ascii')
