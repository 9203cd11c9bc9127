"""
Domain errors raised by services and mapped to HTTP responses in main.py.

Every error carries a human-readable message; none carries stack detail.
"""
from typing import Any, Dict, Optional


class MoneyRaceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class ValidationError(MoneyRaceError):
    """Missing or malformed input, caught before any external call."""
    status_code = 400


class NotFoundError(MoneyRaceError):
    """Requested room/position/object does not resolve."""
    status_code = 404


class ObjectNotFoundError(NotFoundError):
    """Ledger object id does not exist."""

    def __init__(self, object_id: str):
        super().__init__(f"Object not found: {object_id}")
        self.object_id = object_id


class AuthenticationError(MoneyRaceError):
    """Identity token missing, invalid or unverifiable. Fails closed."""
    status_code = 401


class ConfigurationError(MoneyRaceError):
    """A deployment setting required by this operation is missing."""
    status_code = 503


class UpstreamServiceError(MoneyRaceError):
    """Text-generation API unreachable or erroring, with no fallback available."""
    status_code = 502


class LedgerError(MoneyRaceError):
    """Base for failures talking to the ledger node."""
    status_code = 502


class LedgerUnavailableError(LedgerError):
    """Network or HTTP-level failure reaching the node."""


class LedgerTimeoutError(LedgerError):
    """The node did not answer within the gateway timeout (transient)."""
    status_code = 504


class LedgerRpcError(LedgerError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class LedgerRejectedError(LedgerError):
    """Transaction rejected or executed with a failure status."""

    def __init__(self, message: str, digest: Optional[str] = None):
        super().__init__(message)
        self.digest = digest

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.digest:
            data["digest"] = self.digest
        return data


class RateLimitedError(MoneyRaceError):
    """Cooldown not elapsed; the client should retry after a delay."""
    status_code = 429

    def __init__(self, message: str, retry_after_seconds: int):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retryAfter"] = self.retry_after_seconds
        return data


class PartialSuccessError(MoneyRaceError):
    """
    Room creation landed on the ledger but its Room/Vault ids could not be
    extracted. The digest is valid; the caller reconciles later.
    """
    status_code = 202

    def __init__(
        self,
        message: str,
        digest: str,
        room_id: Optional[str] = None,
        vault_id: Optional[str] = None,
        password: Optional[str] = None,
    ):
        super().__init__(message)
        self.digest = digest
        self.room_id = room_id
        self.vault_id = vault_id
        self.password = password

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "success": True,
            "partial": True,
            "digest": self.digest,
            "roomId": self.room_id,
            "vaultId": self.vault_id,
        })
        if self.password:
            data["password"] = self.password
        return data
