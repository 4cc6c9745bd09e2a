"""
Exceptions for the confkyc SDK.
"""
from typing import Optional


class ConfKycError(Exception):
    """Base exception for all SDK errors."""
    pass


class ConfigError(ConfKycError):
    """Raised when a network configuration is invalid."""
    pass


class InvalidSeedError(ConfKycError):
    """
    Raised when seed material is malformed or the key derivation path fails.

    Never recoverable: retrying with the same input fails the same way.
    """
    pass


class WaitError(ConfKycError):
    """Base exception for waits on wallet state."""
    pass


class SyncAbortedError(WaitError):
    """Raised when a state stream errors or closes before the awaited condition holds."""
    pass


class WaitTimeoutError(WaitError):
    """Raised when a wait does not complete before its deadline."""

    def __init__(self, message: str, timeout: Optional[float] = None):
        self.timeout = timeout
        super().__init__(message)


class TransactionBuildError(ConfKycError):
    """Base exception for violations of the transaction builder contract."""
    pass


class MissingIntentError(TransactionBuildError):
    """Raised when a transaction lacks the intent a workflow must sign."""

    def __init__(self, message: str, segment_id: Optional[int] = None):
        self.segment_id = segment_id
        super().__init__(message)


class FinalizationError(TransactionBuildError):
    """Raised when a recipe is structurally unfit for finalization."""
    pass


class InsufficientFundsError(TransactionBuildError):
    """Raised when available coins do not cover a transfer."""

    def __init__(self, message: str, required: int = 0, available: int = 0):
        self.required = required
        self.available = available
        super().__init__(message)


class TransportError(ConfKycError):
    """Base exception for the built-in ledger transports."""
    pass


class TransportConnectionError(TransportError):
    """Raised when the wallet bridge cannot be reached."""
    pass


class TransportResponseError(TransportError):
    """Raised when the wallet bridge returns an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TransportTimeoutError(TransportError):
    """Raised when a wallet bridge request times out."""
    pass


class IdentityStoreError(ConfKycError):
    """Raised when the local PII store cannot be read or decrypted."""
    pass
