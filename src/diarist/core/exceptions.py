"""
Diarist exception hierarchy.

All diarist exceptions inherit from DiaristError, so the journal facade can
turn any engine failure into a typed outcome while callers that use the store
directly can still tell the failure modes apart.
"""


class DiaristError(Exception):
    """Base exception class for all diarist errors."""


class ConfigurationError(DiaristError):
    """Raised for configuration errors (missing keys, invalid values)."""


class StorageIOError(DiaristError):
    """Raised when the entries directory or a record cannot be read or written."""


class EntryNotFoundError(DiaristError):
    """Raised when an update or delete targets an identity that no longer exists."""

    def __init__(self, identity: str | None, message: str | None = None):
        self.identity = identity
        super().__init__(message or f"Entry not found: {identity}")


class ValidationError(DiaristError):
    """Raised when an entry cannot be saved as given (empty title, identity mismatch)."""


class IdentityExhaustedError(StorageIOError):
    """Raised when no free identity is found within the configured attempts."""


class RecordParseError(DiaristError):
    """Raised when a single persisted record cannot be decoded."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Unreadable record {source}: {reason}")
