"""
Custom exceptions for the conference sync engine.

These never escape a refresh or flag sync; the orchestrators catch them at
their boundary and fall back to local data.
"""


class SyncError(Exception):
    """Base exception for all sync engine errors."""
    pass


class OfflineError(SyncError):
    """No connectivity. The network attempt is skipped entirely."""
    pass


class TransientFetchError(SyncError):
    """
    Temporary network failure.

    Raised when:
    - The connection is refused or reset
    - The request times out
    """
    pass


class HttpStatusError(SyncError):
    """A non-304 error status. Terminal for the current refresh."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class PayloadParseError(SyncError):
    """
    Response body could not be turned into a document.

    Raised when:
    - The body is not valid JSON
    - The JSON does not have the expected shape
    """
    pass


class StorageError(SyncError):
    """
    Error reading or writing local cache state.

    Treated as a cache miss on read. On write the in-memory data is kept
    and the failure is logged.
    """
    pass
