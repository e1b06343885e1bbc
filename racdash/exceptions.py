"""
RAC Dashboard Errors

Every error carries a stable error_code, which routers copy into the
{"detail", "error_code", "context"} response body.

Company-level errors (NoCredential, FetchFailed) are caught by the company
loader and recorded as error rows. PersistFailed means the cache itself
could not be written and propagates. NoSelection and NoLiveData describe
why a consolidation could not be produced.
"""

from typing import Optional


class SessionDataError(Exception):
    """Base class for all session cache errors."""

    error_code = "SESSION_DATA_ERROR"

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_detail(self) -> dict:
        return {
            "detail": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class NoCredential(SessionDataError):
    """No stored token for the tenant."""

    error_code = "NO_CREDENTIAL"


class FetchFailed(SessionDataError):
    """The accounting API call failed (transport error or non-2xx response)."""

    error_code = "FETCH_FAILED"


class PersistFailed(SessionDataError):
    """A write to the session cache failed."""

    error_code = "PERSIST_FAILED"


class NoSelection(SessionDataError):
    error_code = "NO_SELECTION"


class NoLiveData(SessionDataError):
    """Nothing loaded for the selection, or everything loaded has expired."""

    error_code = "NO_LIVE_DATA"
