"""
Custom exceptions shared by all layers.

Every error carries a structured `code` and a `retryable` flag. Callers decide what to do with a failure by looking at
those two attributes, never at the message text.
"""

from ledger_sync.core.shared_types import ErrorCode


class LedgerError(Exception):
    """Base class for every error raised by ledger_sync."""

    code: ErrorCode = ErrorCode.REMOTE_ERROR
    retryable: bool = False

    def __init__(self, message: str = "", code: ErrorCode | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


# --- Retryable: the write did not land, keep it queued ---
class NetworkError(LedgerError):
    """Connectivity problem or timeout. Nothing reached the ledger (as far as we can tell)."""

    code = ErrorCode.NETWORK
    retryable = True


class AuthError(LedgerError):
    """Identity rejected by the ledger. Forces the session to be invalidated."""

    retryable = True


class AuthRequired(AuthError):
    code = ErrorCode.AUTH_REQUIRED


class AccessDenied(AuthError):
    code = ErrorCode.ACCESS_DENIED


class NotLoggedIn(AuthError):
    """Local precondition failure: no identity, so no call was attempted."""

    code = ErrorCode.NOT_LOGGED_IN


class ServerError(LedgerError):
    """5xx from the endpoint."""

    code = ErrorCode.SERVER_ERROR
    retryable = True

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(message or f"HTTP {status}")
        self.status = status


class ConfigurationError(LedgerError):
    """No endpoint configured. Treated like an outage: the write is kept for later."""

    code = ErrorCode.CONFIGURATION
    retryable = True


# --- Terminal: the remote side most likely processed the call ---
class ClientHTTPError(LedgerError):
    """Non-2xx, non-5xx status."""

    code = ErrorCode.HTTP_ERROR

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(message or f"HTTP {status}")
        self.status = status


class RemoteError(LedgerError):
    """Explicit `success: false` body that is not an authentication failure."""

    code = ErrorCode.REMOTE_ERROR


class MalformedResponse(LedgerError):
    """Body could not be interpreted (empty, HTML landing page, not JSON)."""

    code = ErrorCode.MALFORMED_RESPONSE


class ValidationQuirk(LedgerError):
    """The ledger wrote the row but its own input validation complained."""

    code = ErrorCode.VALIDATION_WARNING


# --- Local ---
class InvalidRequestError(LedgerError):
    """Input rejected before anything was sent."""

    code = ErrorCode.INVALID_REQUEST


class InvalidSubmissionError(InvalidRequestError):
    code = ErrorCode.INVALID_SUBMISSION


class NothingToUndo(LedgerError):
    code = ErrorCode.NOTHING_TO_UNDO


def is_retryable(error: BaseException) -> bool:
    """Whether a failed write should stay in the pending queue."""
    return isinstance(error, LedgerError) and error.retryable


def is_auth_failure(error: BaseException) -> bool:
    return isinstance(error, AuthError)
