"""
Errors raised or emitted by the log stream.

Every error carries an ErrorCategory so a host process can decide what to
do with a failed run (rerun later, fix credentials, fix configuration)
without matching on messages.
"""

from dataclasses import dataclass, field

from core.types import ErrorCategory


class LogStreamError(Exception):
    """
    Root of the log stream's errors.

    ``cause`` holds the wrapped exception, if any. ``context`` collects
    identifiers useful when the error is logged (stream id, stage, path).
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(self, message: str, cause: Exception | None = None, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = dict(context or {})

    @property
    def is_retryable(self) -> bool:
        """Whether running the stream again later may succeed."""
        return self.category is not ErrorCategory.PERMANENT

    @property
    def invalidates_token(self) -> bool:
        return self.category is ErrorCategory.AUTH

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message} | Caused by: {self.cause}"


class TransientError(LogStreamError):
    category = ErrorCategory.TRANSIENT


class PermanentError(LogStreamError):
    category = ErrorCategory.PERMANENT


class AuthError(LogStreamError):
    """Token endpoint rejected the credentials or could not be reached."""

    category = ErrorCategory.AUTH


class ConfigurationError(PermanentError):
    """Missing or invalid options at construction time."""


class StreamStateError(PermanentError):
    """Operation is not legal in the stream's current state."""


class StorageError(TransientError):
    """Checkpoint storage read or write failed."""


@dataclass(frozen=True)
class HttpResponseInfo:
    """Status, body and headers of a failed Management API response."""

    status: int
    text: str
    headers: dict[str, str] = field(default_factory=dict)


class FetchError(LogStreamError):
    """
    The logs request failed.

    With a response, the category follows its status (401 is AUTH, 5xx
    TRANSIENT, other 4xx PERMANENT). Without one (timeout, connection
    reset) the failure is TRANSIENT. An explicit ``category`` wins.
    """

    def __init__(
        self,
        message: str,
        response: HttpResponseInfo | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
        category: ErrorCategory | None = None,
    ):
        super().__init__(message, cause, context)
        self.response = response
        if category is None:
            category = classify_http_status(response.status) if response else ErrorCategory.TRANSIENT
        self.category = category

    @property
    def status(self) -> int | None:
        return None if self.response is None else self.response.status


def classify_http_status(status_code: int) -> ErrorCategory:
    if status_code == 401:
        return ErrorCategory.AUTH
    if status_code == 429 or status_code >= 500:
        return ErrorCategory.TRANSIENT
    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT
    return ErrorCategory.UNKNOWN


# Substrings of exception type names or messages that mean the network failed
_NETWORK_MARKERS = (
    "timeout",
    "connectionerror",
    "connection refused",
    "connection reset",
    "name resolution",
    "broken pipe",
)


def classify_exception(exc: BaseException) -> ErrorCategory:
    """Best-effort category for an exception raised outside this package."""
    if isinstance(exc, LogStreamError):
        return exc.category
    if isinstance(exc, OSError):
        return ErrorCategory.TRANSIENT

    haystack = f"{type(exc).__name__} {exc}".lower()
    if any(marker in haystack for marker in _NETWORK_MARKERS):
        return ErrorCategory.TRANSIENT
    if "401" in haystack or "unauthorized" in haystack:
        return ErrorCategory.AUTH
    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: Exception,
    default_class: type[LogStreamError] = LogStreamError,
    context: dict | None = None,
) -> LogStreamError:
    """
    Return ``exc`` as a LogStreamError.

    Errors that already are one get ``context`` merged in and are returned
    unchanged. Anything else is wrapped in ``default_class``; when that is
    the generic root class, the category is inferred with classify_exception.
    """
    if isinstance(exc, LogStreamError):
        exc.context.update(context or {})
        return exc

    wrapped = default_class(str(exc) or type(exc).__name__, cause=exc, context=context)
    if default_class is LogStreamError:
        wrapped.category = classify_exception(exc)
    return wrapped
