"""Categorized errors raised or emitted by the log stream."""

from core.errors.exceptions import (
    AuthError,
    ConfigurationError,
    FetchError,
    HttpResponseInfo,
    LogStreamError,
    PermanentError,
    StorageError,
    StreamStateError,
    TransientError,
    classify_exception,
    classify_http_status,
    wrap_exception,
)
from core.types import ErrorCategory

__all__ = [
    "AuthError",
    "ConfigurationError",
    "ErrorCategory",
    "FetchError",
    "HttpResponseInfo",
    "LogStreamError",
    "PermanentError",
    "StorageError",
    "StreamStateError",
    "TransientError",
    "classify_exception",
    "classify_http_status",
    "wrap_exception",
]
