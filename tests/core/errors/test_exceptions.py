"""
Tests for exception hierarchy and error classification.
"""

import asyncio

from core.errors.exceptions import (
    AuthError,
    ConfigurationError,
    ErrorCategory,
    FetchError,
    HttpResponseInfo,
    PermanentError,
    LogStreamError,
    StorageError,
    StreamStateError,
    TransientError,
    classify_exception,
    classify_http_status,
    wrap_exception,
)


class TestErrorCategory:
    """Test ErrorCategory enum."""

    def test_all_categories_exist(self):
        """All expected categories are defined."""
        assert ErrorCategory.TRANSIENT.value == "transient"
        assert ErrorCategory.AUTH.value == "auth"
        assert ErrorCategory.PERMANENT.value == "permanent"
        assert ErrorCategory.UNKNOWN.value == "unknown"


class TestLogStreamError:
    """Test base LogStreamError class."""

    def test_basic_error(self):
        """Can create basic error with message."""
        err = LogStreamError("Something went wrong")
        assert err.message == "Something went wrong"
        assert err.cause is None
        assert err.context == {}
        assert err.category == ErrorCategory.UNKNOWN

    def test_error_with_cause(self):
        """Can wrap another exception."""
        cause = ValueError("Invalid value")
        err = LogStreamError("Wrapper message", cause=cause)
        assert err.cause == cause
        assert "Caused by" in str(err)

    def test_error_with_context(self):
        err = LogStreamError("Error", context={"stream_id": "s-1", "checkpoint": "42"})
        assert err.context["stream_id"] == "s-1"
        assert err.context["checkpoint"] == "42"

    def test_invalidates_token_default(self):
        """Unknown category doesn't trigger auth refresh."""
        err = LogStreamError("Error")
        assert err.invalidates_token is False


class TestCategories:

    def test_auth_error(self):
        err = AuthError("Auth failed")
        assert err.category == ErrorCategory.AUTH
        assert err.invalidates_token is True

    def test_transient_is_retryable(self):
        assert TransientError("blip").is_retryable is True

    def test_permanent_is_not_retryable(self):
        assert PermanentError("nope").is_retryable is False

    def test_configuration_error_is_permanent(self):
        err = ConfigurationError("auth0Options is required")
        assert isinstance(err, PermanentError)
        assert err.category == ErrorCategory.PERMANENT

    def test_stream_state_error_is_permanent(self):
        assert StreamStateError("ended").category == ErrorCategory.PERMANENT

    def test_storage_error_is_transient(self):
        err = StorageError("disk full")
        assert isinstance(err, TransientError)
        assert err.is_retryable is True


class TestFetchError:

    def test_category_from_response_status(self):
        err = FetchError("bad", response=HttpResponseInfo(400, "bad request"))
        assert err.category == ErrorCategory.PERMANENT
        assert err.status == 400
        assert err.response.text == "bad request"

    def test_unauthorized_is_auth(self):
        err = FetchError("unauthorized", response=HttpResponseInfo(401, ""))
        assert err.category == ErrorCategory.AUTH
        assert err.invalidates_token is True

    def test_server_error_is_transient(self):
        err = FetchError("down", response=HttpResponseInfo(503, ""))
        assert err.category == ErrorCategory.TRANSIENT

    def test_no_response_is_transient(self):
        err = FetchError("timeout", cause=asyncio.TimeoutError())
        assert err.category == ErrorCategory.TRANSIENT
        assert err.status is None

    def test_explicit_category_wins(self):
        err = FetchError(
            "odd body",
            response=HttpResponseInfo(200, "{}"),
            category=ErrorCategory.PERMANENT,
        )
        assert err.category == ErrorCategory.PERMANENT

    def test_category_is_per_instance(self):
        FetchError("a", response=HttpResponseInfo(401, ""))
        assert FetchError("b").category == ErrorCategory.TRANSIENT
        assert LogStreamError("c").category == ErrorCategory.UNKNOWN


class TestClassifyHttpStatus:

    def test_success_is_unknown(self):
        assert classify_http_status(200) == ErrorCategory.UNKNOWN

    def test_401(self):
        assert classify_http_status(401) == ErrorCategory.AUTH

    def test_429_is_transient(self):
        assert classify_http_status(429) == ErrorCategory.TRANSIENT

    def test_client_errors_are_permanent(self):
        for status in (400, 403, 404, 418):
            assert classify_http_status(status) == ErrorCategory.PERMANENT

    def test_server_errors_are_transient(self):
        for status in (500, 502, 503, 504):
            assert classify_http_status(status) == ErrorCategory.TRANSIENT


class TestClassifyException:

    def test_stream_error_keeps_category(self):
        assert classify_exception(AuthError("x")) == ErrorCategory.AUTH

    def test_timeout(self):
        assert classify_exception(asyncio.TimeoutError()) == ErrorCategory.TRANSIENT

    def test_connection_error(self):
        assert classify_exception(ConnectionResetError("reset")) == ErrorCategory.TRANSIENT

    def test_unauthorized_message(self):
        assert classify_exception(RuntimeError("401 Unauthorized")) == ErrorCategory.AUTH

    def test_unknown(self):
        assert classify_exception(RuntimeError("???")) == ErrorCategory.UNKNOWN


class TestWrapException:

    def test_stream_error_returned_as_is(self):
        original = StorageError("disk")
        wrapped = wrap_exception(original, context={"stage": "ack"})
        assert wrapped is original
        assert wrapped.context["stage"] == "ack"

    def test_generic_exception_wrapped(self):
        cause = KeyError("boom")
        wrapped = wrap_exception(cause, default_class=AuthError)
        assert isinstance(wrapped, AuthError)
        assert wrapped.cause is cause

    def test_empty_message_uses_type_name(self):
        wrapped = wrap_exception(RuntimeError())
        assert wrapped.message == "RuntimeError"

    def test_generic_wrap_infers_category(self):
        assert wrap_exception(ConnectionResetError("reset")).category == ErrorCategory.TRANSIENT
        assert wrap_exception(ValueError("odd")).category == ErrorCategory.UNKNOWN

    def test_explicit_class_keeps_its_category(self):
        wrapped = wrap_exception(ConnectionResetError("reset"), default_class=StorageError)
        assert wrapped.category == ErrorCategory.TRANSIENT
        assert isinstance(wrapped, StorageError)
