"""Tests for core.logging.context module."""

from core.logging.context import clear_log_context, get_log_context, set_log_context


class TestLogContext:
    def setup_method(self):
        clear_log_context()

    def teardown_method(self):
        clear_log_context()

    def test_defaults_are_empty(self):
        assert get_log_context() == {"domain": "", "stream_id": "", "checkpoint": ""}

    def test_set_all_fields(self):
        set_log_context(domain="tenant.auth0.com", stream_id="s-1", checkpoint="100")
        assert get_log_context() == {
            "domain": "tenant.auth0.com",
            "stream_id": "s-1",
            "checkpoint": "100",
        }

    def test_partial_set_preserves_others(self):
        set_log_context(domain="tenant.auth0.com", checkpoint="100")
        set_log_context(checkpoint="200")
        ctx = get_log_context()
        assert ctx["domain"] == "tenant.auth0.com"
        assert ctx["checkpoint"] == "200"

    def test_clear_resets_all(self):
        set_log_context(domain="d", stream_id="s", checkpoint="c")
        clear_log_context()
        assert all(v == "" for v in get_log_context().values())
