"""Fixtures for log stream tests.

``auth0`` is a scripted stand-in for the tenant: a MagicMock aiohttp
session whose post() answers the token endpoint and whose get() answers
the logs endpoint from a queue of canned responses.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from logstream.storage import MemoryStorage
from logstream.stream import LogStream


def make_response(status=200, json_data=None, text="", headers=None):
    """Create a mock async context manager for an aiohttp response."""
    mock_resp = AsyncMock()
    mock_resp.status = status
    mock_resp.json = AsyncMock(return_value=json_data)
    mock_resp.text = AsyncMock(return_value=text)
    mock_resp.headers = headers or {}
    mock_resp.__aenter__ = AsyncMock(return_value=mock_resp)
    mock_resp.__aexit__ = AsyncMock(return_value=False)
    return mock_resp


def make_logs(first, count):
    """Log entries with _id first..first+count-1."""
    return [
        {"_id": str(i), "type": "s", "date": f"2026-01-01T00:00:{i % 60:02d}.000Z"}
        for i in range(first, first + count)
    ]


class FakeAuth0:
    def __init__(self):
        self.token_responses = []
        self.log_responses = []
        self.session = MagicMock()
        self.session.closed = False
        self.session.close = AsyncMock()
        self.session.post = MagicMock(side_effect=self._post)
        self.session.get = MagicMock(side_effect=self._get)

    def _post(self, url, **kwargs):
        if self.token_responses:
            return self.token_responses.pop(0)
        return make_response(200, {"access_token": "token-1", "expires_in": 86400})

    def _get(self, url, **kwargs):
        if not self.log_responses:
            raise AssertionError(f"unexpected logs request: {kwargs.get('params')}")
        return self.log_responses.pop(0)

    def queue_logs(self, logs, remaining=None):
        headers = {} if remaining is None else {"x-ratelimit-remaining": str(remaining)}
        self.log_responses.append(make_response(200, logs, headers=headers))

    def queue_page(self, first, count, remaining=None):
        self.queue_logs(make_logs(first, count), remaining=remaining)

    def queue_empty(self):
        self.queue_logs([])

    def queue_error(self, status, text):
        self.log_responses.append(make_response(status, text=text))

    def queue_token(self, access_token="token-2", expires_in=86400, status=200, text=""):
        if status == 200:
            self.token_responses.append(
                make_response(200, {"access_token": access_token, "expires_in": expires_in})
            )
        else:
            self.token_responses.append(make_response(status, text=text))

    @property
    def token_requests(self):
        return self.session.post.call_count

    @property
    def log_requests(self):
        """Query params of every logs request, in order."""
        return [c.kwargs["params"] for c in self.session.get.call_args_list]

    @property
    def auth_headers(self):
        return [c.kwargs["headers"]["Authorization"] for c in self.session.get.call_args_list]


@pytest.fixture
def auth0():
    return FakeAuth0()


@pytest.fixture
def options():
    return {"domain": "foo.auth0.local", "clientId": "1", "clientSecret": "secret"}


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def make_stream(options, storage, auth0):
    def _make(**kwargs):
        kwargs.setdefault("session", auth0.session)
        return LogStream(kwargs.pop("options", options), kwargs.pop("storage", storage), **kwargs)

    return _make


@pytest.fixture
def logs():
    """Factory: ``logs(first, count)`` builds log entries."""
    return make_logs


@pytest.fixture
def response():
    """Factory for mock aiohttp responses, see make_response."""
    return make_response
