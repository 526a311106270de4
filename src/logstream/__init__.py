"""
Checkpointed Auth0 log streaming.

Pulls tenant logs from the Management API one page at a time, hands each
page to the consumer and persists the checkpoint only once the consumer
acknowledges it, so a restart never skips or loses logs.

Components:
    LogStream      - pull-driven engine with data/end/error events
    drain          - runs a stream into a sink until it ends
    Auth0Options   - validated tenant connection options
    CheckpointStore, MemoryStorage, JsonFileStorage - checkpoint persistence
    TokenCache     - Management API token with persisted reuse
    LogFetcher     - one request against /api/v2/logs
"""

from logstream.fetcher import LOGS_PAGE_SIZE, LogFetcher
from logstream.options import Auth0Options, parse_options
from logstream.runner import drain
from logstream.status import RATE_LIMIT_WARNING, StreamState, StreamStatus
from logstream.storage import (
    CheckpointRecord,
    CheckpointStorage,
    CheckpointStore,
    JsonFileStorage,
    MemoryStorage,
)
from logstream.stream import LogStream, create_stream
from logstream.token_cache import TokenCache

__all__ = [
    "Auth0Options",
    "CheckpointRecord",
    "CheckpointStorage",
    "CheckpointStore",
    "JsonFileStorage",
    "LOGS_PAGE_SIZE",
    "LogFetcher",
    "LogStream",
    "MemoryStorage",
    "RATE_LIMIT_WARNING",
    "StreamState",
    "StreamStatus",
    "TokenCache",
    "create_stream",
    "drain",
    "parse_options",
]
