"""
Checkpointed, pull-driven Auth0 log stream.

The consumer drives the stream one page at a time:

    stream = LogStream(options, storage)
    stream.on("data", handle_batch).on("end", finished).on("error", failed)
    await stream.next()

    async def handle_batch(batch):
        await ship(batch)
        await stream.batch_saved()   # checkpoint is persisted here
        await stream.next()          # ask for the following page

Acknowledgement contract:
- A page's checkpoint is only persisted by batch_saved(), never by emission.
- ``end`` fires only once every emitted page has been acknowledged (or the
  consumer asked for done() with nothing outstanding).
- ``end`` and ``error`` are terminal and mutually exclusive.

Operations may be called from inside listeners. Such calls record intent
and return; the outermost call keeps driving until no intent is left, so
a consumer that chains next() from its ``data`` listener does not recurse
one level per page.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, NamedTuple

import aiohttp

from config.config import StreamSettings, load_stream_config
from core.errors import (
    ConfigurationError,
    LogStreamError,
    StorageError,
    StreamStateError,
    wrap_exception,
)
from core.logging import generate_stream_id, set_log_context
from logstream.fetcher import (
    EmptyOutcome,
    ErrorOutcome,
    LogFetcher,
    LogsOutcome,
    RateLimitedOutcome,
)
from logstream.options import Auth0Options, parse_options
from logstream.status import RATE_LIMIT_WARNING, StreamState, StreamStatus
from logstream.storage import (
    CheckpointRecord,
    CheckpointStorage,
    CheckpointStore,
    JsonFileStorage,
    as_checkpoint_store,
)
from logstream.token_cache import TokenCache

logger = logging.getLogger(__name__)

EVENTS = ("data", "end", "error")

Listener = Callable[..., Awaitable[None] | None]


class AckTarget(NamedTuple):
    """Emitted, unacknowledged logs as of a batch_saved() call."""

    checkpoint: str | None
    count: int
    batch: list[dict[str, Any]] | None


class LogStream:
    """
    Streams Management API logs for one tenant, resuming from the stored
    checkpoint.

    Events:
        data: ``callback(batch: list[dict])`` for each non-empty page
        end: ``callback()`` once, when the stream finished cleanly
        error: ``callback(error: LogStreamError)`` once, when it failed

    Listeners may be plain functions or coroutine functions. Exceptions
    raised by a listener propagate to the caller of the operation that
    triggered the event.
    """

    def __init__(
        self,
        options: "Auth0Options | Mapping[str, Any] | None",
        storage: "CheckpointStorage | CheckpointStore | None",
        *,
        settings: StreamSettings | None = None,
        session: aiohttp.ClientSession | None = None,
        token_cache: TokenCache | None = None,
        fetcher: LogFetcher | None = None,
    ):
        self._options = parse_options(options)
        if storage is None:
            raise ConfigurationError("storage is required")

        self._settings = settings or StreamSettings()
        self._store = as_checkpoint_store(storage, self._settings.max_record_bytes)
        self._token_cache = token_cache or TokenCache(
            self._options,
            self._store,
            session=session,
            skew_seconds=self._settings.token_skew_seconds,
            timeout_seconds=self._settings.timeout_seconds,
        )
        self._fetcher = fetcher or LogFetcher(
            self._options, session=session, timeout_seconds=self._settings.timeout_seconds
        )

        self.stream_id = generate_stream_id()
        self._listeners: dict[str, list[Listener]] = {event: [] for event in EVENTS}
        self._state = StreamState.IDLE
        self._status = StreamStatus()
        self._error: LogStreamError | None = None

        # Resume position
        self._loaded = False
        self._cursor: str | None = None
        self._remaining_quota: int | None = None

        # Emitted but not yet acknowledged
        self._pending_checkpoint: str | None = None
        self._pending_batch: list[dict[str, Any]] | None = None
        self._pending_logs = 0

        # Intents recorded by the public operations. An acknowledgement
        # covers what had been emitted when batch_saved() was called.
        self._pull_requested = False
        self._ack_target: AckTarget | None = None
        self._done_requested = False
        self._end_pending = False
        self._driving = False

    # =========================================================================
    # Listener registry
    # =========================================================================

    def on(self, event: str, callback: Listener) -> "LogStream":
        self._check_event(event)
        self._listeners[event].append(callback)
        return self

    def off(self, event: str, callback: Listener) -> "LogStream":
        self._check_event(event)
        try:
            self._listeners[event].remove(callback)
        except ValueError:
            pass
        return self

    @staticmethod
    def _check_event(event: str) -> None:
        if event not in EVENTS:
            raise ValueError(f"Unknown event '{event}', expected one of {', '.join(EVENTS)}")

    async def _emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners[event]):
            result = callback(*args)
            if inspect.isawaitable(result):
                await result

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def options(self) -> Auth0Options:
        return self._options

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def status(self) -> StreamStatus:
        """Copy of the current status; mutating it has no effect."""
        return self._status.snapshot()

    @property
    def last_checkpoint(self) -> str | None:
        """Checkpoint of the last acknowledged page."""
        return self._status.last_checkpoint

    @property
    def pending_logs(self) -> int:
        return self._pending_logs

    @property
    def error(self) -> LogStreamError | None:
        return self._error

    # =========================================================================
    # Public operations
    # =========================================================================

    async def next(self) -> None:
        """Request the next page.

        Raises:
            StreamStateError: the stream already ended or failed
        """
        if self._state.is_terminal:
            raise StreamStateError(
                f"Cannot call next() on a stream that has {self._state.value}",
                context={"stream_id": self.stream_id},
            )
        self._pull_requested = True
        await self._drive()

    async def batch_saved(self) -> None:
        """Acknowledge every batch emitted before this call and persist its checkpoint.

        Batches emitted afterwards, for example by a fetch already in flight
        in another task, stay pending.
        """
        if self._state.is_terminal:
            logger.debug("batch_saved() ignored, stream is %s", self._state.value)
            return
        if self._pending_logs == 0:
            logger.debug("batch_saved() with nothing to acknowledge")
            return
        self._ack_target = AckTarget(self._pending_checkpoint, self._pending_logs, self._pending_batch)
        await self._drive()

    async def done(self) -> None:
        """Stop after outstanding pages are acknowledged."""
        if self._state.is_terminal:
            return
        self._done_requested = True
        await self._drive()

    async def close(self) -> None:
        """Release HTTP sessions owned by the stream."""
        await self._fetcher.close()
        await self._token_cache.close()

    async def __aenter__(self) -> "LogStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Driver
    # =========================================================================

    async def _drive(self) -> None:
        if self._driving:
            return
        self._driving = True
        set_log_context(domain=self._options.domain, stream_id=self.stream_id)
        try:
            while await self._step():
                pass
        finally:
            self._driving = False

    async def _step(self) -> bool:
        """Perform one transition. Returns False when there is nothing to do."""
        if self._state.is_terminal:
            return False

        if self._ack_target is not None:
            target, self._ack_target = self._ack_target, None
            await self._acknowledge(target)
            return True

        if self._end_pending or self._done_requested:
            if self._pending_logs:
                # Wait for batch_saved()
                return False
            await self._finish()
            return True

        if self._pull_requested:
            self._pull_requested = False
            await self._pull()
            return True

        return False

    async def _pull(self) -> None:
        self._state = StreamState.FETCHING

        if not self._loaded:
            try:
                await self._load_checkpoint()
            except StorageError as e:
                await self._fail(e)
                return

        if self._remaining_quota is not None and self._remaining_quota < 1:
            self._rate_limited(None)
            return

        try:
            token = await self._token_cache.get_token()
        except Exception as e:
            await self._fail(wrap_exception(e, context={"stage": "token"}))
            return

        outcome = await self._fetcher.fetch(self._cursor, token, self._options.types)

        if isinstance(outcome, LogsOutcome):
            self._remaining_quota = outcome.remaining_quota
            self._cursor = outcome.next_cursor
            self._pending_checkpoint = outcome.next_cursor
            self._pending_batch = outcome.batch
            self._pending_logs += len(outcome.batch)
            self._state = StreamState.AWAITING_ACK
            logger.info(
                "Emitting log batch",
                extra={
                    "batch_size": len(outcome.batch),
                    "pending_logs": self._pending_logs,
                    "next_checkpoint": outcome.next_cursor,
                    "remaining_quota": outcome.remaining_quota,
                },
            )
            await self._emit("data", outcome.batch)

        elif isinstance(outcome, EmptyOutcome):
            self._remaining_quota = outcome.remaining_quota
            logger.info("Caught up with tenant logs", extra={"last_checkpoint": self._cursor})
            self._end_pending = True
            self._settle()

        elif isinstance(outcome, RateLimitedOutcome):
            self._rate_limited(outcome)

        elif isinstance(outcome, ErrorOutcome):
            if outcome.error.invalidates_token:
                self._token_cache.invalidate()
            await self._fail(outcome.error)

    async def _load_checkpoint(self) -> None:
        record = await self._store.read()
        self._cursor = record.checkpoint_id
        self._status.last_checkpoint = record.checkpoint_id
        self._loaded = True
        if record.checkpoint_id:
            set_log_context(checkpoint=record.checkpoint_id)
        logger.info(
            "Resuming log stream" if record.checkpoint_id else "Starting log stream from beginning",
            extra={"last_checkpoint": record.checkpoint_id, "log_types": self._options.types},
        )

    def _rate_limited(self, outcome: RateLimitedOutcome | None) -> None:
        self._status.warning = RATE_LIMIT_WARNING
        self._end_pending = True
        logger.warning(
            RATE_LIMIT_WARNING,
            extra={
                "remaining_quota": self._remaining_quota,
                "reset_at": outcome.reset_at if outcome else None,
                "pending_logs": self._pending_logs,
            },
        )
        self._settle()

    def _settle(self) -> None:
        self._state = StreamState.AWAITING_ACK if self._pending_logs else StreamState.IDLE

    async def _acknowledge(self, target: AckTarget) -> None:
        if not target.count:
            return

        checkpoint = target.checkpoint
        record = CheckpointRecord(
            checkpoint_id=checkpoint,
            logs=target.batch,
            auth0_token=self._token_cache.token_record(),
        )
        try:
            await self._store.write(record)
        except StorageError as e:
            await self._fail(e)
            return

        acknowledged = target.count
        self._status.last_checkpoint = checkpoint
        self._status.logs_processed += acknowledged
        self._pending_logs -= acknowledged
        if not self._pending_logs:
            self._pending_checkpoint = None
            self._pending_batch = None
            if self._state == StreamState.AWAITING_ACK:
                self._state = StreamState.IDLE
        set_log_context(checkpoint=checkpoint)

        logger.info(
            "Batch acknowledged",
            extra={
                "batch_size": acknowledged,
                "logs_processed": self._status.logs_processed,
                "pending_logs": self._pending_logs,
                "last_checkpoint": checkpoint,
            },
        )

    async def _finish(self) -> None:
        self._state = StreamState.ENDED
        self._status.end = datetime.now(UTC)
        logger.info(
            "Log stream ended",
            extra={
                "logs_processed": self._status.logs_processed,
                "last_checkpoint": self._status.last_checkpoint,
                "duration_ms": round(self._status.duration_seconds * 1000, 1),
                "warning": self._status.warning,
            },
        )
        await self._emit("end")

    async def _fail(self, error: LogStreamError) -> None:
        self._state = StreamState.FAILED
        self._status.end = datetime.now(UTC)
        self._error = error
        logger.error(
            "Log stream failed",
            extra={
                "error": str(error),
                "error_type": type(error).__name__,
                "error_category": error.category.value,
                "http_status": getattr(error, "status", None),
                "logs_processed": self._status.logs_processed,
                "last_checkpoint": self._status.last_checkpoint,
                "pending_logs": self._pending_logs,
            },
        )
        await self._emit("error", error)


def create_stream(
    options: "Auth0Options | Mapping[str, Any] | None" = None,
    storage: "CheckpointStorage | CheckpointStore | None" = None,
    *,
    settings: StreamSettings | None = None,
    config_path: Path | None = None,
    **kwargs: Any,
) -> LogStream:
    """
    Build a LogStream from configuration.

    Options or settings left out are read with load_stream_config(config_path).
    Without a storage, the checkpoint lives in a JsonFileStorage at
    ``settings.checkpoint_path``. Other keyword arguments go to LogStream.
    """
    if options is None or settings is None:
        loaded_options, loaded_settings = load_stream_config(config_path)
        options = loaded_options if options is None else options
        settings = settings or loaded_settings

    if storage is None:
        storage = JsonFileStorage(settings.checkpoint_path)
        logger.debug("Using checkpoint file", extra={"path": str(settings.checkpoint_path)})

    return LogStream(options, storage, settings=settings, **kwargs)


__all__ = ["EVENTS", "AckTarget", "LogStream", "create_stream"]
