"""Drain a log stream into a sink until it ends."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from core.errors import StreamStateError
from logstream.status import StreamState, StreamStatus
from logstream.stream import LogStream

logger = logging.getLogger(__name__)

Sink = Callable[[list[dict[str, Any]]], Awaitable[None] | None]


async def drain(
    stream: LogStream,
    sink: Sink,
    max_batches: int | None = None,
) -> StreamStatus:
    """
    Pull pages from ``stream`` and hand each one to ``sink``.

    A page is acknowledged only after ``sink`` returns, so a crash inside
    the sink leaves the stored checkpoint on the previous page and the
    next run ships it again.

    Args:
        stream: Stream to drain; must not have ended yet
        sink: Called with each batch, sync or async
        max_batches: Stop (via done()) after this many batches

    Returns:
        Final status of the stream

    Raises:
        LogStreamError: the stream failed; the error it emitted is re-raised
        Exception: whatever the sink raised (the batch stays unacknowledged)
    """
    batches = 0

    async def on_data(batch: list[dict[str, Any]]) -> None:
        nonlocal batches
        try:
            result = sink(batch)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "Sink failed, batch left unacknowledged",
                exc_info=True,
                extra={
                    "batch_size": len(batch),
                    "last_checkpoint": stream.last_checkpoint,
                    "error_type": type(e).__name__,
                },
            )
            raise

        batches += 1
        await stream.batch_saved()
        if max_batches is not None and batches >= max_batches:
            await stream.done()
        else:
            await stream.next()

    stream.on("data", on_data)
    try:
        if max_batches is not None and max_batches <= 0:
            await stream.done()
        else:
            await stream.next()
    finally:
        stream.off("data", on_data)

    if stream.state == StreamState.FAILED and stream.error is not None:
        raise stream.error
    if stream.state != StreamState.ENDED:
        raise StreamStateError(
            f"Stream stopped in state {stream.state.value}",
            context={"stream_id": stream.stream_id},
        )

    status = stream.status
    logger.info(
        "Drain complete",
        extra={
            "batch_size": batches,
            "logs_processed": status.logs_processed,
            "last_checkpoint": status.last_checkpoint,
            "warning": status.warning,
        },
    )
    return status


__all__ = ["Sink", "drain"]
