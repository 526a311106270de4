"""Stream status reporting."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

RATE_LIMIT_WARNING = "Auth0 Management API rate limit reached."


class StreamState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    AWAITING_ACK = "awaiting-ack"
    ENDED = "ended"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamState.ENDED, StreamState.FAILED)


@dataclass
class StreamStatus:
    """Counters surfaced to the consumer.

    ``logs_processed`` only counts acknowledged logs, never merely emitted
    ones. Only the stream updates these fields; consumers get copies.
    """

    start: datetime = field(default_factory=lambda: datetime.now(UTC))
    end: datetime | None = None
    logs_processed: int = 0
    warning: str | None = None
    last_checkpoint: str | None = None

    @property
    def duration_seconds(self) -> float:
        finished = self.end or datetime.now(UTC)
        return (finished - self.start).total_seconds()

    def snapshot(self) -> "StreamStatus":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end else None,
            "logs_processed": self.logs_processed,
            "last_checkpoint": self.last_checkpoint,
        }
        if self.warning:
            data["warning"] = self.warning
        return data


__all__ = ["RATE_LIMIT_WARNING", "StreamState", "StreamStatus"]
