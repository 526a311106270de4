"""Checkpoint storage for the log stream.

The stream persists a single record per tenant so that a restart resumes
exactly where the last acknowledged batch ended.

Architecture:
- ``CheckpointStorage`` protocol: the raw read/write capability supplied by
  the host application (filesystem, blob store, KV service, ...)
- ``CheckpointStore``: adapter the stream talks to; normalises the record
  shape and wraps capability failures in StorageError
- Two reference capabilities: MemoryStorage (tests, one-off runs) and
  JsonFileStorage (local deployments, atomic writes)

Record format (key names are kept stable for interchange with existing
stores):
- checkpointId: ``_id`` of the last acknowledged log, or null
- logs: the last acknowledged batch, kept for crash forensics
- auth0Token: ``{"access_token": str, "expires_at": epoch_ms}`` or null

Usage:
    store = CheckpointStore(JsonFileStorage("./.checkpoints/tenant.json"))

    record = await store.read()
    record.checkpoint_id = "90020230101..."
    await store.write(record)
"""

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from core.errors import LogStreamError, StorageError
from core.utils.json_serializers import json_serializer

logger = logging.getLogger(__name__)


# =============================================================================
# Checkpoint data structure
# =============================================================================


@dataclass
class CheckpointRecord:
    """Persisted resume state for one stream.

    A record with every field None is the zero record: no checkpoint yet,
    nothing acknowledged, no cached token.
    """

    checkpoint_id: str | None = None
    logs: list[dict[str, Any]] | None = None
    auth0_token: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted (camelCase) form."""
        return {
            "checkpointId": self.checkpoint_id,
            "logs": list(self.logs) if self.logs is not None else None,
            "auth0Token": dict(self.auth0_token) if self.auth0_token is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CheckpointRecord":
        """Create from the persisted form; missing keys read as None."""
        if not data:
            return cls()
        logs = data.get("logs")
        token = data.get("auth0Token")
        checkpoint_id = data.get("checkpointId")
        return cls(
            checkpoint_id=str(checkpoint_id) if checkpoint_id is not None else None,
            logs=list(logs) if logs else None,
            auth0_token=dict(token) if token else None,
        )


# =============================================================================
# Protocol definition
# =============================================================================


class CheckpointStorage(Protocol):
    """Raw storage capability supplied by the host application.

    ``read`` returns the stored dict, or None when nothing was stored yet.
    ``write`` replaces whatever was stored. Errors propagate.
    """

    async def read(self) -> dict[str, Any] | None: ...

    async def write(self, data: dict[str, Any]) -> None: ...


# =============================================================================
# Adapter
# =============================================================================


class CheckpointStore:
    """Adapter between the stream and a CheckpointStorage capability.

    Every write is a whole-record replacement. The convenience setters
    (set_checkpoint, set_token) do read-modify-write and still hand the
    full record to the capability.

    When ``max_record_bytes`` is set, records whose JSON form is larger are
    shrunk by dropping the oldest entries of ``logs``; the checkpoint and
    token are never trimmed.
    """

    def __init__(self, storage: CheckpointStorage, max_record_bytes: int | None = None):
        if storage is None:
            raise ValueError("storage capability is required")
        self._storage = storage
        self._max_record_bytes = max_record_bytes

    @property
    def storage(self) -> CheckpointStorage:
        return self._storage

    async def read(self) -> CheckpointRecord:
        """Load the record, or the zero record when nothing is stored.

        Raises:
            StorageError: the capability failed
        """
        try:
            data = await self._storage.read()
        except LogStreamError:
            raise
        except Exception as e:
            logger.error(
                "Failed to read checkpoint record",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise StorageError(f"Checkpoint read failed: {e}", cause=e) from e

        return CheckpointRecord.from_dict(data)

    async def write(self, record: CheckpointRecord) -> None:
        """Replace the stored record.

        Raises:
            StorageError: the capability failed
        """
        data = self._fit_to_limit(record.to_dict())
        try:
            await self._storage.write(data)
        except LogStreamError:
            raise
        except Exception as e:
            logger.error(
                "Failed to write checkpoint record",
                extra={
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "last_checkpoint": record.checkpoint_id,
                },
            )
            raise StorageError(f"Checkpoint write failed: {e}", cause=e) from e

        logger.debug(
            "Checkpoint record written",
            extra={
                "last_checkpoint": record.checkpoint_id,
                "batch_size": len(data["logs"] or []),
            },
        )

    async def get_checkpoint(self, start_from: str | None = None) -> str | None:
        """Stored checkpoint, or ``start_from`` when none is stored."""
        record = await self.read()
        return record.checkpoint_id or start_from

    async def set_checkpoint(
        self, checkpoint_id: str | None, logs: list[dict[str, Any]] | None = None
    ) -> None:
        record = await self.read()
        record.checkpoint_id = checkpoint_id
        record.logs = logs
        await self.write(record)

    async def get_token(self) -> dict[str, Any] | None:
        record = await self.read()
        return record.auth0_token

    async def set_token(self, token: dict[str, Any] | None) -> None:
        record = await self.read()
        record.auth0_token = token
        await self.write(record)

    def _fit_to_limit(self, data: dict[str, Any]) -> dict[str, Any]:
        if not self._max_record_bytes:
            return data

        size = _record_size(data)
        if size <= self._max_record_bytes:
            return data

        logs = list(data["logs"] or [])
        trimmed = 0
        while logs and size > self._max_record_bytes:
            logs.pop(0)
            trimmed += 1
            data["logs"] = logs or None
            size = _record_size(data)

        logger.warning(
            "Checkpoint record exceeded size limit, dropped oldest logs",
            extra={"record_bytes": size, "trimmed_logs": trimmed},
        )
        return data


def _record_size(data: dict[str, Any]) -> int:
    return len(json.dumps(data, default=json_serializer).encode("utf-8"))


# =============================================================================
# Reference capabilities
# =============================================================================


class MemoryStorage:
    """In-memory storage capability.

    Each instance owns its own record, so two streams never share state
    unless they are handed the same MemoryStorage.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] | None = copy.deepcopy(initial)
        self.write_count = 0

    @property
    def data(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data)

    async def read(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data)

    async def write(self, data: dict[str, Any]) -> None:
        self._data = copy.deepcopy(data)
        self.write_count += 1


@dataclass
class JsonFileStorage:
    """Local JSON file storage capability.

    Uses atomic write pattern (write to temp file, then os.replace). A
    corrupt file is an error rather than a fresh start: silently
    restarting from the beginning of retention would re-ship every log.
    """

    path: Path = field(default_factory=lambda: Path(".checkpoints") / "auth0_logs.json")

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    async def read(self) -> dict[str, Any] | None:
        if not self.path.exists():
            logger.info("No checkpoint file found", extra={"path": str(self.path)})
            return None

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        logger.debug("Loaded checkpoint file", extra={"path": str(self.path)})
        return data

    async def write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")

        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=json_serializer)

        # Atomic replace
        os.replace(temp_path, self.path)


def as_checkpoint_store(
    storage: "CheckpointStore | CheckpointStorage | None",
    max_record_bytes: int | None = None,
) -> CheckpointStore:
    """Wrap a raw capability in a CheckpointStore (pass stores through)."""
    if isinstance(storage, CheckpointStore):
        return storage
    if storage is None:
        raise ValueError("storage capability is required")
    return CheckpointStore(storage, max_record_bytes=max_record_bytes)


__all__ = [
    "CheckpointRecord",
    "CheckpointStorage",
    "CheckpointStore",
    "MemoryStorage",
    "JsonFileStorage",
    "as_checkpoint_store",
]
