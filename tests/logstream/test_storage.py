"""Tests for checkpoint storage."""

import json
from unittest.mock import AsyncMock

import pytest

from core.errors import StorageError
from logstream.storage import (
    CheckpointRecord,
    CheckpointStore,
    JsonFileStorage,
    MemoryStorage,
    as_checkpoint_store,
)


class TestCheckpointRecord:
    def test_zero_record(self):
        assert CheckpointRecord().to_dict() == {
            "checkpointId": None,
            "logs": None,
            "auth0Token": None,
        }

    def test_from_dict_uses_persisted_keys(self):
        record = CheckpointRecord.from_dict(
            {
                "checkpointId": "100",
                "logs": [{"_id": "100"}],
                "auth0Token": {"access_token": "t", "expires_at": 1},
            }
        )
        assert record.checkpoint_id == "100"
        assert record.logs == [{"_id": "100"}]
        assert record.auth0_token == {"access_token": "t", "expires_at": 1}

    def test_from_dict_missing_keys(self):
        assert CheckpointRecord.from_dict({"checkpointId": 7}) == CheckpointRecord(checkpoint_id="7")
        assert CheckpointRecord.from_dict(None) == CheckpointRecord()


class TestCheckpointStore:
    async def test_read_empty_storage_returns_zero_record(self):
        store = CheckpointStore(MemoryStorage())
        assert await store.read() == CheckpointRecord()

    async def test_write_replaces_whole_record(self):
        storage = MemoryStorage({"checkpointId": "1", "logs": [{"_id": "1"}], "auth0Token": None})
        store = CheckpointStore(storage)

        await store.write(CheckpointRecord(checkpoint_id="2"))

        assert storage.data == {"checkpointId": "2", "logs": None, "auth0Token": None}

    async def test_set_checkpoint_keeps_token(self):
        token = {"access_token": "t", "expires_at": 1}
        storage = MemoryStorage({"checkpointId": None, "logs": None, "auth0Token": token})
        store = CheckpointStore(storage)

        await store.set_checkpoint("42", [{"_id": "42"}])

        assert storage.data == {"checkpointId": "42", "logs": [{"_id": "42"}], "auth0Token": token}

    async def test_set_token_keeps_checkpoint(self):
        storage = MemoryStorage({"checkpointId": "42", "logs": None, "auth0Token": None})
        store = CheckpointStore(storage)

        await store.set_token({"access_token": "t", "expires_at": 5})

        assert await store.get_checkpoint() == "42"
        assert await store.get_token() == {"access_token": "t", "expires_at": 5}

    async def test_get_checkpoint_start_from(self):
        store = CheckpointStore(MemoryStorage())
        assert await store.get_checkpoint() is None
        assert await store.get_checkpoint(start_from="10") == "10"

    async def test_read_failure_wrapped(self):
        storage = AsyncMock()
        storage.read.side_effect = OSError("disk gone")
        store = CheckpointStore(storage)

        with pytest.raises(StorageError) as exc_info:
            await store.read()

        assert isinstance(exc_info.value.cause, OSError)

    async def test_write_failure_wrapped(self):
        storage = AsyncMock()
        storage.write.side_effect = RuntimeError("quota")
        store = CheckpointStore(storage)

        with pytest.raises(StorageError, match="quota"):
            await store.write(CheckpointRecord(checkpoint_id="1"))

    async def test_storage_error_not_rewrapped(self):
        original = StorageError("already typed")
        storage = AsyncMock()
        storage.read.side_effect = original

        with pytest.raises(StorageError) as exc_info:
            await CheckpointStore(storage).read()

        assert exc_info.value is original

    async def test_max_record_bytes_drops_oldest_logs(self):
        storage = MemoryStorage()
        store = CheckpointStore(storage, max_record_bytes=300)
        logs = [{"_id": str(i), "description": "x" * 40} for i in range(10)]

        await store.write(CheckpointRecord(checkpoint_id="9", logs=logs))

        data = storage.data
        assert data["checkpointId"] == "9"
        assert 0 < len(data["logs"]) < 10
        assert data["logs"][-1]["_id"] == "9"
        assert len(json.dumps(data).encode()) <= 300

    async def test_max_record_bytes_never_drops_checkpoint(self):
        storage = MemoryStorage()
        store = CheckpointStore(storage, max_record_bytes=10)

        await store.write(CheckpointRecord(checkpoint_id="9", logs=[{"_id": "9"}]))

        assert storage.data == {"checkpointId": "9", "logs": None, "auth0Token": None}

    def test_as_checkpoint_store(self):
        store = CheckpointStore(MemoryStorage())
        assert as_checkpoint_store(store) is store
        assert isinstance(as_checkpoint_store(MemoryStorage()), CheckpointStore)
        with pytest.raises(ValueError):
            as_checkpoint_store(None)


class TestMemoryStorage:
    async def test_instances_are_isolated(self):
        a, b = MemoryStorage(), MemoryStorage()
        await a.write({"checkpointId": "1"})
        assert await b.read() is None

    async def test_returns_copies(self):
        storage = MemoryStorage()
        data = {"checkpointId": "1", "logs": [{"_id": "1"}]}
        await storage.write(data)
        data["logs"].append({"_id": "2"})

        read_back = await storage.read()
        read_back["checkpointId"] = "mutated"

        assert storage.data == {"checkpointId": "1", "logs": [{"_id": "1"}]}
        assert storage.write_count == 1


class TestJsonFileStorage:
    async def test_missing_file_reads_none(self, tmp_path):
        assert await JsonFileStorage(tmp_path / "cp.json").read() is None

    async def test_write_then_read(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "nested" / "cp.json")
        await storage.write({"checkpointId": "5", "logs": None, "auth0Token": None})

        assert await storage.read() == {"checkpointId": "5", "logs": None, "auth0Token": None}
        assert not (tmp_path / "nested" / "cp.tmp").exists()

    async def test_corrupt_file_raises_storage_error_through_store(self, tmp_path):
        path = tmp_path / "cp.json"
        path.write_text("{not json")

        with pytest.raises(StorageError):
            await CheckpointStore(JsonFileStorage(path)).read()

    def test_accepts_string_path(self, tmp_path):
        storage = JsonFileStorage(str(tmp_path / "cp.json"))
        assert storage.path == tmp_path / "cp.json"
