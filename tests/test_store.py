"""Tests for storage backends.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from roadquery_core.protocol.serializer import JSONSerializer, MsgPackSerializer, get_serializer
from roadquery_core.query.state import CachedRecord
from roadquery_core.store.backend import StorageConfig, StorageError, StorageQuotaError
from roadquery_core.store.factory import BackendKind, create_backend
from roadquery_core.store.file import FileStore
from roadquery_core.store.memory import MemoryStore
from roadquery_core.store.redis import RedisConfig, RedisStore
from roadquery_core.store.sqlite import SqliteStore
from roadquery_core.query.engine import QueryConfig


RECORD = CachedRecord(data={"users": ["alice", "bob"], "total": 2}, last_updated=1_700_000_000_000)


class TestMemoryStore:
    """Tests for MemoryStore."""

    @pytest.mark.asyncio
    async def test_set_get_remove(self):
        """Test basic record lifecycle."""
        store = MemoryStore()

        await store.set("query:users", RECORD)
        assert await store.get("query:users") == RECORD

        await store.remove("query:users")
        assert await store.get("query:users") is None

    @pytest.mark.asyncio
    async def test_remove_missing_key(self):
        """Removing a missing key is a no-op."""
        store = MemoryStore()
        await store.remove("query:nothing")
        assert store.get_stats().deletes == 0

    @pytest.mark.asyncio
    async def test_keys_do_not_interfere(self):
        """Records under different keys stay separate."""
        store = MemoryStore()
        other = CachedRecord(data="x", last_updated=1)

        await store.set("query:a", RECORD)
        await store.set("query:b", other)

        assert await store.get("query:a") == RECORD
        assert await store.get("query:b") == other

    @pytest.mark.asyncio
    async def test_max_size(self):
        """Full stores refuse new keys but accept overwrites."""
        store = MemoryStore(StorageConfig(name="memory", max_size=1))
        await store.set("query:a", RECORD)

        with pytest.raises(StorageQuotaError):
            await store.set("query:b", RECORD)

        await store.set("query:a", CachedRecord(data=None, last_updated=2))
        assert (await store.get("query:a")).last_updated == 2

    @pytest.mark.asyncio
    async def test_clear_all(self):
        """Test clear_all."""
        store = MemoryStore()
        await store.set("query:a", RECORD)
        await store.set("query:b", RECORD)

        await store.clear_all()
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_health_check(self):
        """Test health check cycle."""
        assert await MemoryStore().health_check()


class TestFileStore:
    """Tests for FileStore."""

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        """Test set then get."""
        store = FileStore(str(tmp_path))

        await store.set("query:users", RECORD)
        assert await store.get("query:users") == RECORD
        assert store.size() == 1

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        """Records persist across store instances."""
        await FileStore(str(tmp_path)).set("query:users", RECORD)

        reopened = FileStore(str(tmp_path))
        assert await reopened.get("query:users") == RECORD

    @pytest.mark.asyncio
    async def test_persisted_layout(self, tmp_path):
        """Files hold the data/lastUpdated JSON layout."""
        store = FileStore(str(tmp_path))
        await store.set("query:users", RECORD)

        raw = store._get_path("query:users").read_bytes()
        assert JSONSerializer().deserialize(raw) == {
            "data": RECORD.data,
            "lastUpdated": RECORD.last_updated,
        }

    @pytest.mark.asyncio
    async def test_missing_and_remove_missing(self, tmp_path):
        """Missing keys read as None and remove quietly."""
        store = FileStore(str(tmp_path))
        assert await store.get("query:none") is None
        await store.remove("query:none")

    @pytest.mark.asyncio
    async def test_quota_exceeded(self, tmp_path):
        """Writes beyond the byte quota raise StorageQuotaError."""
        store = FileStore(str(tmp_path), StorageConfig(name="file", max_bytes=64))
        big = CachedRecord(data="x" * 500, last_updated=1)

        with pytest.raises(StorageQuotaError):
            await store.set("query:big", big)

        assert await store.get("query:big") is None
        assert store.get_stats().errors == 1

    @pytest.mark.asyncio
    async def test_overwrite_counts_against_quota_once(self, tmp_path):
        """Replacing a record does not double-count its old size."""
        record = CachedRecord(data="x" * 40, last_updated=1)
        size = len(JSONSerializer().dump_record(record))
        store = FileStore(str(tmp_path), StorageConfig(name="file", max_bytes=size + 10))

        await store.set("query:a", record)
        await store.set("query:a", CachedRecord(data="y" * 40, last_updated=2))
        assert (await store.get("query:a")).data == "y" * 40

    @pytest.mark.asyncio
    async def test_corrupt_record_removed(self, tmp_path):
        """Corrupt documents read as a miss and are deleted."""
        store = FileStore(str(tmp_path))
        await store.set("query:users", RECORD)

        path = store._get_path("query:users")
        path.write_bytes(b"this is not valid json")

        assert await store.get("query:users") is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_unserializable_record(self, tmp_path):
        """Payloads JSON cannot encode raise StorageError."""
        store = FileStore(str(tmp_path))
        with pytest.raises(StorageError):
            await store.set("query:bad", CachedRecord(data=object(), last_updated=1))

    @pytest.mark.asyncio
    async def test_clear_all(self, tmp_path):
        """Test clear_all removes every record."""
        store = FileStore(str(tmp_path))
        await store.set("query:a", RECORD)
        await store.set("query:b", RECORD)

        await store.clear_all()
        assert store.size() == 0
        assert await store.get("query:a") is None


class TestSqliteStore:
    """Tests for SqliteStore."""

    @pytest.mark.asyncio
    async def test_round_trip_binary(self):
        """Binary payloads survive MessagePack encoding."""
        store = SqliteStore()
        record = CachedRecord(data={"tile": b"\x00\x01\xff", "zoom": 3}, last_updated=7)

        await store.set("query:tile", record)
        assert await store.get("query:tile") == record
        await store.close()

    @pytest.mark.asyncio
    async def test_round_trip_non_string_keys(self):
        """Maps keyed by ints or bytes decode intact and are not dropped."""
        store = SqliteStore()
        record = CachedRecord(data={1: "alice", 2: {b"k": [3, 4]}}, last_updated=7)

        await store.set("query:users", record)
        assert await store.get("query:users") == record
        assert store.size() == 1
        await store.close()

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        """Records persist in the database file."""
        path = str(tmp_path / "query.db")
        first = SqliteStore(path)
        await first.set("query:users", RECORD)
        await first.close()

        second = SqliteStore(path)
        assert await second.get("query:users") == RECORD
        await second.close()

    @pytest.mark.asyncio
    async def test_remove_and_clear(self):
        """Test remove and clear_all."""
        store = SqliteStore()
        await store.set("query:a", RECORD)
        await store.set("query:b", RECORD)

        await store.remove("query:a")
        await store.remove("query:missing")
        assert await store.get("query:a") is None
        assert store.size() == 1
        assert store.get_stats().deletes == 1

        await store.clear_all()
        assert store.size() == 0
        await store.close()

    @pytest.mark.asyncio
    async def test_corrupt_row_removed(self):
        """Undecodable rows read as a miss and are deleted."""
        store = SqliteStore()
        store._execute("INSERT INTO cache (key, value) VALUES (?, ?)", ("query:bad", b"\xc1"))

        assert await store.get("query:bad") is None
        assert store.size() == 0
        await store.close()


class TestRedisStore:
    """Tests for RedisStore against a mocked client."""

    @pytest.mark.asyncio
    async def test_set_uses_prefixed_key(self):
        """Records are written under the configured prefix."""
        client = AsyncMock()
        store = RedisStore(RedisConfig(prefix="app:"), client=client)

        await store.set("query:users", RECORD)

        client.set.assert_awaited_once_with(
            "app:query:users", JSONSerializer().dump_record(RECORD), ex=None
        )

    @pytest.mark.asyncio
    async def test_get_decodes_record(self):
        """Stored bytes decode into a CachedRecord."""
        client = AsyncMock()
        client.get.return_value = JSONSerializer().dump_record(RECORD)
        store = RedisStore(client=client)

        assert await store.get("query:users") == RECORD
        client.get.assert_awaited_once_with("roadquery:query:users")

    @pytest.mark.asyncio
    async def test_get_missing(self):
        """Missing keys read as None."""
        client = AsyncMock()
        client.get.return_value = None
        assert await RedisStore(client=client).get("query:users") is None

    @pytest.mark.asyncio
    async def test_redis_errors_wrapped(self):
        """Redis failures surface as StorageError."""
        client = AsyncMock()
        client.set.side_effect = RedisConnectionError("down")
        store = RedisStore(client=client)

        with pytest.raises(StorageError):
            await store.set("query:users", RECORD)
        assert store.get_stats().errors == 1

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client(self):
        """Injected clients are owned by the caller."""
        client = AsyncMock()
        await RedisStore(client=client).close()
        client.aclose.assert_not_awaited()


class TestSerializersAndFactory:
    """Tests for serializers and backend resolution."""

    def test_msgpack_record(self):
        """MessagePack keeps the record layout."""
        serializer = MsgPackSerializer()
        assert serializer.load_record(serializer.dump_record(RECORD)) == RECORD

    @pytest.mark.asyncio
    async def test_pickle_file_store(self, tmp_path):
        """Pickle-backed stores keep arbitrary Python values."""
        store = FileStore(str(tmp_path), StorageConfig(name="file", serializer="pickle"))
        record = CachedRecord(data={"tags": {"a", "b"}}, last_updated=3)

        await store.set("query:tags", record)
        assert await store.get("query:tags") == record

    def test_load_record_rejects_garbage(self):
        """Undecodable bytes raise ValueError."""
        with pytest.raises(ValueError):
            JSONSerializer().load_record(b"{not json")

    def test_get_serializer(self):
        """Test lookup by name."""
        assert get_serializer().format_name == "json"
        assert get_serializer("msgpack").format_name == "msgpack"
        with pytest.raises(KeyError):
            get_serializer("yaml")

    def test_create_backend(self, tmp_path):
        """Selectors map to backend classes."""
        config = QueryConfig(file_path=str(tmp_path), file_max_bytes=1024)

        assert isinstance(create_backend("memory", config), MemoryStore)
        assert isinstance(create_backend(BackendKind.SQLITE, config), SqliteStore)
        assert isinstance(create_backend("redis", config), RedisStore)

        file_store = create_backend("file", config)
        assert isinstance(file_store, FileStore)
        assert file_store.config.max_bytes == 1024

    def test_create_backend_unknown(self):
        """Unknown selectors raise ValueError."""
        with pytest.raises(ValueError):
            create_backend("indexeddb", QueryConfig())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
