"""RoadQuery Redis Store - Redis Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from roadquery_core.protocol.serializer import get_serializer
from roadquery_core.query.state import CachedRecord
from roadquery_core.store.backend import (
    CacheBackend,
    StorageConfig,
    StorageError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)


@dataclass
class RedisConfig(StorageConfig):
    """Redis-specific configuration.

    Attributes:
        url: Redis connection URL
        socket_timeout: Socket timeout
        socket_connect_timeout: Connection timeout
        max_connections: Connection pool size
        prefix: Key prefix
        ttl_seconds: Optional server-side expiry for records
    """

    name: str = "redis"
    url: str = "redis://localhost:6379/0"
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    max_connections: int = 10
    prefix: str = "roadquery:"
    ttl_seconds: Optional[int] = None


class RedisStore(CacheBackend):
    """Redis storage backend.

    Shares cached records between processes. The connection is opened
    lazily on first use so an unreachable server only affects the calls
    that need it.

    Example:
        store = RedisStore(RedisConfig(url="redis://redis.local:6379/0"))
        await store.set("query:users", CachedRecord(data=[], last_updated=0))
        record = await store.get("query:users")
    """

    def __init__(self, config: Optional[RedisConfig] = None, client: Optional[Any] = None):
        """Initialize Redis store.

        Args:
            config: Redis configuration
            client: Pre-built ``redis.asyncio.Redis`` client
        """
        super().__init__(config)
        self.config: RedisConfig = config or RedisConfig()
        self._serializer = get_serializer(self.config.serializer)
        self._client = client
        self._owns_client = client is None

    async def _ensure_connected(self) -> Any:
        if self._client is not None:
            return self._client

        try:
            client = redis.from_url(
                self.config.url,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_connect_timeout,
                decode_responses=False,
            )
            await client.ping()
        except RedisError as e:
            self._stats.record_error(str(e))
            logger.error(f"Failed to connect to Redis: {e}")
            raise StorageUnavailableError(f"Redis unavailable: {e}") from e

        self._client = client
        logger.info(f"Connected to Redis at {self.config.url.split('@')[-1]}")
        return client

    def _make_key(self, key: str) -> str:
        return f"{self.config.prefix}{key}"

    async def get(self, key: str) -> Optional[CachedRecord]:
        client = await self._ensure_connected()
        self._stats.reads += 1

        try:
            raw = await client.get(self._make_key(key))
        except RedisError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Redis read failed for {key}: {e}") from e

        if raw is None:
            return None

        try:
            return self._serializer.load_record(raw)
        except ValueError as e:
            logger.error(f"Corrupt record for {key}, removing it: {e}")
            self._stats.record_error(str(e))
            await client.delete(self._make_key(key))
            return None

    async def set(self, key: str, record: CachedRecord) -> None:
        client = await self._ensure_connected()

        try:
            payload = self._serializer.dump_record(record)
        except (TypeError, ValueError) as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Cannot serialize record for {key}: {e}") from e

        try:
            await client.set(self._make_key(key), payload, ex=self.config.ttl_seconds)
        except RedisError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Redis write failed for {key}: {e}") from e

        self._stats.writes += 1

    async def remove(self, key: str) -> None:
        client = await self._ensure_connected()

        try:
            deleted = await client.delete(self._make_key(key))
        except RedisError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Redis delete failed for {key}: {e}") from e

        if deleted:
            self._stats.deletes += 1

    async def clear_all(self) -> None:
        client = await self._ensure_connected()
        count = 0

        try:
            async for redis_key in client.scan_iter(match=f"{self.config.prefix}*", count=100):
                await client.delete(redis_key)
                count += 1
        except RedisError as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Redis clear failed: {e}") from e

        logger.debug(f"Cleared {count} records from Redis")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    def __repr__(self) -> str:
        return f"RedisStore(url={self.config.url.split('@')[-1]!r}, prefix={self.config.prefix!r})"


__all__ = ["RedisStore", "RedisConfig"]
