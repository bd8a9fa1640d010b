"""
Redis key-value store for Texts Service.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.errors import StoreUnavailableError


class KeyValueStore(ABC):
    """Contract the caches and the rate limiter rely on.

    Every method raises ``StoreUnavailableError`` when the store cannot be
    reached or does not answer within the configured timeout.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key`` or None."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` with an expiry."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""

    @abstractmethod
    async def increment(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment a counter and (re)arm its expiry."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity."""

    @abstractmethod
    async def info(self) -> Dict[str, Any]:
        """Server diagnostics."""

    async def close(self) -> None:
        """Release the underlying connection pool."""


class RedisKeyValueStore(KeyValueStore):
    """Key-value store backed by a ``redis.asyncio`` client."""

    def __init__(self, client: redis.Redis, timeout_seconds: float = 2.0):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.logger = get_logger("texts.store.redis")

    @classmethod
    def from_url(cls, redis_url: str, timeout_seconds: float = 2.0) -> "RedisKeyValueStore":
        """Build a store with a pooled client for ``redis_url``."""
        client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=timeout_seconds,
            socket_timeout=timeout_seconds,
            health_check_interval=30
        )
        return cls(client, timeout_seconds)

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        """Run a store command under the per-call timeout."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            self.logger.warning("Store call timed out", operation=operation, timeout=self.timeout_seconds)
            raise StoreUnavailableError(operation, "timed out") from e
        except (RedisError, OSError) as e:
            self.logger.warning("Store call failed", operation=operation, error=str(e))
            raise StoreUnavailableError(operation, str(e)) from e

    async def get(self, key: str) -> Optional[str]:
        value = await self._call("get", self.client.get(key))
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._call("set", self.client.setex(key, ttl_seconds, value))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._call("delete", self.client.delete(*keys)))

    async def increment(self, key: str, ttl_seconds: int) -> int:
        async def _incr_with_expiry() -> int:
            async with self.client.pipeline(transaction=True) as pipeline:
                pipeline.incr(key)
                pipeline.expire(key, ttl_seconds)
                count, _ = await pipeline.execute()
            return int(count)

        return await self._call("increment", _incr_with_expiry())

    async def ping(self) -> bool:
        return bool(await self._call("ping", self.client.ping()))

    async def info(self) -> Dict[str, Any]:
        return await self._call("info", self.client.info())

    async def close(self) -> None:
        await self.client.aclose()
        self.logger.info("Redis store closed")
