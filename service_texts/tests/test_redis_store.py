"""
Unit tests for the Redis key-value store.
"""

import asyncio

import pytest
import fakeredis
from unittest.mock import AsyncMock, MagicMock
from redis.exceptions import ConnectionError as RedisConnectionError

from service_texts.app.store.redis_store import RedisKeyValueStore
from shared.errors import StoreUnavailableError


class TestRedisKeyValueStore:
    """Test cases for RedisKeyValueStore."""

    @pytest.fixture
    def redis_client(self):
        """In-process Redis."""
        return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)

    @pytest.fixture
    def store(self, redis_client):
        """Create store over the in-process Redis."""
        return RedisKeyValueStore(redis_client, timeout_seconds=1.0)

    @pytest.fixture
    def broken_store(self):
        """Store whose client cannot reach the server."""
        client = AsyncMock()
        error = RedisConnectionError("Connection refused")
        client.get.side_effect = error
        client.setex.side_effect = error
        client.delete.side_effect = error
        client.ping.side_effect = error
        client.info.side_effect = error
        client.pipeline = MagicMock(side_effect=error)
        return RedisKeyValueStore(client, timeout_seconds=1.0)

    @pytest.mark.asyncio
    async def test_set_and_get(self, store, redis_client):
        """Test values are stored with an expiry."""
        await store.set("analysis:abc", "payload", 60)

        assert await store.get("analysis:abc") == "payload"
        assert 0 < await redis_client.ttl("analysis:abc") <= 60

    @pytest.mark.asyncio
    async def test_get_missing_key(self, store):
        """Test missing keys read as None."""
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete_many(self, store):
        """Test multi-key delete counts existing keys only."""
        await store.set("a", "1", 60)
        await store.set("b", "2", 60)

        assert await store.delete("a", "b", "c") == 2
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_delete_nothing(self, store):
        """Test delete without keys is a no-op."""
        assert await store.delete() == 0

    @pytest.mark.asyncio
    async def test_increment(self, store, redis_client):
        """Test atomic increment with expiry."""
        assert await store.increment("ratewindow:x", 10) == 1
        assert await store.increment("ratewindow:x", 10) == 2
        assert 0 < await redis_client.ttl("ratewindow:x") <= 10

    @pytest.mark.asyncio
    async def test_ping(self, store):
        """Test ping against a live store."""
        assert await store.ping() is True

    @pytest.mark.asyncio
    async def test_unreachable_store_raises(self, broken_store):
        """Test every operation reports the store as unavailable."""
        calls = [
            broken_store.get("k"),
            broken_store.set("k", "v", 1),
            broken_store.delete("k"),
            broken_store.increment("k", 1),
            broken_store.ping(),
            broken_store.info(),
        ]
        for call in calls:
            with pytest.raises(StoreUnavailableError):
                await call

    @pytest.mark.asyncio
    async def test_operation_name_is_reported(self, broken_store):
        """Test the failing operation is named on the error."""
        with pytest.raises(StoreUnavailableError) as exc_info:
            await broken_store.get("k")

        assert exc_info.value.operation == "get"
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self):
        """Test a slow store is treated as unavailable."""
        async def slow_get(key):
            await asyncio.sleep(1)

        client = AsyncMock()
        client.get.side_effect = slow_get
        store = RedisKeyValueStore(client, timeout_seconds=0.01)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.get("k")

        assert "timed out" in exc_info.value.message

    def test_from_url_configures_timeouts(self):
        """Test the client is built with socket timeouts."""
        store = RedisKeyValueStore.from_url("redis://localhost:6379/0", timeout_seconds=0.5)

        kwargs = store.client.connection_pool.connection_kwargs
        assert kwargs["socket_timeout"] == 0.5
        assert kwargs["socket_connect_timeout"] == 0.5
        assert store.timeout_seconds == 0.5
