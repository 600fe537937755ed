"""Tests for oltmon/cache (memory and Redis stores)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from oltmon.cache.memory import MemoryCache
from oltmon.cache.redis_store import RedisCache
from oltmon.config import RedisSettings
from oltmon.exceptions import CacheUnavailable, CacheWriteFailed


class TestMemoryCache:
    """Tests for MemoryCache expiry and outage emulation."""

    def test_hit_before_expiry(self, cache, fake_clock):
        """Written at T, still served at T+299."""
        asyncio.run(cache.set("onu_board_1_pon_1", 300, "[]"))
        fake_clock.advance(299)

        assert asyncio.run(cache.get("onu_board_1_pon_1")) == "[]"

    def test_miss_after_expiry(self, cache, fake_clock):
        """Written at T, gone at T+301."""
        asyncio.run(cache.set("onu_board_1_pon_1", 300, "[]"))
        fake_clock.advance(301)

        assert asyncio.run(cache.get("onu_board_1_pon_1")) is None
        assert cache.keys() == []

    def test_expiry_is_not_sliding(self, cache, fake_clock):
        """Reads do not extend the lifetime of an entry."""
        asyncio.run(cache.set("k", 300, "v"))
        fake_clock.advance(200)
        asyncio.run(cache.get("k"))
        fake_clock.advance(101)

        assert asyncio.run(cache.get("k")) is None

    def test_overwrite_resets_expiry(self, cache, fake_clock):
        asyncio.run(cache.set("k", 300, "old"))
        fake_clock.advance(200)
        asyncio.run(cache.set("k", 300, "new"))
        fake_clock.advance(200)

        assert asyncio.run(cache.get("k")) == "new"

    def test_unknown_key(self, cache):
        assert asyncio.run(cache.get("nope")) is None

    def test_unavailable_read_raises(self, cache):
        cache.unavailable = True

        with pytest.raises(CacheUnavailable):
            asyncio.run(cache.get("k"))

    def test_read_only_write_raises(self, cache):
        cache.read_only = True

        with pytest.raises(CacheWriteFailed):
            asyncio.run(cache.set("k", 300, "v"))


class TestRedisCache:
    """Tests for RedisCache with a mocked redis.asyncio client."""

    @pytest.fixture()
    def client(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        client.set = AsyncMock(return_value=True)
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        return client

    def test_get_returns_payload(self, client):
        client.get.return_value = '[{"onu_id": 1}]'

        result = asyncio.run(RedisCache(client).get("onu_board_1_pon_1"))

        assert result == '[{"onu_id": 1}]'
        client.get.assert_awaited_once_with("onu_board_1_pon_1")

    def test_get_decodes_bytes(self, client):
        client.get.return_value = b"[]"

        assert asyncio.run(RedisCache(client).get("k")) == "[]"

    def test_get_miss(self, client):
        assert asyncio.run(RedisCache(client).get("k")) is None

    def test_set_uses_expiry(self, client):
        """SET is issued with EX = ttl."""
        asyncio.run(RedisCache(client).set("k", 300, "[]"))

        client.set.assert_awaited_once_with("k", "[]", ex=300)

    def test_get_error_wrapped(self, client):
        client.get.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(CacheUnavailable) as exc_info:
            asyncio.run(RedisCache(client).get("k"))

        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    def test_set_error_wrapped(self, client):
        client.set.side_effect = RedisTimeoutError("timeout")

        with pytest.raises(CacheWriteFailed):
            asyncio.run(RedisCache(client).set("k", 300, "[]"))

    def test_ping_failure_returns_false(self, client):
        client.ping.side_effect = RedisConnectionError("down")

        assert asyncio.run(RedisCache(client).ping()) is False

    def test_close(self, client):
        asyncio.run(RedisCache(client).close())

        client.aclose.assert_awaited_once()

    def test_from_settings_builds_pool(self):
        """Pool size, db and credentials come from RedisSettings."""
        settings = RedisSettings(host="redis.local", port=6380, password="s3cret", db=2, pool_size=7)

        store = RedisCache.from_settings(settings)
        pool = store._client.connection_pool

        assert pool.max_connections == 7
        assert pool.connection_kwargs["host"] == "redis.local"
        assert pool.connection_kwargs["port"] == 6380
        assert pool.connection_kwargs["db"] == 2
        assert pool.connection_kwargs["password"] == "s3cret"
