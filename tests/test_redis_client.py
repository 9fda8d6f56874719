# EnergyScheduler/tests/test_redis_client.py
"""Unit tests for the Redis connection wrapper."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
import redis.asyncio as redis

from src.state.redis_client import RedisClient


class TestUrl:
    def test_without_password(self):
        client = RedisClient(host="cache", port=6380, password="", db=2)
        assert client.url == "redis://cache:6380/2"

    def test_with_password(self):
        client = RedisClient(host="cache", port=6379, password="s3cret", db=0)
        assert client.url == "redis://:s3cret@cache:6379/0"


class TestConnect:
    @pytest.mark.asyncio
    async def test_retries_until_ping_succeeds(self):
        conn = AsyncMock()
        conn.ping.side_effect = [redis.ConnectionError("starting"), True]
        client = RedisClient(host="cache", retry_attempts=3, retry_delay=0)

        with patch.object(redis.Redis, "from_url", return_value=conn) as from_url:
            assert await client.connect() is conn

        assert from_url.call_count == 2
        conn.aclose.assert_awaited_once()
        assert await client.connect() is conn
        assert from_url.call_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self):
        conn = AsyncMock()
        conn.ping.side_effect = redis.ConnectionError("refused")
        client = RedisClient(host="cache", retry_attempts=2, retry_delay=0)

        with patch.object(redis.Redis, "from_url", return_value=conn):
            with pytest.raises(ConnectionError, match="after 2 attempts"):
                await client.connect()

        assert conn.aclose.await_count == 2
        with pytest.raises(ConnectionError):
            await client.ping()

    @pytest.mark.asyncio
    async def test_close_releases_connection(self):
        conn = AsyncMock()
        client = RedisClient(host="cache", retry_attempts=1, retry_delay=0)
        with patch.object(redis.Redis, "from_url", return_value=conn):
            await client.connect()

        await client.close()

        conn.aclose.assert_awaited_once()
        with pytest.raises(ConnectionError):
            await client.ping()
