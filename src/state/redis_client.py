# EnergyScheduler/src/state/redis_client.py
# @ai-rules:
# 1. [Constraint]: Only the score sink talks to Redis. Built in lifespan when MONITOR_ENABLED=true, never at import.
# 2. [Pattern]: connect() retries PING so the monitor survives a Redis sidecar that starts after the app.
# 3. [Gotcha]: A failed attempt closes its half-open connection pool before the next try.
"""
Redis connection for the score time-series sink.

Settings come from REDIS_HOST / REDIS_PORT / REDIS_PASSWORD / REDIS_DB.
Exhausting the retry budget raises ConnectionError, which aborts startup
while the monitor is enabled.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING, Optional

import redis.asyncio as redis

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

REDIS_RETRY_ATTEMPTS = int(os.getenv("REDIS_RETRY_ATTEMPTS", "10"))
REDIS_RETRY_DELAY = float(os.getenv("REDIS_RETRY_DELAY", "2.0"))


class RedisClient:
    """
    Owns the redis.asyncio connection behind ScoreSink.

    Usage:
        redis_client = RedisClient()
        sink = await ScoreSink.create(redis_client)  # connect() + bootstrap
        ...
        await redis_client.close()
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        password: Optional[str] = None,
        db: Optional[int] = None,
        retry_attempts: int = REDIS_RETRY_ATTEMPTS,
        retry_delay: float = REDIS_RETRY_DELAY,
    ):
        self.host = host or os.getenv("REDIS_HOST", "localhost")
        self.port = port if port is not None else int(os.getenv("REDIS_PORT", "6379"))
        self.password = password or os.getenv("REDIS_PASSWORD", "")
        self.db = db if db is not None else int(os.getenv("REDIS_DB", "0"))
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._client: Optional["Redis"] = None

    @property
    def url(self) -> str:
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"

    async def connect(self) -> "Redis":
        """
        Open the sink connection, retrying PING up to retry_attempts times.

        Idempotent: a second call returns the live connection.
        """
        if self._client is not None:
            return self._client

        logger.info(f"Connecting score sink to Redis at {self.host}:{self.port}/{self.db}")
        last_error: Optional[Exception] = None

        for attempt in range(1, self.retry_attempts + 1):
            # decode_responses: sink members are "{ts}:{total}" strings
            self._client = redis.Redis.from_url(self.url, decode_responses=True)
            try:
                await self.ping()
            except ConnectionError as e:
                last_error = e
                await self._client.aclose()
                self._client = None
                if attempt < self.retry_attempts:
                    logger.warning(
                        f"Score sink Redis not ready (attempt {attempt}/{self.retry_attempts}): {e}, "
                        f"retrying in {self.retry_delay}s"
                    )
                    await asyncio.sleep(self.retry_delay)
                continue

            logger.info(f"Score sink Redis connected (attempt {attempt})")
            return self._client

        logger.error(f"Score sink Redis unreachable after {self.retry_attempts} attempts: {last_error}")
        raise ConnectionError(
            f"Failed to connect to Redis after {self.retry_attempts} attempts: {last_error}"
        )

    async def ping(self) -> bool:
        """Raises ConnectionError when not connected or Redis does not answer."""
        if self._client is None:
            raise ConnectionError("Redis client not connected")
        try:
            return await self._client.ping()
        except redis.ConnectionError as e:
            raise ConnectionError(f"Redis unavailable: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            logger.info("Closing score sink Redis connection")
            await self._client.aclose()
            self._client = None
