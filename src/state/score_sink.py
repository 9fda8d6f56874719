# EnergyScheduler/src/state/score_sink.py
# @ai-rules:
# 1. [Pattern]: Write-only from the monitor. history() exists for the read-only /scores routes.
# 2. [Pattern]: Bootstrap (schema marker + connectivity) runs once in create(); a failure there is fatal at startup.
# 3. [Gotcha]: Catch redis.RedisError specifically and re-raise as SinkError -- NEVER bare Exception.
"""
Score time-series sink.

Redis Schema:
    joules:schema               STRING  {schema version}  (SET NX on bootstrap)
    joules:hosts                SET     [hostnames with at least one point]
    joules:{hostname}           ZSET    {"{timestamp}:{total}": timestamp}
"""
from __future__ import annotations

import logging
import os
import time
from typing import TYPE_CHECKING, List, Optional

from redis.exceptions import RedisError

from ..models import ScorePoint

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from .redis_client import RedisClient

logger = logging.getLogger(__name__)

MEASUREMENT = "joules"
SCHEMA_KEY = f"{MEASUREMENT}:schema"
HOSTS_KEY = f"{MEASUREMENT}:hosts"
SCHEMA_VERSION = "1"

SCORE_RETENTION_SECONDS = int(os.getenv("SCORE_RETENTION_SECONDS", "86400"))


class SinkError(Exception):
    """Time-series write or read failed."""


def series_key(hostname: str) -> str:
    return f"{MEASUREMENT}:{hostname}"


class ScoreSink:
    """Inserts (hostname, total, timestamp) points into per-host sorted sets."""

    def __init__(self, redis: "Redis", retention_seconds: int = SCORE_RETENTION_SECONDS):
        self.redis = redis
        self.retention_seconds = retention_seconds

    @classmethod
    async def create(cls, redis_client: "RedisClient") -> "ScoreSink":
        """Connect and bootstrap. Raises ConnectionError or SinkError on failure."""
        sink = cls(await redis_client.connect())
        await sink.bootstrap()
        return sink

    async def bootstrap(self) -> None:
        """Create the schema marker if it does not exist yet."""
        try:
            created = await self.redis.set(SCHEMA_KEY, SCHEMA_VERSION, nx=True)
        except RedisError as e:
            raise SinkError(f"Could not bootstrap score sink: {e}") from e
        if created:
            logger.info(f"Created score sink schema (version {SCHEMA_VERSION})")

    async def insert(self, hostname: str, total: float, timestamp: Optional[float] = None) -> None:
        """
        Record a score value with retention trimming.

        Args:
            hostname: Node name (series tag)
            total: Cumulative score
            timestamp: Unix seconds, defaults to now
        """
        now = time.time() if timestamp is None else timestamp
        key = series_key(hostname)
        try:
            # Timestamp in the member keeps repeated values distinct
            await self.redis.zadd(key, {f"{now}:{total}": now})
            await self.redis.sadd(HOSTS_KEY, hostname)
            await self.redis.zremrangebyscore(key, "-inf", now - self.retention_seconds)
        except RedisError as e:
            raise SinkError(f"Could not write score for {hostname}: {e}") from e

    async def history(
        self,
        hostname: str,
        start_time: Optional[float] = None,
        end_time: Optional[float] = None,
    ) -> List[ScorePoint]:
        """Points for one host within [start_time, end_time], oldest first."""
        start = start_time if start_time is not None else 0
        end = end_time if end_time is not None else time.time()
        try:
            results = await self.redis.zrangebyscore(series_key(hostname), start, end, withscores=True)
        except RedisError as e:
            raise SinkError(f"Could not read scores for {hostname}: {e}") from e

        points: List[ScorePoint] = []
        for member, score in results:
            parts = member.split(":")
            if len(parts) < 2:
                continue
            try:
                points.append(ScorePoint(timestamp=score, value=float(parts[1])))
            except ValueError:
                logger.debug(f"Skipping malformed score member {member!r} for {hostname}")
        return points

    async def hosts(self) -> list[str]:
        try:
            return sorted(await self.redis.smembers(HOSTS_KEY))
        except RedisError as e:
            raise SinkError(f"Could not list score hosts: {e}") from e
