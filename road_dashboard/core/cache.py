"""
@file cache.py
@brief Redis response cache
@details
Thin wrapper over the async Redis client used for the statistics and
heat-map responses. The cache is optional: when Redis cannot be reached
every operation becomes a no-op and requests go straight to PostGIS.

Cache keys embed the dataset version of RoadDataService, so a reload
makes older entries unreachable immediately; invalidate() additionally
deletes them from Redis. The import CLIs run in their own process and
call invalidate_sync() after a successful load.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import json
import logging
from typing import Optional, Any

import redis as redis_sync
import redis.asyncio as redis

logger = logging.getLogger(__name__)

## @brief Namespace of every key written by the dashboard
KEY_PREFIX = "road_dashboard"


def cache_key(*parts: Any) -> str:
    """@brief Join key parts under the dashboard namespace"""
    return ":".join([KEY_PREFIX] + [str(p) for p in parts])


class RedisCache:
    """
    @brief Async Redis client with degraded (no-op) mode
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", default_ttl: int = 300):
        self.redis_url = redis_url
        self.default_ttl = default_ttl
        self.client: Optional[redis.Redis] = None

    async def connect(self):
        """
        @brief Initialize Redis connection pool
        @details Leaves the cache disabled when the server does not answer PING.
        """
        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            await self.client.ping()
            logger.info(f"Connected to Redis at {self.redis_url}")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self.client = None

    async def close(self):
        if self.client:
            await self.client.close()
            self.client = None
            logger.info("Redis connection closed")

    async def get(self, key: str) -> Optional[Any]:
        """
        @brief Retrieve value from cache
        """
        if not self.client:
            return None
        try:
            value = await self.client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.warning(f"Redis get error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """
        @brief Set value in cache with TTL [default: default_ttl]
        """
        if not self.client:
            return
        try:
            serialized = json.dumps(value)
            await self.client.setex(key, ttl or self.default_ttl, serialized)
        except Exception as e:
            logger.warning(f"Redis set error for {key}: {e}")

    async def invalidate(self, prefix: str = KEY_PREFIX) -> int:
        """
        @brief Delete every key starting with prefix
        @return Number of deleted keys
        """
        if not self.client:
            return 0
        deleted = 0
        try:
            async for key in self.client.scan_iter(match=f"{prefix}*"):
                deleted += await self.client.delete(key)
        except Exception as e:
            logger.warning(f"Redis invalidate error for {prefix}: {e}")
        if deleted:
            logger.info(f"Invalidated {deleted} cached responses under {prefix}")
        return deleted


def invalidate_sync(redis_url: str, prefix: str = KEY_PREFIX) -> int:
    """
    @brief Delete every key starting with prefix using a blocking client
    @return Number of deleted keys; 0 when Redis is unreachable
    """
    deleted = 0
    try:
        client = redis_sync.Redis.from_url(redis_url)
        try:
            for key in client.scan_iter(match=f"{prefix}*"):
                deleted += client.delete(key)
        finally:
            client.close()
    except redis_sync.RedisError as e:
        logger.warning(f"Redis invalidate error for {prefix}: {e}")
        return deleted
    logger.info(f"Invalidated {deleted} cached responses under {prefix}")
    return deleted
