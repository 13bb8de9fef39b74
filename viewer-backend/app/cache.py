from __future__ import annotations
"""Redis-backed JSON cache for remote CRS lookups, with a no-op fallback.

Usage:
    from app.cache import build_cache_from_env
    cache = await build_cache_from_env()
    await cache.add_json("crs_search:indiana", [...])
    data = await cache.get_json("crs_search:indiana")

Writes are additive: `add_json` never replaces an existing key, so readers
never see an entry change underneath them. Connection errors are logged and
swallowed; a missing Redis simply means every lookup is a miss.
"""
import os
import json
import asyncio
import logging
from typing import Any, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class _NoopCache:
    async def get_json(self, key: str):  # pragma: no cover - trivial
        return None
    async def add_json(self, key: str, value: Any, ttl: int | None = None):  # pragma: no cover - trivial
        return False
    async def close(self):  # pragma: no cover - trivial
        return None


class RedisCache:
    def __init__(self, client: Any, prefix: str = "location", default_ttl: int = 86400):
        self.client = client
        self.prefix = prefix.rstrip(":")
        self.default_ttl = default_ttl

    def _k(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    async def get_json(self, key: str) -> Optional[Any]:
        try:
            raw = await self.client.get(self._k(key))
        except redis.RedisError as e:  # pragma: no cover (network issues)
            logger.debug("Redis get failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.info("Ignoring corrupt cache entry %s", key)
            return None

    async def add_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store `value` unless the key already exists. Returns True if written."""
        data = json.dumps(value, separators=(",", ":"))
        ex = ttl if ttl is not None else self.default_ttl
        try:
            return bool(await self.client.set(self._k(key), data, ex=ex, nx=True))
        except redis.RedisError as e:  # pragma: no cover
            logger.debug("Redis set failed for %s: %s", key, e)
            return False

    async def close(self):  # pragma: no cover - rarely used
        try:
            await self.client.aclose()
        except redis.RedisError:
            pass


async def build_cache_from_env() -> RedisCache | _NoopCache:
    """Instantiate a RedisCache if REDIS_URL is set and reachable; else a no-op.

    Env vars:
      REDIS_URL          e.g. redis://redis:6379/0
      CACHE_DISABLE=1    force disable
      CACHE_PREFIX       (optional) namespace prefix (default 'location')
      CACHE_TTL_SECONDS  (optional) default TTL (int, default 86400)
    """
    if os.getenv("CACHE_DISABLE") == "1":
        return _NoopCache()
    url = os.getenv("REDIS_URL")
    if not url:
        return _NoopCache()
    try:
        client = redis.from_url(url, encoding="utf-8", decode_responses=False)
        # Short ping so startup isn't held up by an absent Redis
        await asyncio.wait_for(client.ping(), timeout=0.75)
        prefix = os.getenv("CACHE_PREFIX", "location")
        ttl = int(os.getenv("CACHE_TTL_SECONDS", "86400"))
        return RedisCache(client, prefix=prefix, default_ttl=ttl)
    except (redis.RedisError, asyncio.TimeoutError, OSError, ValueError) as e:  # pragma: no cover (network issues)
        logger.info("Redis unavailable (%s); proceeding without cache", e)
        return _NoopCache()
