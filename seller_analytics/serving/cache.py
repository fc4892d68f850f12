"""
Redis Cache Module

Short-lived report snapshots keyed by store and query parameters. The
cache is optional: when Redis is disabled or unreachable, reports are
always computed from the database.
"""

import hashlib
import json
from typing import Any, Dict, Optional, Union
from datetime import timedelta

import structlog
from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError

from seller_analytics.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Optional[Redis]:
    """
    Initialize Redis connection pool.

    Returns None when caching is disabled or the server does not answer;
    the API keeps serving uncached reports in that case.
    """
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    if not settings.redis.enabled:
        logger.info("Redis cache disabled")
        return None

    _redis_pool = ConnectionPool.from_url(
        settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=True,
    )
    client = Redis(connection_pool=_redis_pool)

    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("Redis unavailable, report cache off", error=str(e))
        await _redis_pool.disconnect()
        _redis_pool = None
        return None

    _redis_client = client
    logger.info("Redis connection established")
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("Redis connection closed")


def is_redis_ready() -> bool:
    return _redis_client is not None


def get_redis() -> Redis:
    """Get Redis client instance"""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


async def cache_get(key: str) -> Optional[Any]:
    """
    Get value from cache.

    Args:
        key: Cache key

    Returns:
        Cached value or None if not found
    """
    client = get_redis()
    value = await client.get(key)

    if value is None:
        return None

    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


async def cache_set(
    key: str,
    value: Any,
    ttl: Optional[Union[int, timedelta]] = None,
) -> bool:
    """
    Set value in cache.

    Args:
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time-to-live in seconds or timedelta

    Returns:
        True if successful
    """
    client = get_redis()

    try:
        serialized = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.warning(f"Failed to serialize value for cache: {e}")
        return False

    if ttl:
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        await client.setex(key, ttl, serialized)
    else:
        await client.set(key, serialized)

    return True


async def cache_delete_pattern(pattern: str) -> int:
    """Delete all keys matching pattern"""
    client = get_redis()
    keys = [key async for key in client.scan_iter(match=pattern)]

    if not keys:
        return 0

    return await client.delete(*keys)


def params_digest(params: Dict[str, Any]) -> str:
    """Stable short digest of query parameters"""
    payload = json.dumps(params, sort_keys=True, default=str)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]


class CacheManager:
    """
    Cache manager with namespace support and automatic key generation.

    Example:
        cache = CacheManager("reports")
        await cache.set("store-1:abc", report, ttl=300)
        report = await cache.get("store-1:abc")
    """

    def __init__(self, namespace: str, default_ttl: int = 3600):
        self.namespace = namespace
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache, None on miss or when Redis is off"""
        if not is_redis_ready():
            return None
        try:
            return await cache_get(self._key(key))
        except RedisError as e:
            logger.warning("Cache read failed", namespace=self.namespace, error=str(e))
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> bool:
        """Set value in cache"""
        if not is_redis_ready():
            return False
        try:
            return await cache_set(self._key(key), value, ttl or self.default_ttl)
        except RedisError as e:
            logger.warning("Cache write failed", namespace=self.namespace, error=str(e))
            return False

    async def invalidate_prefix(self, prefix: str) -> int:
        """Invalidate all keys in namespace starting with prefix"""
        if not is_redis_ready():
            return 0
        try:
            deleted = await cache_delete_pattern(f"{self.namespace}:{prefix}*")
        except RedisError as e:
            logger.warning("Cache invalidation failed", namespace=self.namespace, error=str(e))
            return 0
        logger.debug("Cache invalidated", namespace=self.namespace, prefix=prefix, keys=deleted)
        return deleted


# Report snapshots; invalidated per store whenever its inputs change
reports_cache = CacheManager("reports", default_ttl=settings.analytics.report_cache_ttl_seconds)


def report_cache_key(store_id: str, params: Dict[str, Any]) -> str:
    return f"{store_id}:{params_digest(params)}"


async def invalidate_store_reports(store_id: str) -> int:
    return await reports_cache.invalidate_prefix(f"{store_id}:")
