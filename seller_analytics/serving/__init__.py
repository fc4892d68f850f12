"""
Serving Module
"""
from .cache import init_redis, close_redis, is_redis_ready, reports_cache

__all__ = [
    "init_redis",
    "close_redis",
    "is_redis_ready",
    "reports_cache",
]
