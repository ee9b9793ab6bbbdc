"""
Connections to systems outside the process.
Redis backs the distributed per-event admission lock.
"""

from .redis_client import RedisClient, get_redis

__all__ = ["RedisClient", "get_redis"]
