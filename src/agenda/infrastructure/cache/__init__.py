"""Cache backends for the cache-aside accessor."""

from agenda.infrastructure.cache.memory_cache import InMemoryContactCache
from agenda.infrastructure.cache.redis_cache import RedisContactCache, create_redis_client

__all__ = ["InMemoryContactCache", "RedisContactCache", "create_redis_client"]
