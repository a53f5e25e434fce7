"""分组缓存实现：Redis（生产）与进程内字典（未配置 Redis 时及测试）。"""
from .memory_cache import InMemoryGroupCache
from .redis_cache import RedisGroupCache, init_redis_cache, shutdown_redis_cache

__all__ = ["InMemoryGroupCache", "RedisGroupCache", "init_redis_cache", "shutdown_redis_cache"]
