"""Redis分组缓存实现

每个分组维护一个代数计数器（generation）。条目写在
``{namespace}:group:{group}:{generation}:{key}`` 下，``clear_group`` 只需
``INCR`` 计数器即可让旧条目对所有读者同时失效；旧代数的键随后被异步
清理或随 TTL 过期。
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

from redis import asyncio as aioredis

from core.config import settings
from core.logging_config import get_logger

logger = get_logger(__name__)


def _json_dumps(value: Any) -> str:
    """将任意对象序列化为JSON字符串"""
    return json.dumps(value, default=str)


def _json_loads(value: Optional[str]) -> Any:
    """将JSON字符串反序列化为对象"""
    if value is None:
        return None
    return json.loads(value)


class RedisGroupCache:
    """基于Redis的分组缓存"""

    def __init__(
        self,
        client: aioredis.Redis,
        namespace: str = "",
        default_ttl: Optional[int] = None,
    ) -> None:
        self._client = client
        self._namespace = namespace.strip(":")
        self._default_ttl = settings.redis.default_ttl if default_ttl is None else default_ttl

    def _group_prefix(self, group: str) -> str:
        if not self._namespace:
            return f"group:{group}"
        return f"{self._namespace}:group:{group}"

    def _generation_key(self, group: str) -> str:
        return f"{self._group_prefix(group)}:gen"

    def _entry_key(self, group: str, generation: int, key: str) -> str:
        return f"{self._group_prefix(group)}:{generation}:{key}"

    async def _generation(self, group: str) -> int:
        value = await self._client.get(self._generation_key(group))
        return int(value) if value is not None else 0

    async def get(self, group: str, key: str) -> Any:
        generation = await self._generation(group)
        value = await self._client.get(self._entry_key(group, generation, key))
        return _json_loads(value)

    async def set(self, group: str, key: str, value: Any, ttl: Optional[int] = None) -> None:
        payload = _json_dumps(value)
        expire = self._default_ttl if ttl is None else ttl
        generation = await self._generation(group)
        entry_key = self._entry_key(group, generation, key)
        if expire and expire > 0:
            await self._client.set(entry_key, payload, ex=expire)
        else:
            await self._client.set(entry_key, payload)
        if await self._generation(group) != generation:
            # 写入期间分组被清空，旧代数的清理可能已扫描完毕
            await self._client.delete(entry_key)

    async def delete(self, group: str, key: str) -> None:
        generation = await self._generation(group)
        await self._client.delete(self._entry_key(group, generation, key))

    async def clear_group(self, group: str) -> None:
        previous = await self._client.incr(self._generation_key(group)) - 1
        # 旧代数已不可见，清理失败只会留下等待过期的键
        try:
            await self._purge_generation(group, previous)
        except Exception as exc:
            logger.warning("cache_group_purge_failed", group=group, generation=previous, error=str(exc))

    async def _purge_generation(self, group: str, generation: int) -> None:
        pattern = f"{self._group_prefix(group)}:{generation}:*"
        batch: list[str] = []
        async for entry_key in self._client.scan_iter(match=pattern, count=500):
            batch.append(entry_key)
            if len(batch) >= 500:
                await self._client.delete(*batch)
                batch = []
        if batch:
            await self._client.delete(*batch)

    async def list_group(self, group: str) -> list[Any]:
        generation = await self._generation(group)
        pattern = f"{self._group_prefix(group)}:{generation}:*"
        keys = [k async for k in self._client.scan_iter(match=pattern, count=500)]
        if not keys:
            return []
        values = await self._client.mget(keys)
        # 扫描与读取之间过期的键返回 None
        return [_json_loads(v) for v in values if v is not None]

    async def ping(self) -> bool:
        return bool(await self._client.ping())


_redis_client: Optional[aioredis.Redis] = None
_cache_instance: Optional[RedisGroupCache] = None
_lock = asyncio.Lock()


async def init_redis_cache(namespace: Optional[str] = None) -> RedisGroupCache:
    """初始化Redis缓存实例"""
    global _redis_client, _cache_instance

    if _cache_instance is not None:
        return _cache_instance

    async with _lock:
        if _cache_instance is not None:
            return _cache_instance

        if not settings.redis.url:
            raise RuntimeError("redis.url 未配置，无法初始化Redis缓存")

        client = aioredis.from_url(
            settings.redis.url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.redis.max_connections,
        )

        _redis_client = client
        _cache_instance = RedisGroupCache(
            client=client,
            namespace=namespace or settings.redis.namespace,
        )
        logger.info("redis_cache_initialized", namespace=namespace or settings.redis.namespace)
        return _cache_instance


async def shutdown_redis_cache() -> None:
    """关闭Redis连接"""
    global _redis_client, _cache_instance

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        _cache_instance = None
