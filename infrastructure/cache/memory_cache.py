"""进程内分组缓存（开发与测试环境使用）"""
from __future__ import annotations

import json
import time
from typing import Any, Callable, Optional

from core.config import settings


class InMemoryGroupCache:
    """Dict-backed grouped cache with per-entry TTL.

    Values are stored as JSON text so callers get the same copy semantics
    as with Redis.
    """

    def __init__(
        self,
        default_ttl: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._groups: dict[str, dict[str, tuple[str, Optional[float]]]] = {}
        self._default_ttl = settings.redis.default_ttl if default_ttl is None else default_ttl
        self._clock = clock

    def _live(self, group: str) -> dict[str, tuple[str, Optional[float]]]:
        entries = self._groups.setdefault(group, {})
        now = self._clock()
        expired = [k for k, (_, exp) in entries.items() if exp is not None and exp <= now]
        for k in expired:
            del entries[k]
        return entries

    async def get(self, group: str, key: str) -> Any:
        entry = self._live(group).get(key)
        if entry is None:
            return None
        return json.loads(entry[0])

    async def set(self, group: str, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expire = self._default_ttl if ttl is None else ttl
        expires_at = self._clock() + expire if expire and expire > 0 else None
        self._groups.setdefault(group, {})[key] = (json.dumps(value, default=str), expires_at)

    async def delete(self, group: str, key: str) -> None:
        self._groups.get(group, {}).pop(key, None)

    async def clear_group(self, group: str) -> None:
        # 整体替换字典，单线程事件循环下对读者是原子的
        self._groups[group] = {}

    async def list_group(self, group: str) -> list[Any]:
        return [json.loads(payload) for payload, _ in self._live(group).values()]

    async def ping(self) -> bool:
        return True
