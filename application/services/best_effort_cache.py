"""Cache decorator that turns every cache failure into a logged miss/no-op."""
from __future__ import annotations

from typing import Any, Optional

from application.ports.cache import GroupCachePort
from core.logging_config import get_logger

logger = get_logger(__name__)


class BestEffortCache(GroupCachePort):
    """Wraps a grouped cache so callers never see cache errors.

    Reads degrade to a miss and writes/invalidation degrade to a no-op; the
    caller then falls back to the metadata store.
    """

    def __init__(self, inner: GroupCachePort):
        self._inner = inner

    @property
    def inner(self) -> GroupCachePort:
        return self._inner

    def _failed(self, op: str, group: str, key: Optional[str], exc: Exception) -> None:
        logger.warning(
            "cache_operation_failed",
            op=op,
            group=group,
            key=key,
            error=str(exc),
            error_type=type(exc).__name__,
        )

    async def get(self, group: str, key: str) -> Optional[Any]:
        try:
            return await self._inner.get(group, key)
        except Exception as exc:
            self._failed("get", group, key, exc)
            return None

    async def set(self, group: str, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            await self._inner.set(group, key, value, ttl=ttl)
        except Exception as exc:
            self._failed("set", group, key, exc)

    async def delete(self, group: str, key: str) -> None:
        try:
            await self._inner.delete(group, key)
        except Exception as exc:
            self._failed("delete", group, key, exc)

    async def clear_group(self, group: str) -> None:
        try:
            await self._inner.clear_group(group)
        except Exception as exc:
            self._failed("clear_group", group, None, exc)

    async def list_group(self, group: str) -> list[Any]:
        try:
            return await self._inner.list_group(group)
        except Exception as exc:
            self._failed("list_group", group, None, exc)
            return []


def best_effort(cache: GroupCachePort) -> BestEffortCache:
    if isinstance(cache, BestEffortCache):
        return cache
    return BestEffortCache(cache)
