"""Grouped cache port.

Groups are disjoint namespaces. ``clear_group`` must look atomic to any
single reader: after it returns, no key written before the call is visible.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class GroupCachePort(Protocol):
    async def get(self, group: str, key: str) -> Optional[Any]: ...

    async def set(self, group: str, key: str, value: Any, ttl: Optional[int] = None) -> None: ...

    async def delete(self, group: str, key: str) -> None: ...

    async def clear_group(self, group: str) -> None: ...

    async def list_group(self, group: str) -> list[Any]: ...
