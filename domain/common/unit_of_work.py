"""Unit of Work 抽象

媒体服务的每次持久化动作（upsert / delete / 对账）都在一个 UoW 内完成：
正常退出自动提交，异常退出回滚；``readonly=True`` 用于读路径，不提交。
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.media_object.repository import MediaObjectRepository


class AbstractUnitOfWork(ABC):
    media_object_repository: MediaObjectRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self.readonly = readonly
        self._committed = False

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            await self.rollback()
        elif not self.readonly and not self._committed:
            await self.commit()

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...
