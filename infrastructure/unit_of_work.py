"""SQLAlchemy Unit of Work：一个 UoW 对应一个 AsyncSession"""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from domain.common.exceptions import MetadataStoreException
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.media_object_repository import (
    SQLAlchemyMediaObjectRepository,
)

SessionFactory = Callable[[], AsyncSession]


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(
        self,
        session_factory: SessionFactory = AsyncSessionLocal,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self._transaction: Optional[AsyncSessionTransaction] = None
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        self.session = self._session_factory()
        self.media_object_repository = SQLAlchemyMediaObjectRepository(self.session)
        # 只读 UoW 不显式开启事务，由 autobegin 处理查询
        if not self.readonly:
            self._transaction = await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self._transaction is not None and self._transaction.is_active:
                await self._transaction.close()
            self._transaction = None
            if self.session is not None:
                await self.session.close()
                self.session = None

    async def commit(self) -> None:
        if self.session is not None and self.session.in_transaction():
            try:
                await self.session.commit()
            except SQLAlchemyError as exc:
                # 提交阶段的约束冲突、断连等同样属于元数据存储故障
                raise MetadataStoreException("commit", str(exc)) from exc
        self._committed = True

    async def rollback(self) -> None:
        if self.session is not None and self.session.in_transaction():
            try:
                await self.session.rollback()
            except SQLAlchemyError as exc:
                raise MetadataStoreException("rollback", str(exc)) from exc
        self._committed = False


def uow_factory(session_factory: SessionFactory = AsyncSessionLocal):
    """返回 ``factory(readonly=...)``，供应用服务按需创建 UoW。"""

    def _factory(*, readonly: bool = False) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory, readonly=readonly)

    return _factory
