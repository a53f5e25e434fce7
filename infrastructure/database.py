"""
数据库引擎与会话工厂

API 进程共用模块级连接池引擎；Celery 任务每次 ``asyncio.run`` 都是新的事件循环，
需通过 ``isolated_session_factory`` 拿一个用完即弃的 NullPool 引擎。
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.config import settings
from infrastructure.models import Base

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def _build_async_url(database_url: str) -> str:
    """未显式指定驱动时补上异步驱动；只支持 PostgreSQL 与 SQLite。"""
    url = make_url(database_url)
    if "+" in url.drivername:
        return database_url
    if url.drivername not in _ASYNC_DRIVERS:
        raise ValueError(f"不支持的数据库驱动: {url.drivername}，请改用 PostgreSQL 或 SQLite")
    return url.set(drivername=_ASYNC_DRIVERS[url.drivername]).render_as_string(hide_password=False)


def _make_engine(**kwargs) -> AsyncEngine:
    return create_async_engine(_build_async_url(settings.database.url), **kwargs)


engine = _make_engine(echo=settings.DEBUG, pool_pre_ping=True)

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_tables():
    """按模型建表，仅开发/测试使用；生产走 Alembic 迁移"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables():
    """删除全部表（测试清理用）"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@asynccontextmanager
async def isolated_session_factory() -> AsyncIterator[async_sessionmaker]:
    task_engine = _make_engine(poolclass=NullPool)
    try:
        yield async_sessionmaker(bind=task_engine, expire_on_commit=False)
    finally:
        await task_engine.dispose()
