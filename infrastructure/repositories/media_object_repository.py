"""SQLAlchemy-backed repository for media object metadata."""
from __future__ import annotations

import functools
from datetime import datetime
from typing import Optional

from sqlalchemy import case, delete, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.exceptions import MetadataStoreException
from domain.media_object import MediaObject, MediaObjectRepository
from infrastructure.models.media_object import MediaObjectModel


def _translate_errors(operation: str):
    """Surface driver failures as the domain's metadata-store error."""
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except SQLAlchemyError as exc:
                raise MetadataStoreException(operation, str(exc)) from exc
        return wrapper
    return decorator


# 与 MediaObject.is_provisional 保持一致
_PROVISIONAL = or_(MediaObjectModel.size_bytes <= 0, MediaObjectModel.public_url == "")


class SQLAlchemyMediaObjectRepository(MediaObjectRepository):
    """Persist media objects using SQLAlchemy Core upserts and ORM reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: MediaObjectModel) -> MediaObject:
        return MediaObject(
            id=model.id,
            filename=model.filename,
            content_type=model.content_type,
            storage_key=model.storage_key,
            size_bytes=int(model.size_bytes or 0),
            public_url=model.public_url or "",
            created_at=model.created_at,
        )

    def _insert(self):
        dialect = self.session.bind.dialect.name if self.session.bind is not None else "postgresql"
        if dialect == "sqlite":
            return sqlite.insert(MediaObjectModel)
        if dialect == "postgresql":
            return postgresql.insert(MediaObjectModel)
        raise MetadataStoreException("upsert", f"unsupported dialect: {dialect}")

    @_translate_errors("upsert")
    async def upsert(self, media: MediaObject) -> MediaObject:
        stmt = self._insert().values(
            id=media.id,
            filename=media.filename,
            content_type=media.content_type,
            size_bytes=media.size_bytes,
            storage_key=media.storage_key,
            public_url=media.public_url or "",
            created_at=media.created_at,
        )
        excluded = stmt.excluded
        # id, storage_key and created_at are never part of the update set.
        stmt = stmt.on_conflict_do_update(
            index_elements=[MediaObjectModel.id],
            set_={
                "filename": excluded.filename,
                "content_type": excluded.content_type,
                "size_bytes": case(
                    (excluded.size_bytes > 0, excluded.size_bytes),
                    else_=MediaObjectModel.size_bytes,
                ),
                "public_url": case(
                    (excluded.public_url != "", excluded.public_url),
                    else_=MediaObjectModel.public_url,
                ),
            },
        )
        await self.session.execute(stmt)
        await self.session.flush()

        result = await self.session.execute(
            select(MediaObjectModel)
            .where(MediaObjectModel.id == media.id)
            .execution_options(populate_existing=True)
        )
        return self._to_entity(result.scalar_one())

    @_translate_errors("get_by_id")
    async def get_by_id(self, media_id: str) -> Optional[MediaObject]:
        result = await self.session.execute(
            select(MediaObjectModel).where(MediaObjectModel.id == media_id)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    @_translate_errors("list_recent")
    async def list_recent(self, limit: int) -> list[MediaObject]:
        query = (
            select(MediaObjectModel)
            .order_by(MediaObjectModel.created_at.desc(), MediaObjectModel.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self._to_entity(model) for model in result.scalars().all()]

    @_translate_errors("delete_by_id")
    async def delete_by_id(self, media_id: str) -> bool:
        result = await self.session.execute(
            delete(MediaObjectModel).where(MediaObjectModel.id == media_id)
        )
        await self.session.flush()
        return (result.rowcount or 0) > 0

    @_translate_errors("delete_provisional_by_id")
    async def delete_provisional_by_id(self, media_id: str, cutoff: datetime) -> bool:
        result = await self.session.execute(
            delete(MediaObjectModel)
            .where(MediaObjectModel.id == media_id)
            .where(MediaObjectModel.created_at < cutoff)
            .where(_PROVISIONAL)
        )
        await self.session.flush()
        return (result.rowcount or 0) > 0

    @_translate_errors("list_provisional_before")
    async def list_provisional_before(self, cutoff: datetime, limit: int = 100) -> list[MediaObject]:
        query = (
            select(MediaObjectModel)
            .where(MediaObjectModel.created_at < cutoff)
            .where(_PROVISIONAL)
            .order_by(MediaObjectModel.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self._to_entity(model) for model in result.scalars().all()]
