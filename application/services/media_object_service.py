"""Application layer orchestration for media uploads, reads and deletes.

Durable facts (blob bytes, metadata rows) are written first and their
failures surface to the caller. Cache writes, list invalidation and the
completion signal follow and are best-effort.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import ValidationError

from application import cache_groups
from application.dto import (
    DeleteResultDTO,
    DirectUploadResponseDTO,
    MediaListDTO,
    MediaObjectDTO,
    PendingUploadDTO,
    UploadCompletedEvent,
    UploadGrantResponseDTO,
)
from application.ports.cache import GroupCachePort
from application.ports.events import CompletionPublisher
from application.ports.storage import BlobStorePort
from application.services.best_effort_cache import best_effort
from application.utils.storage import build_storage_key
from core.config import settings
from core.logging_config import get_logger
from domain.common.exceptions import (
    DomainValidationException,
    EmptyPayloadException,
    FileTooLargeException,
    InvalidMediaIdException,
    MediaObjectNotFoundException,
    UploadNotConfirmedException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.media_object import MediaObject, new_media_id, normalize_media_id

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MediaObjectApplicationService:
    """Upload coordinator plus the cache-aside read and delete paths."""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        storage: BlobStorePort,
        cache: GroupCachePort,
        publisher: Optional[CompletionPublisher] = None,
    ):
        self._uow_factory = uow_factory
        self._storage = storage
        self._cache = best_effort(cache)
        self._publisher = publisher

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _ensure_id(media_id: str) -> str:
        canonical = normalize_media_id(media_id)
        if canonical is None:
            raise InvalidMediaIdException(media_id)
        return canonical

    def _default_filename(self) -> str:
        stamp = int(_utcnow().timestamp() * 1000)
        return f"recording-{stamp}.{settings.storage.default_extension}"

    async def _persist(self, media: MediaObject) -> MediaObject:
        async with self._uow_factory() as uow:
            return await uow.media_object_repository.upsert(media)

    async def _cache_object(self, dto: MediaObjectDTO) -> None:
        await self._cache.set(
            cache_groups.OBJECTS_BY_ID,
            dto.id,
            dto.model_dump(mode="json"),
            ttl=settings.cache.object_ttl,
        )

    async def _invalidate_lists(self) -> None:
        await self._cache.clear_group(cache_groups.LIST_RESULTS)

    async def _emit_completion(self, dto: MediaObjectDTO) -> None:
        if self._publisher is None:
            return
        event = UploadCompletedEvent(
            id=dto.id,
            storage_key=dto.storage_key,
            filename=dto.filename,
            content_type=dto.content_type,
            size_bytes=dto.size_bytes,
            public_url=dto.public_url,
        )
        try:
            await self._publisher.publish(event)
        except Exception as exc:
            logger.warning("completion_signal_failed", media_id=dto.id, error=str(exc))

    # ------------------------------------------------------------------
    # Upload coordinator
    # ------------------------------------------------------------------
    async def upload_direct(
        self,
        *,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> DirectUploadResponseDTO:
        """Store bytes, persist a complete record, then refresh caches and signal."""
        if not data:
            raise EmptyPayloadException()
        max_size = settings.storage.max_upload_size
        if max_size and len(data) > max_size:
            raise FileTooLargeException(size=len(data), max_size=max_size)

        media_id = new_media_id()
        fname = filename or self._default_filename()
        ctype = content_type or settings.storage.default_content_type
        key = build_storage_key(
            media_id,
            fname,
            prefix=settings.storage.key_prefix,
            default_ext=settings.storage.default_extension,
        )

        public_url = await self._storage.put(data, key, ctype)

        stored = await self._persist(
            MediaObject(
                id=media_id,
                filename=fname,
                content_type=ctype,
                storage_key=key,
                size_bytes=len(data),
                public_url=public_url,
            )
        )
        dto = MediaObjectDTO.model_validate(stored)

        await self._cache_object(dto)
        await self._invalidate_lists()
        await self._emit_completion(dto)

        logger.info("media_upload_completed", media_id=media_id, storage_key=key, size=len(data))
        return DirectUploadResponseDTO(
            id=dto.id,
            storage_key=dto.storage_key,
            public_url=dto.public_url,
            size_bytes=dto.size_bytes,
        )

    async def request_upload_grant(
        self,
        *,
        filename: str,
        content_type: Optional[str] = None,
        size_bytes: Optional[int] = None,
    ) -> UploadGrantResponseDTO:
        """Start a two-phase upload: reserve id and key, hand out a time-bounded grant."""
        max_size = settings.storage.max_upload_size
        if max_size and size_bytes and size_bytes > max_size:
            raise FileTooLargeException(size=size_bytes, max_size=max_size)

        media_id = new_media_id()
        ctype = content_type or settings.storage.default_content_type
        key = build_storage_key(
            media_id,
            filename,
            prefix=settings.storage.key_prefix,
            default_ext=settings.storage.default_extension,
        )

        grant = await self._storage.issue_grant(key, ctype)

        # Expected size stays on the grant; the row is provisional until the bytes land.
        await self._persist(
            MediaObject(
                id=media_id,
                filename=filename,
                content_type=ctype,
                storage_key=key,
                size_bytes=0,
                public_url="",
            )
        )

        pending = PendingUploadDTO(
            id=media_id,
            storage_key=key,
            filename=filename,
            content_type=ctype,
            grant_url=grant.url,
            method=grant.method,
            headers=grant.headers,
            expires_at=grant.expires_at,
            expected_size=size_bytes,
        )
        await self._cache.set(
            cache_groups.PENDING_UPLOADS,
            media_id,
            pending.model_dump(mode="json"),
            ttl=settings.cache.pending_upload_ttl,
        )
        await self._invalidate_lists()

        logger.info("media_upload_grant_issued", media_id=media_id, storage_key=key, expires_at=grant.expires_at)
        return UploadGrantResponseDTO(
            id=media_id,
            storage_key=key,
            grant_url=grant.url,
            method=grant.method,
            headers=grant.headers,
            expires_at=grant.expires_at,
        )

    async def get_pending_grant(self, media_id: str) -> PendingUploadDTO:
        media_id = self._ensure_id(media_id)
        cached = await self._cache.get(cache_groups.PENDING_UPLOADS, media_id)
        if cached is None:
            raise MediaObjectNotFoundException(media_id)
        return PendingUploadDTO.model_validate(cached)

    async def complete_upload(self, media_id: str) -> MediaObjectDTO:
        """Client follow-up for a two-phase upload once its transfer finished."""
        media_id = self._ensure_id(media_id)
        async with self._uow_factory(readonly=True) as uow:
            media = await uow.media_object_repository.get_by_id(media_id)
        if media is None:
            raise MediaObjectNotFoundException(media_id)

        if not media.is_complete:
            stored_object = await self._storage.head(media.storage_key)
            if stored_object is None:
                raise UploadNotConfirmedException(media_id, media.storage_key)
            if stored_object.size <= 0:
                raise DomainValidationException(
                    "Uploaded object is empty",
                    field="size_bytes",
                    details={"storage_key": media.storage_key},
                )
            media.mark_complete(
                size_bytes=stored_object.size,
                public_url=await self._storage.public_url(media.storage_key),
            )
            media = await self._persist(media)

        dto = MediaObjectDTO.model_validate(media)
        await self._cache_object(dto)
        await self._cache.delete(cache_groups.PENDING_UPLOADS, media_id)
        await self._invalidate_lists()
        await self._emit_completion(dto)

        logger.info("media_upload_confirmed", media_id=media_id, size=dto.size_bytes)
        return dto

    # ------------------------------------------------------------------
    # Read path (cache-aside)
    # ------------------------------------------------------------------
    async def get_media(self, media_id: str) -> MediaObjectDTO:
        media_id = self._ensure_id(media_id)
        cached = await self._cache.get(cache_groups.OBJECTS_BY_ID, media_id)
        if cached is not None:
            try:
                return MediaObjectDTO.model_validate(cached)
            except ValidationError:
                logger.warning("cache_entry_invalid", group=cache_groups.OBJECTS_BY_ID, key=media_id)

        async with self._uow_factory(readonly=True) as uow:
            media = await uow.media_object_repository.get_by_id(media_id)
        if media is None:
            raise MediaObjectNotFoundException(media_id)

        dto = MediaObjectDTO.model_validate(media)
        await self._cache_object(dto)
        return dto

    async def list_media(self, limit: Optional[int] = None) -> MediaListDTO:
        limit = settings.media.default_page_size if limit is None else limit
        if limit < 1 or limit > settings.media.max_page_size:
            raise DomainValidationException(
                "Invalid page size",
                field="limit",
                details={"limit": limit, "max": settings.media.max_page_size},
            )

        fingerprint = cache_groups.list_fingerprint(limit)
        cached = await self._cache.get(cache_groups.LIST_RESULTS, fingerprint)
        if cached is not None:
            try:
                result = MediaListDTO.model_validate(cached)
                logger.debug("media_list_cache_hit", limit=limit, count=result.count)
                return result
            except ValidationError:
                logger.warning("cache_entry_invalid", group=cache_groups.LIST_RESULTS, key=fingerprint)

        async with self._uow_factory(readonly=True) as uow:
            records = await uow.media_object_repository.list_recent(limit)

        items = [MediaObjectDTO.model_validate(m) for m in records]
        result = MediaListDTO(items=items, count=len(items))
        await self._cache.set(
            cache_groups.LIST_RESULTS,
            fingerprint,
            result.model_dump(mode="json"),
            ttl=settings.cache.list_ttl,
        )
        return result

    # ------------------------------------------------------------------
    # Delete path
    # ------------------------------------------------------------------
    async def delete_media(self, media_id: str) -> DeleteResultDTO:
        """Durable delete is the commit point; cache cleanup follows."""
        media_id = self._ensure_id(media_id)
        async with self._uow_factory() as uow:
            deleted = await uow.media_object_repository.delete_by_id(media_id)
        if not deleted:
            raise MediaObjectNotFoundException(media_id)

        await self._evict(media_id)
        await self._invalidate_lists()
        logger.info("media_deleted", media_id=media_id)
        return DeleteResultDTO(id=media_id, deleted=True)

    async def _evict(self, media_id: str) -> None:
        await self._cache.delete(cache_groups.OBJECTS_BY_ID, media_id)
        await self._cache.delete(cache_groups.PENDING_UPLOADS, media_id)

    async def reap_provisional(self, older_than_seconds: int, *, batch_size: int = 100) -> int:
        """Delete provisional rows older than the given age; returns how many went."""
        if older_than_seconds <= 0:
            return 0
        cutoff = _utcnow() - timedelta(seconds=older_than_seconds)
        async with self._uow_factory(readonly=True) as uow:
            stale = await uow.media_object_repository.list_provisional_before(cutoff, limit=batch_size)

        reaped = 0
        for media in stale:
            # 扫描之后可能已被 complete 或对账补全，删除时重新校验
            async with self._uow_factory() as uow:
                if not await uow.media_object_repository.delete_provisional_by_id(media.id, cutoff):
                    logger.info("provisional_reap_skipped", media_id=media.id)
                    continue
            await self._evict(media.id)
            reaped += 1
            logger.info("provisional_media_reaped", media_id=media.id, storage_key=media.storage_key)
        if reaped:
            await self._invalidate_lists()
        return reaped
