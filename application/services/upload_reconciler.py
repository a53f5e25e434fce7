"""Asynchronous post-upload reconciliation.

Runs once per completion signal, possibly more than once for the same upload
(at-least-once delivery). Every step is idempotent and every failure is
absorbed here: the bytes are already in the blob store, so a redelivery would
only repeat work.
"""
from __future__ import annotations

from typing import Callable

from application import cache_groups
from application.dto import MediaObjectDTO, UploadCompletedEvent
from application.ports.cache import GroupCachePort
from application.ports.storage import BlobStorePort
from application.services.best_effort_cache import best_effort
from core.config import settings
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.media_object import MediaObject

logger = get_logger(__name__)


class UploadReconciler:
    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        storage: BlobStorePort,
        cache: GroupCachePort,
    ):
        self._uow_factory = uow_factory
        self._storage = storage
        self._cache = best_effort(cache)

    async def verify_exists(self, storage_key: str) -> bool:
        """Existence check memoized in ``existence-checks``.

        Only positive answers are cached: a missing object may still be in
        flight, and a cached ``False`` would hide it from later checks.
        """
        cached = await self._cache.get(cache_groups.EXISTENCE_CHECKS, storage_key)
        if cached is True:
            logger.debug("existence_check_cache_hit", storage_key=storage_key)
            return True

        try:
            exists = await self._storage.head_exists(storage_key)
        except Exception as exc:
            logger.warning("existence_check_failed", storage_key=storage_key, error=str(exc))
            return False

        if exists:
            await self._cache.set(
                cache_groups.EXISTENCE_CHECKS,
                storage_key,
                True,
                ttl=settings.cache.existence_ttl,
            )
        return bool(exists)

    async def handle(self, event: UploadCompletedEvent) -> None:
        log = logger.bind(media_id=event.id, storage_key=event.storage_key)
        try:
            exists = await self.verify_exists(event.storage_key)
            if not exists:
                # Advisory only; the transfer may still finish after this check.
                log.warning("reconcile_blob_missing")

            async with self._uow_factory() as uow:
                stored = await uow.media_object_repository.upsert(
                    MediaObject(
                        id=event.id,
                        filename=event.filename,
                        content_type=event.content_type,
                        storage_key=event.storage_key,
                        size_bytes=event.size_bytes,
                        public_url=event.public_url,
                    )
                )

            dto = MediaObjectDTO.model_validate(stored)
            await self._cache.set(
                cache_groups.OBJECTS_BY_ID,
                dto.id,
                dto.model_dump(mode="json"),
                ttl=settings.cache.object_ttl,
            )
            await self._cache.clear_group(cache_groups.LIST_RESULTS)
            log.info("reconcile_completed", blob_exists=exists)
        except Exception as exc:
            log.error("reconcile_failed", error=str(exc), error_type=type(exc).__name__, exc_info=True)
