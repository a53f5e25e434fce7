"""Assemble application services from configured infrastructure.

The API lifespan and the Celery tasks both build their handles here, so
cache, storage and event backends are chosen in one place.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from application.ports.cache import GroupCachePort
from application.ports.events import CompletionPublisher
from application.ports.storage import BlobStorePort
from application.services.cache_maintenance import CacheMaintenanceService
from application.services.media_object_service import MediaObjectApplicationService
from application.services.upload_reconciler import UploadReconciler
from core.config import settings
from core.logging_config import get_logger
from infrastructure.adapters.storage_port import BlobStorePortAdapter
from infrastructure.cache import InMemoryGroupCache, init_redis_cache
from infrastructure.database import AsyncSessionLocal
from infrastructure.events import CeleryCompletionPublisher, InMemoryCompletionChannel
from infrastructure.external.storage import init_storage_client
from infrastructure.unit_of_work import uow_factory

logger = get_logger(__name__)


@dataclass
class MediaComponents:
    cache: GroupCachePort
    storage: BlobStorePort
    media_service: MediaObjectApplicationService
    reconciler: UploadReconciler
    maintenance: CacheMaintenanceService
    channel: Optional[InMemoryCompletionChannel] = None


async def build_cache() -> GroupCachePort:
    if settings.redis.url:
        return await init_redis_cache()
    logger.warning("cache_backend_in_memory", message="redis.url not set, using process-local cache")
    return InMemoryGroupCache()


async def build_storage() -> BlobStorePort:
    provider = await init_storage_client()
    return BlobStorePortAdapter(provider)


def build_publisher() -> CompletionPublisher:
    backend = (settings.events.backend or "memory").lower()
    if backend == "celery":
        return CeleryCompletionPublisher()
    if backend != "memory":
        raise ValueError(f"Unsupported events backend: {settings.events.backend}")
    return InMemoryCompletionChannel(maxsize=settings.events.queue_maxsize)


def ensure_shared_cache() -> None:
    """Celery 模式下 API 与 worker 分属不同进程，必须共用 Redis 缓存。

    否则 worker 对账写入的条目对 API 进程不可见，列表缓存也不会随之失效。
    """
    backend = (settings.events.backend or "memory").lower()
    if backend == "celery" and not settings.redis.url:
        raise ValueError("events.backend=celery requires redis.url so the API and workers share one cache")


def assemble(
    *,
    cache: GroupCachePort,
    storage: BlobStorePort,
    publisher: Optional[CompletionPublisher] = None,
    session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
) -> MediaComponents:
    make_uow = uow_factory(session_factory)
    media_service = MediaObjectApplicationService(
        uow_factory=make_uow,
        storage=storage,
        cache=cache,
        publisher=publisher,
    )
    return MediaComponents(
        cache=cache,
        storage=storage,
        media_service=media_service,
        reconciler=UploadReconciler(uow_factory=make_uow, storage=storage, cache=cache),
        maintenance=CacheMaintenanceService(cache, media_service=media_service),
        channel=publisher if isinstance(publisher, InMemoryCompletionChannel) else None,
    )


async def build_components(
    *,
    session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
    with_publisher: bool = True,
) -> MediaComponents:
    """Build every handle from settings; workers pass ``with_publisher=False``."""
    ensure_shared_cache()
    return assemble(
        cache=await build_cache(),
        storage=await build_storage(),
        publisher=build_publisher() if with_publisher else None,
        session_factory=session_factory,
    )
