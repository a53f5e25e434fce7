"""Media reconciliation and maintenance Celery tasks.

Each task runs its coroutine under ``asyncio.run`` with a throwaway
NullPool engine, since pooled connections cannot cross event loops.
"""
from __future__ import annotations

import asyncio
from typing import Any

from celery import shared_task

from application.dto import UploadCompletedEvent
from core.logging_config import get_logger
from infrastructure.bootstrap import build_components
from infrastructure.cache import shutdown_redis_cache
from infrastructure.database import isolated_session_factory
from infrastructure.external.storage import shutdown_storage_client
from ..utils.base_task import BaseTask
from ..utils.dispatcher import CACHE_MAINTENANCE, RECONCILE_UPLOAD

logger = get_logger(__name__)


async def _reconcile(payload: dict[str, Any]) -> None:
    event = UploadCompletedEvent.model_validate(payload)
    async with isolated_session_factory() as session_factory:
        try:
            components = await build_components(session_factory=session_factory, with_publisher=False)
            await components.reconciler.handle(event)
        finally:
            await shutdown_redis_cache()
            await shutdown_storage_client()


async def _maintain() -> dict[str, Any]:
    async with isolated_session_factory() as session_factory:
        try:
            components = await build_components(session_factory=session_factory, with_publisher=False)
            stats = await components.maintenance.run()
        finally:
            await shutdown_redis_cache()
            await shutdown_storage_client()
    return stats.model_dump()


@shared_task(name=RECONCILE_UPLOAD, bind=True, base=BaseTask)
def reconcile_upload(self, event: dict[str, Any]) -> None:
    """Post-upload reconciliation; failures are logged, never retried."""
    try:
        asyncio.run(_reconcile(event))
    except Exception as exc:
        logger.error("reconcile_task_failed", media_id=event.get("id"), error=str(exc))


@shared_task(name=CACHE_MAINTENANCE, bind=True, base=BaseTask)
def cache_maintenance(self) -> dict[str, Any]:
    """Scheduled cache diagnostics (and provisional reaping when enabled)."""
    try:
        return asyncio.run(_maintain())
    except Exception as exc:
        logger.error("cache_maintenance_task_failed", error=str(exc))
        return {"groups": {}, "reaped": 0}
