"""Periodic cache maintenance pass (diagnostics plus optional provisional reaping)."""
from __future__ import annotations

from typing import Optional

from application import cache_groups
from application.dto import CacheStatsDTO
from application.ports.cache import GroupCachePort
from application.services.best_effort_cache import best_effort
from application.services.media_object_service import MediaObjectApplicationService
from core.config import settings
from core.logging_config import get_logger

logger = get_logger(__name__)


class CacheMaintenanceService:
    def __init__(
        self,
        cache: GroupCachePort,
        media_service: Optional[MediaObjectApplicationService] = None,
    ):
        self._cache = best_effort(cache)
        self._media_service = media_service

    async def run(self) -> CacheStatsDTO:
        """Enumerate every group and log its size; cache contents are not touched."""
        stats = CacheStatsDTO()
        try:
            for group in cache_groups.ALL_GROUPS:
                entries = await self._cache.list_group(group)
                stats.groups[group] = len(entries)

            ttl = settings.media.provisional_ttl_seconds
            if self._media_service is not None and ttl > 0:
                stats.reaped = await self._media_service.reap_provisional(
                    ttl,
                    batch_size=settings.media.reap_batch_size,
                )

            logger.info("cache_maintenance_completed", groups=stats.groups, reaped=stats.reaped)
        except Exception as exc:
            # Scheduled jobs never fail the system.
            logger.error("cache_maintenance_failed", error=str(exc), exc_info=True)
        return stats
