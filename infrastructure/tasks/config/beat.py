"""Celery beat schedule configuration.

The cache maintenance pass runs on a crontab taken from
``settings.maintenance`` (default: minute 0 of every sixth hour).
"""
from __future__ import annotations

from celery.schedules import crontab

from core.config import settings

CELERY_BEAT_SCHEDULE = {
    "media-cache-maintenance": {
        "task": "media.cache_maintenance",
        "schedule": crontab(
            minute=settings.maintenance.cron_minute,
            hour=settings.maintenance.cron_hour,
        ),
        "options": {"queue": "low"},
    },
}
