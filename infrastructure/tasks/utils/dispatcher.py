"""按任务名投递，调用方无需导入任务模块本身。"""
from __future__ import annotations

from typing import Any, Dict

from ..config.celery import celery_app

RECONCILE_UPLOAD = "media.reconcile_upload"
CACHE_MAINTENANCE = "media.cache_maintenance"


class TaskDispatcher:
    def reconcile_upload(self, event: Dict[str, Any]) -> None:
        celery_app.send_task(RECONCILE_UPLOAD, kwargs={"event": event})
