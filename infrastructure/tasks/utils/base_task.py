"""media.* 任务的公共基类：统一的结构化成功/失败日志"""
from __future__ import annotations

import time

from celery import Task

from core.logging_config import get_logger

logger = get_logger(__name__)


def _media_id(kwargs) -> str | None:
    event = (kwargs or {}).get("event")
    return event.get("id") if isinstance(event, dict) else None


class BaseTask(Task):
    _started_at: float | None = None

    def before_start(self, task_id, args, kwargs):  # type: ignore[override]
        self._started_at = time.perf_counter()

    def _elapsed(self) -> float | None:
        if self._started_at is None:
            return None
        return round(time.perf_counter() - self._started_at, 4)

    def on_failure(self, exc, task_id, args, kwargs, einfo):  # type: ignore[override]
        logger.error(
            "media_task_failed",
            task_id=task_id,
            task_name=self.name,
            media_id=_media_id(kwargs),
            duration=self._elapsed(),
            error=str(exc),
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_success(self, retval, task_id, args, kwargs):  # type: ignore[override]
        logger.info(
            "media_task_succeeded",
            task_id=task_id,
            task_name=self.name,
            media_id=_media_id(kwargs),
            duration=self._elapsed(),
        )
        super().on_success(retval, task_id, args, kwargs)
