"""Celery 应用：承载上传完成信号的对账任务与定时缓存维护"""
from __future__ import annotations

import os

from celery import Celery
from kombu import Queue

from core.config import settings
from core.logging_config import get_logger

from .beat import CELERY_BEAT_SCHEDULE

logger = get_logger(__name__)

TASK_PACKAGES = ("infrastructure.tasks.tasks",)

# 对账要尽快跑，维护任务让路
TASK_ROUTES = {
    "media.reconcile_upload": {"queue": "high"},
    "media.cache_maintenance": {"queue": "low"},
}


def _broker_url() -> str | None:
    return os.getenv("CELERY_BROKER_URL") or settings.redis.url


def create_celery_app() -> Celery:
    app = Celery("media_vault")
    app.conf.update(
        broker_url=_broker_url(),
        # 任务结果无人读取
        task_ignore_result=True,
        task_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        # 对账幂等，允许 worker 异常退出后重投
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        task_default_queue="default",
        task_queues=(Queue("high"), Queue("default"), Queue("low")),
        task_routes=TASK_ROUTES,
        beat_schedule=CELERY_BEAT_SCHEDULE,
        imports=TASK_PACKAGES,
    )
    app.autodiscover_tasks(packages=TASK_PACKAGES)
    return app


celery_app = create_celery_app()


@celery_app.on_after_configure.connect
def _log_configuration(sender, **kwargs):
    logger.info("celery_configured", broker=sender.conf.broker_url, queues=[q.name for q in sender.conf.task_queues])
