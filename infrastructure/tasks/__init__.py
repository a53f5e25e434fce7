"""媒体后台任务：上传完成对账与缓存维护。

worker 入口：``celery -A infrastructure.tasks worker -B`` 或 ``python -m infrastructure.tasks.worker``。
"""
from .config.celery import celery_app
from .utils.dispatcher import TaskDispatcher

__all__ = ["celery_app", "TaskDispatcher"]
