from .base_task import BaseTask
from .dispatcher import CACHE_MAINTENANCE, RECONCILE_UPLOAD, TaskDispatcher

__all__ = ["BaseTask", "TaskDispatcher", "RECONCILE_UPLOAD", "CACHE_MAINTENANCE"]
