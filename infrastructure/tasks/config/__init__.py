from .beat import CELERY_BEAT_SCHEDULE
from .celery import TASK_ROUTES, celery_app

__all__ = ["celery_app", "CELERY_BEAT_SCHEDULE", "TASK_ROUTES"]
