"""Completion publisher that hands events to a Celery worker."""
from __future__ import annotations

from functools import partial
from typing import Optional

import anyio

from application.dto import UploadCompletedEvent
from application.ports.events import CompletionPublisher
from core.logging_config import get_logger
from infrastructure.tasks.utils.dispatcher import TaskDispatcher

logger = get_logger(__name__)


class CeleryCompletionPublisher(CompletionPublisher):
    def __init__(self, dispatcher: Optional[TaskDispatcher] = None) -> None:
        self._dispatcher = dispatcher or TaskDispatcher()

    async def publish(self, event: UploadCompletedEvent) -> None:
        # Broker I/O is blocking; keep it off the event loop.
        await anyio.to_thread.run_sync(
            partial(self._dispatcher.reconcile_upload, event.model_dump(mode="json"))
        )
        logger.debug("completion_event_enqueued", media_id=event.id)
