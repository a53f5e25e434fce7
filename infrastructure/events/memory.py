"""In-process completion channel backed by an ``asyncio.Queue``."""
from __future__ import annotations

import asyncio
from typing import Optional

from application.dto import UploadCompletedEvent
from application.ports.events import CompletionHandler, CompletionPublisher
from core.logging_config import get_logger

logger = get_logger(__name__)


class InMemoryCompletionChannel(CompletionPublisher):
    """Publisher and consumer loop living in the API process.

    Events are lost on restart; use the Celery backend where delivery has
    to survive the process.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[UploadCompletedEvent] = asyncio.Queue(maxsize=maxsize)
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def publish(self, event: UploadCompletedEvent) -> None:
        # Raises QueueFull when saturated; the caller logs and moves on.
        self._queue.put_nowait(event)

    async def run(self, handler: CompletionHandler) -> None:
        while True:
            event = await self._queue.get()
            try:
                await handler(event)
            except Exception as exc:
                logger.error("completion_handler_failed", media_id=event.id, error=str(exc), exc_info=True)
            finally:
                self._queue.task_done()

    def start(self, handler: CompletionHandler) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(handler), name="completion-consumer")
            logger.info("completion_consumer_started")

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("completion_consumer_stopped", dropped=self._queue.qsize())
