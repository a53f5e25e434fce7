"""Completion signal boundary between the upload coordinator and the reconciler."""
from __future__ import annotations

from typing import Awaitable, Callable, Protocol, runtime_checkable

from application.dto import UploadCompletedEvent

CompletionHandler = Callable[[UploadCompletedEvent], Awaitable[None]]


@runtime_checkable
class CompletionPublisher(Protocol):
    async def publish(self, event: UploadCompletedEvent) -> None: ...
