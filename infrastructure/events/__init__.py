"""Completion signal transports (in-process queue or Celery)."""
from .memory import InMemoryCompletionChannel
from .celery import CeleryCompletionPublisher

__all__ = ["InMemoryCompletionChannel", "CeleryCompletionPublisher"]
