"""Repository abstraction for media object metadata."""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .entity import MediaObject


class MediaObjectRepository(ABC):
    """Contract for the authoritative metadata store."""

    @abstractmethod
    async def upsert(self, media: MediaObject) -> MediaObject:
        """Insert or update by id as one atomic row write.

        ``id``, ``storage_key`` and ``created_at`` keep their first stored
        value; ``size_bytes`` and ``public_url`` never regress to empty.
        """
        ...

    @abstractmethod
    async def get_by_id(self, media_id: str) -> Optional[MediaObject]:
        ...

    @abstractmethod
    async def list_recent(self, limit: int) -> list[MediaObject]:
        """Newest first by ``created_at``."""
        ...

    @abstractmethod
    async def delete_by_id(self, media_id: str) -> bool:
        """Return False when no row existed."""
        ...

    @abstractmethod
    async def delete_provisional_by_id(self, media_id: str, cutoff: datetime) -> bool:
        """Delete only while the row is still provisional and older than ``cutoff``.

        The check and the delete are one statement, so a record completed in
        the meantime is left alone.
        """
        ...

    @abstractmethod
    async def list_provisional_before(self, cutoff: datetime, limit: int = 100) -> list[MediaObject]:
        ...
