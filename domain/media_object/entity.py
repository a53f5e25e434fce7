"""Domain entity representing an uploaded media object."""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def new_media_id() -> str:
    return str(uuid.uuid4())


def normalize_media_id(value: str) -> Optional[str]:
    """Canonical lowercase hyphenated form, or None when ``value`` is not a UUID."""
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError):
        return None


def is_valid_media_id(value: str) -> bool:
    return normalize_media_id(value) is not None


@dataclass
class MediaObject:
    """Canonical metadata for one object held in the blob store.

    ``id`` and ``storage_key`` are fixed at creation. A record is *complete*
    once it has a public URL and a positive size; before that it only reserves
    the id for a two-phase upload (*provisional*).
    """

    id: str
    filename: str
    content_type: str
    storage_key: str
    size_bytes: int = 0
    public_url: str = ""
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise DomainValidationException("Media id is required", field="id")
        if not self.storage_key:
            raise DomainValidationException("Storage key is required", field="storage_key")
        if self.size_bytes is None or self.size_bytes < 0:
            raise DomainValidationException(
                "Size must be a non-negative integer",
                field="size_bytes",
                details={"size_bytes": self.size_bytes},
            )
        self.public_url = self.public_url or ""
        self.created_at = _ensure_utc(self.created_at) or datetime.now(timezone.utc)

    @property
    def is_complete(self) -> bool:
        return bool(self.public_url) and self.size_bytes > 0

    @property
    def is_provisional(self) -> bool:
        return not self.is_complete

    def mark_complete(self, *, size_bytes: int, public_url: str) -> None:
        if size_bytes <= 0:
            raise DomainValidationException(
                "Completed object must have a positive size",
                field="size_bytes",
                details={"size_bytes": size_bytes},
            )
        if not public_url:
            raise DomainValidationException("Completed object needs a public URL", field="public_url")
        self.size_bytes = size_bytes
        self.public_url = public_url

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
