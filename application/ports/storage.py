"""Application-owned blob store port (hexagonal architecture).

Defines the minimal capability set the upload coordinator and reconciler
need, so the application layer never imports a concrete SDK.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable


@dataclass
class UploadGrant:
    url: str
    expires_at: datetime
    method: str = "PUT"
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class StoredObject:
    key: str
    size: int
    content_type: Optional[str] = None


@runtime_checkable
class BlobStorePort(Protocol):
    async def put(self, data: bytes, key: str, content_type: str) -> str:
        """Store bytes under ``key`` and return the object's public URL."""
        ...

    async def head_exists(self, key: str) -> bool: ...

    async def head(self, key: str) -> Optional[StoredObject]: ...

    async def issue_grant(self, key: str, content_type: str) -> UploadGrant: ...

    async def public_url(self, key: str) -> str: ...
