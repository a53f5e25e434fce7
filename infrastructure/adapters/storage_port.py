"""Infrastructure adapter that implements the application BlobStorePort
by delegating to the concrete StorageProvider and translating models
and errors.
"""
from __future__ import annotations

from typing import Optional

from application.ports.storage import BlobStorePort, StoredObject, UploadGrant
from core.config import settings
from core.logging_config import get_logger
from domain.common.exceptions import BlobStoreUnavailableException
from infrastructure.external.storage import NotFoundError, StorageError, StorageProvider

logger = get_logger(__name__)


class BlobStorePortAdapter(BlobStorePort):
    def __init__(
        self,
        provider: StorageProvider,
        *,
        grant_expires_in: Optional[int] = None,
        use_presigned_public_url: Optional[bool] = None,
        presigned_public_url_ttl: Optional[int] = None,
    ):
        s = settings.storage
        self.provider = provider
        self._grant_expires_in = grant_expires_in or s.grant_expires_in
        self._use_presigned = (
            s.use_presigned_public_url if use_presigned_public_url is None else use_presigned_public_url
        )
        self._presigned_ttl = presigned_public_url_ttl or s.presigned_public_url_ttl

    async def put(self, data: bytes, key: str, content_type: str) -> str:
        try:
            await self.provider.upload(data, key, content_type=content_type)
        except StorageError as exc:
            raise BlobStoreUnavailableException("put", str(exc)) from exc
        return await self.public_url(key)

    async def head_exists(self, key: str) -> bool:
        try:
            return await self.provider.exists(key)
        except StorageError as exc:
            raise BlobStoreUnavailableException("head", str(exc)) from exc

    async def head(self, key: str) -> Optional[StoredObject]:
        try:
            meta = await self.provider.head(key)
        except NotFoundError:
            return None
        except StorageError as exc:
            raise BlobStoreUnavailableException("head", str(exc)) from exc
        return StoredObject(key=key, size=int(meta.size or 0), content_type=meta.content_type)

    async def issue_grant(self, key: str, content_type: str) -> UploadGrant:
        try:
            presigned = await self.provider.generate_presigned_url(
                key,
                expires_in=self._grant_expires_in,
                method="PUT",
                content_type=content_type,
            )
        except StorageError as exc:
            raise BlobStoreUnavailableException("issue_grant", str(exc)) from exc
        return UploadGrant(
            url=presigned.url,
            expires_at=presigned.expires_at,
            method=presigned.method,
            headers=dict(presigned.headers),
        )

    async def public_url(self, key: str) -> str:
        """Static URL when the bucket exposes one; otherwise a long-lived presigned GET."""
        static = None if self._use_presigned else self.provider.public_url(key)
        if static:
            return static
        try:
            presigned = await self.provider.generate_presigned_url(
                key,
                expires_in=self._presigned_ttl,
                method="GET",
            )
        except StorageError as exc:
            raise BlobStoreUnavailableException("public_url", str(exc)) from exc
        return presigned.url
