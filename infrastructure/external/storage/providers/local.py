"""Local file system storage provider implementation.

Objects live under ``local_base_path``; the content type is kept in a
``.meta`` sidecar so HEAD-style lookups can report it.
"""
import hashlib
import json
import mimetypes
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone

import aiofiles
import aiofiles.os

from core.logging_config import get_logger
from ..config import StorageConfig
from ..exceptions import NotFoundError, StorageError, ValidationError
from ..models import PresignedRequest, ObjectHead, UploadResult

logger = get_logger(__name__)


class LocalProvider:
    """Local file system storage provider."""

    def __init__(self, config: StorageConfig):
        self.config = config
        self.base_path = Path(config.local_base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    async def upload(
        self,
        file: bytes,
        key: str,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        """Upload file to local storage."""
        file_path = self._safe_path(key)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(file)
            if content_type:
                await self._save_metadata(file_path, content_type)
        except OSError as e:
            raise StorageError(f"Local write failed: {e}", operation="upload", key=key) from e

        logger.info("local_object_uploaded", key=key, size=len(file))
        return UploadResult(
            key=key,
            etag=hashlib.md5(file).hexdigest(),
            size=len(file),
            content_type=content_type or self._guess_content_type(key),
            url=self.public_url(key),
        )

    async def exists(self, key: str) -> bool:
        return await aiofiles.os.path.isfile(self._safe_path(key))

    async def head(self, key: str) -> ObjectHead:
        file_path = self._safe_path(key)
        try:
            stat = await aiofiles.os.stat(file_path)
        except FileNotFoundError as e:
            raise NotFoundError(f"Object not found: {key}", operation="head", key=key) from e
        except OSError as e:
            raise StorageError(f"Local stat failed: {e}", operation="head", key=key) from e

        meta = await self._load_metadata(file_path)
        return ObjectHead(
            content_type=meta.get("content_type") or self._guess_content_type(key),
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedRequest:
        """Local storage cannot sign requests; hand back the object's address."""
        self._safe_path(key)
        headers = {"Content-Type": content_type} if method == "PUT" and content_type else {}
        return PresignedRequest(
            url=self.public_url(key),
            method=method,
            expires_in=expires_in,
            headers=headers,
        )

    def public_url(self, key: str) -> str:
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{key}"
        # Without a public URL, fall back to a file:// URI
        return self._safe_path(key).as_uri()

    async def health_check(self) -> bool:
        """Check the base directory is writable."""
        marker = self.base_path / ".health_check"
        try:
            async with aiofiles.open(marker, "w") as f:
                await f.write("ok")
            await aiofiles.os.remove(marker)
            return True
        except OSError as e:
            logger.error("local_storage_health_check_failed", path=str(self.base_path), error=str(e))
            return False

    def _safe_path(self, key: str) -> Path:
        """Build safe path preventing directory traversal."""
        path = (self.base_path / key.lstrip("/")).resolve()
        try:
            path.relative_to(self.base_path)
        except ValueError:
            raise ValidationError(f"Invalid path: {key}", key=key)
        return path

    def _metadata_path(self, file_path: Path) -> Path:
        return file_path.parent / f"{file_path.name}.meta"

    async def _save_metadata(self, file_path: Path, content_type: str) -> None:
        async with aiofiles.open(self._metadata_path(file_path), "w") as f:
            await f.write(json.dumps({"content_type": content_type}))

    async def _load_metadata(self, file_path: Path) -> dict:
        meta_path = self._metadata_path(file_path)
        if not await aiofiles.os.path.exists(meta_path):
            return {}
        try:
            async with aiofiles.open(meta_path, "r") as f:
                return json.loads(await f.read())
        except (OSError, ValueError):
            logger.warning("local_metadata_unreadable", path=str(meta_path))
            return {}

    def _guess_content_type(self, key: str) -> str:
        content_type, _ = mimetypes.guess_type(key)
        return content_type or "application/octet-stream"


async def build_local_provider(config: StorageConfig) -> LocalProvider:
    """Build local storage provider."""
    provider = LocalProvider(config)

    if not await provider.health_check():
        raise StorageError("Failed to access local storage")

    return provider
