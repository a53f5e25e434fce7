"""Blob 存储：provider 协议、S3 / 本地实现与进程级单例。

应用层不直接使用这里的类型，而是经 ``infrastructure.adapters.storage_port``
适配为 ``BlobStorePort``。
"""
from typing import Optional

from core.config import settings
from core.logging_config import get_logger
from .base import StorageProvider
from .config import StorageConfig, StorageType
from .exceptions import (
    ConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    TransientError,
    ValidationError,
)
from .factory import create_provider
from .models import ObjectHead, PresignedRequest, UploadResult

logger = get_logger(__name__)

_provider: Optional[StorageProvider] = None


async def init_storage_client(config: Optional[StorageConfig] = None) -> StorageProvider:
    """按配置构建 provider；同一进程内只构建一次。"""
    global _provider
    if _provider is None:
        config = config or StorageConfig.from_settings(settings.storage)
        _provider = await create_provider(config)
        logger.info("storage_client_initialized", provider=config.type, bucket=config.bucket)
    return _provider


def get_storage_client() -> Optional[StorageProvider]:
    return _provider


async def shutdown_storage_client() -> None:
    global _provider
    if _provider is not None:
        _provider = None
        logger.info("storage_client_shutdown")


__all__ = [
    "init_storage_client",
    "get_storage_client",
    "shutdown_storage_client",
    "StorageConfig",
    "StorageType",
    "StorageProvider",
    "ObjectHead",
    "PresignedRequest",
    "UploadResult",
    "StorageError",
    "NotFoundError",
    "PermissionDeniedError",
    "TransientError",
    "ConfigurationError",
    "ValidationError",
]
