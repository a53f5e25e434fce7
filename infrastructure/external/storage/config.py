"""Provider 级存储配置，由 ``settings.storage`` 组装。"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class StorageType(str, Enum):
    S3 = "s3"
    LOCAL = "local"


# settings.storage 中只与 provider 构建相关的字段；key 布局、授权时长等由应用层使用
_PROVIDER_FIELDS = (
    "bucket",
    "region",
    "endpoint",
    "public_base_url",
    "aws_access_key_id",
    "aws_secret_access_key",
    "s3_acl",
    "local_base_path",
    "max_retry_attempts",
    "retry_backoff",
    "timeout",
    "enable_ssl",
)


class StorageConfig(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: StorageType = StorageType.LOCAL
    bucket: Optional[str] = None
    region: Optional[str] = None
    # S3 兼容服务（MinIO 等）的 endpoint
    endpoint: Optional[str] = None
    # CDN / 公开域名；设置后 public_url 直接拼接
    public_base_url: Optional[str] = None

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    s3_acl: Optional[str] = None

    local_base_path: str = "/tmp/media-vault"

    # 仅对 TransientError 做指数退避重试
    max_retry_attempts: int = 3
    retry_backoff: float = 0.5
    timeout: int = 30
    enable_ssl: bool = True

    @classmethod
    def from_settings(cls, storage_settings: Any) -> "StorageConfig":
        values = {name: getattr(storage_settings, name) for name in _PROVIDER_FIELDS}
        return cls(type=storage_settings.type or StorageType.LOCAL, **values)
