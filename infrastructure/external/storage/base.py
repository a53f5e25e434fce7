"""StorageProvider 协议：媒体上传所需的最小 blob 能力集。"""
from typing import Optional, Protocol, runtime_checkable

from .models import ObjectHead, PresignedRequest, UploadResult


@runtime_checkable
class StorageProvider(Protocol):
    async def upload(self, file: bytes, key: str, content_type: Optional[str] = None) -> UploadResult: ...

    async def exists(self, key: str) -> bool: ...

    async def head(self, key: str) -> ObjectHead:
        """对象不存在时抛 NotFoundError。"""
        ...

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedRequest:
        """PUT 授权会把 Content-Type 签进请求，客户端需带上同样的头。"""
        ...

    def public_url(self, key: str) -> Optional[str]:
        """静态公开地址；私有桶返回 None，由调用方改用预签名 GET。"""
        ...

    async def health_check(self) -> bool: ...
