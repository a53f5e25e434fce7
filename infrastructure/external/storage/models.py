"""Value objects returned by storage providers."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field


class UploadResult(BaseModel):
    key: str
    size: int
    etag: Optional[str] = None
    content_type: Optional[str] = None
    # 存储桶公开时的静态地址；私有桶为 None
    url: Optional[str] = None


class ObjectHead(BaseModel):
    """HEAD 结果：对账与 complete 只关心对象是否存在以及实际字节数。"""

    size: int
    etag: Optional[str] = None
    content_type: Optional[str] = None
    last_modified: Optional[datetime] = None


class PresignedRequest(BaseModel):
    """限时直传/直读凭证，客户端须按 method 与 headers 原样发起请求。"""

    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    expires_in: int
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.expires_in)
