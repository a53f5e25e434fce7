"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输

Cache values are the JSON form of these models, so everything stored in the
cache can be validated back into the same type on read.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class MediaObjectDTO(DTOBase):
    """Media object metadata as served to clients and cached by id."""

    id: str
    filename: str
    content_type: str
    size_bytes: int
    created_at: datetime
    storage_key: str
    public_url: str = ""

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_complete(self) -> bool:
        return bool(self.public_url) and self.size_bytes > 0


class MediaListDTO(DTOBase):
    """Point-in-time result of one list query."""

    items: list[MediaObjectDTO] = Field(default_factory=list)
    count: int = 0


class DirectUploadResponseDTO(DTOBase):
    id: str
    storage_key: str
    public_url: str
    size_bytes: int


class UploadGrantRequestDTO(DTOBase):
    """Input payload for requesting a two-phase upload grant."""

    filename: str = Field(..., min_length=1, max_length=255)
    content_type: Optional[str] = Field(default=None, max_length=100)
    size_bytes: Optional[int] = Field(default=None, gt=0)

    @field_validator("filename")
    def _strip_filename(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("filename must not be blank")
        return value


class PendingUploadDTO(DTOBase):
    """Upload grant kept under ``pending-uploads`` until the transfer completes."""

    id: str
    storage_key: str
    filename: str
    content_type: str
    grant_url: str
    method: str = "PUT"
    headers: dict[str, str] = Field(default_factory=dict)
    expires_at: datetime
    expected_size: Optional[int] = None


class UploadGrantResponseDTO(DTOBase):
    id: str
    storage_key: str
    grant_url: str
    method: str = "PUT"
    headers: dict[str, str] = Field(default_factory=dict)
    expires_at: datetime


class UploadCompletedEvent(DTOBase):
    """Completion signal consumed by the upload reconciler (at-least-once)."""

    id: str
    storage_key: str
    filename: str
    content_type: str
    size_bytes: int
    public_url: str


class DeleteResultDTO(DTOBase):
    id: str
    deleted: bool = True


class CacheStatsDTO(DTOBase):
    """Result of one maintenance pass."""

    groups: dict[str, int] = Field(default_factory=dict)
    reaped: int = 0
