"""Media object database model definitions."""
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Index, String, text
from sqlalchemy.sql import func

from .base import Base


class MediaObjectModel(Base):
    """ORM mapping for media_objects table."""

    __tablename__ = "media_objects"
    __table_args__ = (
        Index("ix_media_objects_created_at", "created_at"),
        {
            "comment": "媒体对象元数据表（对象存储中文件的权威记录）",
        },
    )

    id = Column(
        String(36),
        primary_key=True,
        comment="媒体对象ID（UUID）",
    )
    filename = Column(
        String(255),
        nullable=False,
        comment="原始文件名",
    )
    content_type = Column(
        String(100),
        nullable=False,
        comment="MIME类型",
    )
    size_bytes = Column(
        BigInteger,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="文件大小（字节），直传未完成时为0",
    )
    storage_key = Column(
        String(512),
        nullable=False,
        unique=True,
        comment="对象存储中的Key（创建后不可变）",
    )
    public_url = Column(
        String(2048),
        nullable=False,
        default="",
        server_default=text("''"),
        comment="公共访问URL，未完成时为空",
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        comment="创建时间（upsert 时保持不变）",
    )

    def __repr__(self) -> str:
        return (
            "<MediaObjectModel(id='{id}', storage_key='{storage_key}', size_bytes={size})>"
        ).format(id=self.id, storage_key=self.storage_key, size=self.size_bytes)
