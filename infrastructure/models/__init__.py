"""ORM 模型；Alembic 与 create_tables 都从 Base.metadata 取表结构。"""
from .base import Base
from .media_object import MediaObjectModel

__all__ = ["Base", "MediaObjectModel"]
