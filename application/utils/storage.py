"""Application-level storage helpers to avoid infra coupling."""
from __future__ import annotations

from os.path import splitext
from typing import Optional


def file_extension(filename: Optional[str], default: str = "webm") -> str:
    _, ext = splitext(filename or "")
    ext = ext.lstrip(".").lower()
    return ext or default


def build_storage_key(media_id: str, filename: Optional[str], *, prefix: str = "videos", default_ext: str = "webm") -> str:
    """``<prefix>/<id>.<ext>``; the id alone makes the key unique."""
    ext = file_extension(filename, default_ext)
    prefix = prefix.strip("/")
    name = f"{media_id}.{ext}"
    return f"{prefix}/{name}" if prefix else name

