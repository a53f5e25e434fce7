"""Media object domain exports."""
from .entity import MediaObject, is_valid_media_id, new_media_id, normalize_media_id
from .repository import MediaObjectRepository

__all__ = ["MediaObject", "MediaObjectRepository", "is_valid_media_id", "new_media_id", "normalize_media_id"]
