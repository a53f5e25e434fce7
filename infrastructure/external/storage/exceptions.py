"""Storage service exceptions.

Providers raise these instead of SDK errors; the port adapter converts
them into the domain's blob-store error.
"""
from typing import Optional


class StorageError(Exception):
    """Base storage exception."""

    def __init__(self, message: str, *, operation: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.key = key


class NotFoundError(StorageError):
    """Object does not exist."""


class PermissionDeniedError(StorageError):
    """Credentials rejected for this bucket or key."""


class TransientError(StorageError):
    """Network failure, throttling or a 5xx from the provider."""


class ConfigurationError(StorageError):
    """Provider cannot be built from the given configuration."""


class ValidationError(StorageError):
    """Key rejected before reaching the provider (e.g. path traversal)."""
