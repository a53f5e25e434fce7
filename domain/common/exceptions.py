"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class EmptyPayloadException(BusinessException):
    def __init__(self) -> None:
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message="Uploaded payload is empty",
            error_type="EmptyPayload",
            field="file",
        )


class InvalidMediaIdException(BusinessException):
    def __init__(self, media_id: str):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message="Malformed media id",
            error_type="InvalidMediaId",
            details={"media_id": media_id},
            field="media_id",
        )


class FileTooLargeException(BusinessException):
    def __init__(self, size: int, max_size: int):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message="File too large",
            error_type="FileTooLarge",
            details={"size": size, "max_size": max_size},
            field="file",
        )


class MediaObjectNotFoundException(BusinessException):
    def __init__(self, media_id: Optional[str] = None):
        details = {"media_id": media_id} if media_id is not None else None
        super().__init__(
            code=BusinessCode.MEDIA_NOT_FOUND,
            message="Media object not found",
            error_type="MediaObjectNotFound",
            details=details,
        )


class UploadNotConfirmedException(BusinessException):
    """Client asked to complete a two-phase upload the blob store has not seen."""

    def __init__(self, media_id: str, storage_key: str):
        super().__init__(
            code=BusinessCode.UPLOAD_NOT_CONFIRMED,
            message="Uploaded object not found in blob store",
            error_type="UploadNotConfirmed",
            details={"media_id": media_id, "storage_key": storage_key},
        )


class BlobStoreUnavailableException(BusinessException):
    def __init__(self, operation: str, reason: str):
        super().__init__(
            code=BusinessCode.BLOB_STORE_ERROR,
            message="Blob store operation failed",
            error_type="BlobStoreError",
            details={"operation": operation, "reason": reason},
        )


class MetadataStoreException(BusinessException):
    def __init__(self, operation: str, reason: str):
        super().__init__(
            code=BusinessCode.DATABASE_ERROR,
            message="Metadata store operation failed",
            error_type="MetadataStoreError",
            details={"operation": operation, "reason": reason},
        )
