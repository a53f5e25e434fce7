"""S3 及 S3 兼容（MinIO 等）存储实现。

boto3 是同步 SDK，所有调用经 ``anyio.to_thread`` 放到工作线程执行；
SDK 错误统一映射为 storage 异常，TransientError 由 tenacity 退避重试。
"""
from functools import partial
from typing import Any, NoReturn, Optional

import anyio
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.logging_config import get_logger
from ..config import StorageConfig
from ..exceptions import (
    ConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    TransientError,
)
from ..models import ObjectHead, PresignedRequest, UploadResult

logger = get_logger(__name__)

_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_DENIED_CODES = frozenset({"403", "AccessDenied"})
_TRANSIENT_CODES = frozenset({"RequestTimeout", "SlowDown", "ServiceUnavailable", "InternalError", "503"})


def _error_code(e: Exception) -> str:
    return str(getattr(e, "response", {}).get("Error", {}).get("Code", ""))


def _raise_mapped(e: Exception, operation: str, key: Optional[str]) -> NoReturn:
    code = _error_code(e)
    if code in _MISSING_CODES:
        raise NotFoundError(f"Object not found: {key}", operation=operation, key=key) from e
    if code in _DENIED_CODES:
        raise PermissionDeniedError(f"Access denied: {key}", operation=operation, key=key) from e
    if code in _TRANSIENT_CODES:
        raise TransientError(f"Transient S3 error during {operation}: {e}", operation=operation, key=key) from e
    raise StorageError(f"S3 error during {operation}: {e}", operation=operation, key=key) from e


class S3Provider:
    def __init__(self, client: Any, config: StorageConfig):
        self.client = client
        self.config = config
        self.bucket = config.bucket
        self.region = config.region or "us-east-1"

    async def _call(self, operation: str, key: Optional[str], method: str, **params) -> Any:
        fn = partial(getattr(self.client, method), **params)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.config.max_retry_attempts)),
            wait=wait_exponential(multiplier=self.config.retry_backoff, max=10),
            retry=retry_if_exception_type(TransientError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                try:
                    return await anyio.to_thread.run_sync(fn)
                except Exception as e:
                    _raise_mapped(e, operation, key)

    async def upload(self, file: bytes, key: str, content_type: Optional[str] = None) -> UploadResult:
        params: dict[str, Any] = {"Bucket": self.bucket, "Key": key, "Body": file}
        if content_type:
            params["ContentType"] = content_type
        if self.config.s3_acl:
            params["ACL"] = self.config.s3_acl

        response = await self._call("upload", key, "put_object", **params)
        logger.info("s3_object_uploaded", bucket=self.bucket, key=key, size=len(file))
        return UploadResult(
            key=key,
            size=len(file),
            etag=str((response or {}).get("ETag", "")).strip('"') or None,
            content_type=content_type,
            url=self.public_url(key),
        )

    async def exists(self, key: str) -> bool:
        try:
            await self.head(key)
        except NotFoundError:
            return False
        return True

    async def head(self, key: str) -> ObjectHead:
        response = await self._call("head", key, "head_object", Bucket=self.bucket, Key=key)
        return ObjectHead(
            size=int(response.get("ContentLength", 0) or 0),
            etag=str(response.get("ETag", "")).strip('"') or None,
            content_type=response.get("ContentType"),
            last_modified=response.get("LastModified"),
        )

    async def generate_presigned_url(
        self,
        key: str,
        expires_in: int = 3600,
        method: str = "GET",
        content_type: Optional[str] = None,
    ) -> PresignedRequest:
        params: dict[str, Any] = {"Bucket": self.bucket, "Key": key}
        headers: dict[str, str] = {}
        if method == "GET":
            client_method = "get_object"
        elif method == "PUT":
            client_method = "put_object"
            # Content-Type 参与签名，客户端上传时必须带同样的值
            ctype = content_type or "application/octet-stream"
            params["ContentType"] = ctype
            headers["Content-Type"] = ctype
        else:
            raise ValueError(f"Unsupported presign method: {method}")

        url = await self._call(
            "presign",
            key,
            "generate_presigned_url",
            ClientMethod=client_method,
            Params=params,
            ExpiresIn=expires_in,
        )
        return PresignedRequest(url=url, method=method, headers=headers, expires_in=expires_in)

    def public_url(self, key: str) -> Optional[str]:
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{key}"
        if self.config.s3_acl != "public-read":
            # 私有桶只能走预签名 GET
            return None
        if self.config.endpoint:
            return f"{self.config.endpoint.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def health_check(self) -> bool:
        try:
            await self._call("health_check", None, "head_bucket", Bucket=self.bucket)
        except StorageError as e:
            logger.error("s3_health_check_failed", bucket=self.bucket, error=str(e))
            return False
        return True


async def build_s3_provider(config: StorageConfig) -> S3Provider:
    if not config.bucket:
        raise ConfigurationError("S3 bucket name is required")

    import boto3
    from botocore.config import Config as BotoConfig

    boto_config = BotoConfig(
        region_name=config.region,
        signature_version="s3v4",
        connect_timeout=config.timeout,
        read_timeout=config.timeout,
    )
    client_args: dict[str, Any] = {"service_name": "s3", "config": boto_config}
    if config.aws_access_key_id and config.aws_secret_access_key:
        client_args["aws_access_key_id"] = config.aws_access_key_id
        client_args["aws_secret_access_key"] = config.aws_secret_access_key
    if config.endpoint:
        client_args["endpoint_url"] = config.endpoint
        client_args["use_ssl"] = config.enable_ssl

    provider = S3Provider(boto3.client(**client_args), config)
    if not await provider.health_check():
        raise ConfigurationError(f"Cannot reach S3 bucket {config.bucket}")
    logger.info("s3_provider_ready", bucket=config.bucket, endpoint=config.endpoint)
    return provider
