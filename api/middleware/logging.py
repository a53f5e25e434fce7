"""
访问日志中间件

每个请求记录开始与结束两条日志；上传的媒体字节从不进入日志，
只有 JSON 请求体（授权申请等）可按配置截断记录。
"""
import json
import time
from typing import Any, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)

_QUIET_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})
_TRUTHY = {"true", "1", "yes"}
_FALSY = {"false", "0", "no"}


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.log_body_by_default = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT and settings.DEBUG
        self.max_body_bytes = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if request.url.path in _QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        fields = await self._request_fields(request)
        logger.info("request_started", **fields)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=round(time.perf_counter() - started, 4),
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=True,
                **fields,
            )
            raise

        duration = time.perf_counter() - started
        self._log_completion(response, duration, fields)
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

    async def _request_fields(self, request: Request) -> dict:
        fields: dict[str, Any] = {"query_params": dict(request.query_params)}
        if request.headers.get("Content-Length"):
            fields["content_length"] = request.headers["Content-Length"]
        if request.headers.get("User-Agent"):
            fields["user_agent"] = request.headers["User-Agent"]
        if request.method in ("POST", "PUT", "PATCH") and self._wants_body(request):
            body = await self._json_body(request)
            if body is not None:
                fields["body"] = body
        return fields

    def _wants_body(self, request: Request) -> bool:
        # X-Log-Body 可按请求覆盖默认
        flag = (request.headers.get("X-Log-Body") or "").lower()
        if flag in _TRUTHY:
            return True
        if flag in _FALSY:
            return False
        return self.log_body_by_default

    async def _json_body(self, request: Request) -> Optional[Any]:
        if "application/json" not in request.headers.get("content-type", "").lower():
            return None
        raw = await request.body()
        if not raw:
            return None
        snippet = raw[: self.max_body_bytes].decode("utf-8", errors="ignore")
        try:
            return json.loads(snippet)
        except ValueError:
            return snippet

    @staticmethod
    def _log_completion(response: Response, duration: float, fields: dict) -> None:
        status_code = response.status_code
        if status_code < 400:
            log = logger.info
            event = "request_completed"
        elif status_code < 500:
            log = logger.warning
            event = "request_client_error"
        else:
            log = logger.error
            event = "request_server_error"
        log(event, status_code=status_code, duration=round(duration, 4), **fields)
