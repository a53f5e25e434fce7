"""HTTP 中间件：请求追踪与访问日志。"""
from .logging import LoggingMiddleware
from .request_id import REQUEST_ID_HEADER, RequestIDMiddleware

__all__ = ["LoggingMiddleware", "RequestIDMiddleware", "REQUEST_ID_HEADER"]
