"""
业务状态码

domain 层异常与 core.exceptions 的 HTTP 映射共用这一份定义。
1xxxx 参数类，2xxxx 媒体业务类，4xxxx 依赖/系统类。
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    SUCCESS = 0

    PARAM_ERROR = 10000
    PARAM_VALIDATION_ERROR = 10003

    NOT_FOUND = 20006
    MEDIA_NOT_FOUND = 20101
    UPLOAD_NOT_CONFIRMED = 20102

    SYSTEM_ERROR = 40000
    DATABASE_ERROR = 40001
    SERVICE_UNAVAILABLE = 40003
    BLOB_STORE_ERROR = 40004


__all__ = ["BusinessCode"]
