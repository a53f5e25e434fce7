# 导入即注册 media.* 任务
from . import media  # noqa: F401

__all__ = ["media"]
