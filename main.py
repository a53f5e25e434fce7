"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from api.routes import media as media_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.bootstrap import build_components
from infrastructure.database import create_tables
from infrastructure.cache import shutdown_redis_cache
from infrastructure.external.storage import get_storage_client, shutdown_storage_client


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 生产环境由 alembic upgrade head 建表
    if settings.DEBUG:
        await create_tables()
        logger.info("database_tables_created")

    components = await build_components()
    app.state.media = components

    # 内存事件通道：在 API 进程内消费完成信号
    if components.channel is not None:
        components.channel.start(components.reconciler.handle)
    logger.info(
        "media_components_ready",
        cache=type(components.cache).__name__,
        events=settings.events.backend,
        storage=settings.storage.type,
    )

    yield

    if components.channel is not None:
        await components.channel.stop()
    await shutdown_redis_cache()
    await shutdown_storage_client()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="媒体上传与元数据服务（对象存储 + 关系库 + 分组缓存）",
)

# 添加中间件（注意顺序：从下往上执行）
app.add_middleware(LoggingMiddleware)
# Request ID 最后添加，因此最先执行，为日志提供 request_id
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(media_routes.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    """API根路径"""
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
            "redoc": "/redoc"
        },
        message="Welcome"
    )


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """健康检查：存储不可用视为不健康，缓存不可用只降级"""
    components = getattr(request.app.state, "media", None)
    provider = get_storage_client()
    storage_ok = provider is not None and await provider.health_check()

    cache_ok = False
    if components is not None:
        try:
            cache_ok = bool(await components.cache.ping())
        except Exception as exc:
            logger.warning("health_cache_ping_failed", error=str(exc))

    data = {
        "status": "healthy" if storage_ok else "unhealthy",
        "storage": "ok" if storage_ok else "unavailable",
        "cache": "ok" if cache_ok else "degraded",
    }
    if not storage_ok:
        body = success_response(data=data, message="Unhealthy")
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return success_response(data=data)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
