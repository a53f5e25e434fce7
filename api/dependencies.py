"""
API依赖项 - 从 app.state 取出启动时注入的服务句柄
"""
from fastapi import Request

from application.services.cache_maintenance import CacheMaintenanceService
from application.services.media_object_service import MediaObjectApplicationService
from infrastructure.bootstrap import MediaComponents


def get_components(request: Request) -> MediaComponents:
    components = getattr(request.app.state, "media", None)
    if components is None:
        raise RuntimeError("Media components not initialized. Check application lifespan.")
    return components


async def get_media_service(request: Request) -> MediaObjectApplicationService:
    return get_components(request).media_service


async def get_maintenance_service(request: Request) -> CacheMaintenanceService:
    return get_components(request).maintenance
