"""媒体对象相关路由。"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.dependencies import get_maintenance_service, get_media_service
from application.dto import (
    CacheStatsDTO,
    DeleteResultDTO,
    DirectUploadResponseDTO,
    MediaListDTO,
    MediaObjectDTO,
    PendingUploadDTO,
    UploadGrantRequestDTO,
    UploadGrantResponseDTO,
)
from application.services.cache_maintenance import CacheMaintenanceService
from application.services.media_object_service import MediaObjectApplicationService
from core.config import settings
from core.response import Response as ApiResponse, success_response

router = APIRouter(
    prefix="/media",
    tags=["媒体对象"],
)


@router.post(
    "/upload",
    summary="直传上传",
    response_model=ApiResponse[DirectUploadResponseDTO],
    status_code=201,
)
async def upload_media(
    file: UploadFile = File(..., description="媒体文件"),
    filename: Optional[str] = Form(default=None, description="覆盖原始文件名"),
    content_type: Optional[str] = Form(default=None, description="覆盖文件MIME类型"),
    service: MediaObjectApplicationService = Depends(get_media_service),
):
    data = await file.read()
    result = await service.upload_direct(
        data=data,
        filename=filename or file.filename or None,
        content_type=content_type or file.content_type or None,
    )
    return success_response(result, message="Uploaded")


@router.post(
    "/upload-url",
    summary="申请上传授权（两阶段上传）",
    response_model=ApiResponse[UploadGrantResponseDTO],
    status_code=201,
)
async def request_upload_url(
    payload: UploadGrantRequestDTO,
    service: MediaObjectApplicationService = Depends(get_media_service),
):
    grant = await service.request_upload_grant(
        filename=payload.filename,
        content_type=payload.content_type,
        size_bytes=payload.size_bytes,
    )
    return success_response(grant, message="Upload grant issued")


@router.get(
    "/{media_id}/upload-grant",
    summary="查询待完成的上传授权",
    response_model=ApiResponse[PendingUploadDTO],
)
async def get_upload_grant(
    media_id: str,
    service: MediaObjectApplicationService = Depends(get_media_service),
):
    pending = await service.get_pending_grant(media_id)
    return success_response(pending, message="OK")


@router.post(
    "/{media_id}/complete",
    summary="确认两阶段上传完成",
    response_model=ApiResponse[MediaObjectDTO],
)
async def complete_upload(
    media_id: str,
    service: MediaObjectApplicationService = Depends(get_media_service),
):
    media = await service.complete_upload(media_id)
    return success_response(media, message="Upload confirmed")


@router.get(
    "",
    summary="媒体列表（按创建时间倒序）",
    response_model=ApiResponse[MediaListDTO],
)
async def list_media(
    limit: int = Query(
        default=settings.media.default_page_size,
        ge=1,
        le=settings.media.max_page_size,
    ),
    service: MediaObjectApplicationService = Depends(get_media_service),
):
    result = await service.list_media(limit)
    return success_response(result, message="OK")


@router.get(
    "/{media_id}",
    summary="媒体详情",
    response_model=ApiResponse[MediaObjectDTO],
)
async def get_media(
    media_id: str,
    service: MediaObjectApplicationService = Depends(get_media_service),
):
    media = await service.get_media(media_id)
    return success_response(media, message="OK")


@router.delete(
    "/{media_id}",
    summary="删除媒体",
    response_model=ApiResponse[DeleteResultDTO],
)
async def delete_media(
    media_id: str,
    service: MediaObjectApplicationService = Depends(get_media_service),
):
    result = await service.delete_media(media_id)
    return success_response(result, message="Deleted")


@router.post(
    "/maintenance/run",
    summary="手动触发缓存维护",
    response_model=ApiResponse[CacheStatsDTO],
)
async def run_maintenance(
    maintenance: CacheMaintenanceService = Depends(get_maintenance_service),
):
    stats = await maintenance.run()
    return success_response(stats, message="OK")
