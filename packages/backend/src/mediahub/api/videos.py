"""Video API — publish, read, edit, delete, toggle publish.

Learn: Multipart fields keep the client-facing names (videoFile,
thumbnail). Reads are public; everything else needs a logged-in owner.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from mediahub.api.deps import get_video_service, read_upload
from mediahub.auth.dependencies import RequestContext, get_current_user
from mediahub.schemas.common import ApiResponse
from mediahub.schemas.video import PublishStatus, VideoDetail, VideoRead
from mediahub.services.video_service import VideoService
from mediahub.storage import AssetKind

router = APIRouter(prefix="/videos")


@router.post("", response_model=ApiResponse[VideoRead], status_code=201)
async def publish_video(
    title: str = Form(...),
    description: str = Form(""),
    video_file: Optional[UploadFile] = File(None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(get_current_user),
    svc: VideoService = Depends(get_video_service),
):
    video = await svc.publish(
        ctx,
        title=title,
        description=description,
        video_file=await read_upload(video_file, AssetKind.VIDEO, "videoFile"),
        thumbnail=await read_upload(thumbnail, AssetKind.IMAGE, "thumbnail"),
    )
    return ApiResponse(
        statusCode=201,
        data=VideoRead.model_validate(video),
        message="Video published successfully",
    )


@router.get("/{video_id}", response_model=ApiResponse[VideoDetail])
async def get_video(video_id: uuid.UUID, svc: VideoService = Depends(get_video_service)):
    video = await svc.get(video_id)
    return ApiResponse(data=VideoDetail.model_validate(video), message="Fetched video successfully")


@router.patch("/{video_id}", response_model=ApiResponse[VideoRead])
async def update_video(
    video_id: uuid.UUID,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(get_current_user),
    svc: VideoService = Depends(get_video_service),
):
    video = await svc.update(
        ctx,
        video_id,
        title=title,
        description=description,
        thumbnail=await read_upload(thumbnail, AssetKind.IMAGE, "thumbnail"),
    )
    return ApiResponse(data=VideoRead.model_validate(video), message="Video updated successfully")


@router.delete("/{video_id}", response_model=ApiResponse[dict])
async def delete_video(
    video_id: uuid.UUID,
    ctx: RequestContext = Depends(get_current_user),
    svc: VideoService = Depends(get_video_service),
):
    await svc.delete(ctx, video_id)
    return ApiResponse(message="Video deleted successfully")


@router.patch("/{video_id}/publish", response_model=ApiResponse[PublishStatus])
async def toggle_publish(
    video_id: uuid.UUID,
    ctx: RequestContext = Depends(get_current_user),
    svc: VideoService = Depends(get_video_service),
):
    is_published = await svc.toggle_publish(ctx, video_id)
    return ApiResponse(
        data=PublishStatus(is_published=is_published),
        message="Publish status updated successfully",
    )
