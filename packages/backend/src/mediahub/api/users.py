"""User API — the current account and public channel profiles.

Learn: Every /users/me route depends on get_current_user and hands the
resulting RequestContext to the service. Avatar and cover image swaps go
through the asset coordinator (upload new → commit → delete old).
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from mediahub.api.deps import get_user_service, read_upload
from mediahub.auth.dependencies import RequestContext, get_current_user
from mediahub.schemas.common import ApiResponse
from mediahub.schemas.user import (
    AccountUpdate,
    ChangePasswordRequest,
    ChannelProfile,
    UserRead,
)
from mediahub.services.user_service import UserService
from mediahub.storage import AssetKind

router = APIRouter(prefix="/users")


@router.get("/me", response_model=ApiResponse[UserRead])
async def get_me(
    ctx: RequestContext = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
):
    user = await svc.require(ctx.user_id)
    return ApiResponse(data=UserRead.model_validate(user), message="Current user details")


@router.patch("/me", response_model=ApiResponse[UserRead])
async def update_account(
    body: AccountUpdate,
    ctx: RequestContext = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
):
    user = await svc.update_account(ctx, fullname=body.fullname, email=body.email)
    return ApiResponse(
        data=UserRead.model_validate(user), message="Account details updated successfully"
    )


@router.post("/me/password", response_model=ApiResponse[dict])
async def change_password(
    body: ChangePasswordRequest,
    ctx: RequestContext = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
):
    await svc.change_password(ctx, body.old_password, body.new_password)
    return ApiResponse(message="Password changed successfully")


@router.patch("/me/avatar", response_model=ApiResponse[UserRead])
async def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    ctx: RequestContext = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
):
    user = await svc.update_avatar(
        ctx, await read_upload(avatar, AssetKind.IMAGE, "avatar")
    )
    return ApiResponse(data=UserRead.model_validate(user), message="Avatar updated successfully")


@router.patch("/me/cover-image", response_model=ApiResponse[UserRead])
async def update_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    ctx: RequestContext = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
):
    user = await svc.update_cover_image(
        ctx, await read_upload(cover_image, AssetKind.IMAGE, "coverImage")
    )
    return ApiResponse(
        data=UserRead.model_validate(user), message="Cover image updated successfully"
    )


@router.get("/c/{username}", response_model=ApiResponse[ChannelProfile])
async def get_channel_profile(
    username: str,
    svc: UserService = Depends(get_user_service),
):
    user = await svc.get_by_username(username)
    return ApiResponse(
        data=ChannelProfile.model_validate(user), message="Channel profile details"
    )
