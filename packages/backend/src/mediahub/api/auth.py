"""Auth API — registration, login, refresh, logout.

Learn: Routes for the session lifecycle:
- POST /auth/register → multipart form + avatar + coverImage → user + tokens
- POST /auth/login    → email/username + password → tokens
- POST /auth/refresh  → refresh token (cookie or Bearer) → rotated tokens
- POST /auth/session  → same rotation, plus the user profile (app bootstrap)
- POST /auth/logout   → clears the refresh slot and the cookies

Tokens are set as HTTP-only cookies AND returned in the body, so browser
and non-browser clients both work. If issuing fails, the error handler
builds a fresh response, so no cookies reach the client.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile

from mediahub.api.deps import get_authority, get_user_service, read_upload
from mediahub.auth.authority import TokenAuthority
from mediahub.auth.cookies import (
    REFRESH_COOKIE,
    clear_auth_cookies,
    read_token,
    set_auth_cookies,
)
from mediahub.auth.dependencies import RequestContext, get_current_user
from mediahub.errors import Unauthorized
from mediahub.schemas.common import ApiResponse
from mediahub.schemas.user import LoginRequest, SessionRead, TokenPairRead, UserRead
from mediahub.services.user_service import UserService
from mediahub.storage import AssetKind

router = APIRouter(prefix="/auth")


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=ApiResponse[SessionRead], status_code=201)
async def register(
    response: Response,
    fullname: str = Form(...),
    email: str = Form(...),
    username: str = Form(...),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    svc: UserService = Depends(get_user_service),
    authority: TokenAuthority = Depends(get_authority),
):
    """Create an account and start a session."""
    user = await svc.register(
        fullname=fullname,
        email=email,
        username=username,
        password=password,
        avatar=await read_upload(avatar, AssetKind.IMAGE, "avatar"),
        cover_image=await read_upload(cover_image, AssetKind.IMAGE, "coverImage"),
    )
    pair = await authority.issue_and_persist(user.id)
    set_auth_cookies(response, pair)

    return ApiResponse(
        statusCode=201,
        data=SessionRead(
            user=UserRead.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
        message="User created successfully",
    )


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=ApiResponse[SessionRead])
async def login(
    body: LoginRequest,
    response: Response,
    svc: UserService = Depends(get_user_service),
    authority: TokenAuthority = Depends(get_authority),
):
    """Login with email (or username) and password."""
    user = await svc.authenticate(body.password, email=body.email, username=body.username)
    pair = await authority.issue_and_persist(user.id)
    set_auth_cookies(response, pair)

    return ApiResponse(
        data=SessionRead(
            user=UserRead.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
        message="User logged in successfully",
    )


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=ApiResponse[TokenPairRead])
async def refresh(
    request: Request,
    response: Response,
    authority: TokenAuthority = Depends(get_authority),
):
    """Exchange the current refresh token for a new pair (one use only)."""
    token = read_token(request, REFRESH_COOKIE)
    if not token:
        raise Unauthorized("Refresh token is missing")

    pair = await authority.refresh_session(token)
    set_auth_cookies(response, pair)
    return ApiResponse(
        data=TokenPairRead(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
        message="Access token refreshed successfully",
    )


# ─── Session restore ────────────────────────────────────


@router.post("/session", response_model=ApiResponse[SessionRead])
async def restore_session(
    request: Request,
    response: Response,
    authority: TokenAuthority = Depends(get_authority),
):
    """Resume a session from the refresh token alone (client bootstrap).

    Rotates the pair like /auth/refresh and also returns the user profile.
    """
    token = read_token(request, REFRESH_COOKIE)
    if not token:
        raise Unauthorized("Refresh token is missing")

    user, pair = await authority.restore_session(token)
    set_auth_cookies(response, pair)
    return ApiResponse(
        data=SessionRead(
            user=UserRead.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
        message="Session restored successfully",
    )


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(
    response: Response,
    ctx: RequestContext = Depends(get_current_user),
    authority: TokenAuthority = Depends(get_authority),
):
    """Revoke the refresh slot and clear both cookies."""
    await authority.revoke(ctx.user_id)
    clear_auth_cookies(response)
    return ApiResponse(message="User logged out successfully")
