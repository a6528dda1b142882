"""Shared route dependencies — services wired to the request's session.

Learn: Each request gets its own AsyncSession (get_db) and the process-wide
object store (get_object_store). Services are built per request from those
two, so tests can override either one and every route follows.
"""

from typing import Optional

from fastapi import Depends, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.auth.authority import TokenAuthority
from mediahub.config import settings
from mediahub.db.engine import get_db
from mediahub.errors import ValidationError
from mediahub.services.assets import AssetCoordinator
from mediahub.services.user_service import UserService
from mediahub.services.video_service import VideoService
from mediahub.storage import AssetInput, AssetKind, ObjectStore, get_object_store


def get_assets(store: ObjectStore = Depends(get_object_store)) -> AssetCoordinator:
    return AssetCoordinator(store)


def get_authority(db: AsyncSession = Depends(get_db)) -> TokenAuthority:
    return TokenAuthority(db)


def get_user_service(
    db: AsyncSession = Depends(get_db),
    assets: AssetCoordinator = Depends(get_assets),
) -> UserService:
    return UserService(db, assets)


def get_video_service(
    db: AsyncSession = Depends(get_db),
    assets: AssetCoordinator = Depends(get_assets),
) -> VideoService:
    return VideoService(db, assets)


async def read_upload(
    file: Optional[UploadFile], kind: AssetKind, field: str
) -> Optional[AssetInput]:
    """Turn a multipart file into an AssetInput (None if the field was empty).

    Checks the declared content type against the asset kind and enforces
    the upload size limit.
    """
    if file is None or not file.filename:
        return None
    content_type = file.content_type or ""
    if not content_type.startswith(f"{kind.value}/"):
        raise ValidationError(
            f"{field} must be a {kind.value}/* file, got {content_type or 'nothing'}"
        )

    content = await file.read()
    if not content:
        raise ValidationError(f"{field} is empty")
    if len(content) > settings.max_upload_bytes:
        raise ValidationError(f"{field} is larger than {settings.max_upload_bytes} bytes")
    return AssetInput(
        filename=file.filename,
        content=content,
        kind=kind,
        content_type=content_type,
    )
