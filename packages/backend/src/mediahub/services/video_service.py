"""Video service — publishing, editing and removing videos.

Learn: A video row owns two blobs (the video file and its thumbnail), so
publish/update/delete all go through the AssetCoordinator. Only the owner
may change or delete a video; everyone may read one.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mediahub.auth.dependencies import RequestContext
from mediahub.db.engine import commit_or_raise
from mediahub.db.models import User, Video
from mediahub.errors import Forbidden, NotFound, Unauthorized, ValidationError
from mediahub.services.assets import AssetCoordinator
from mediahub.storage.base import AssetInput, AssetKind, UploadResult

logger = structlog.get_logger()


class VideoService:
    """Business logic for videos."""

    def __init__(self, db: AsyncSession, assets: AssetCoordinator):
        self.db = db
        self.assets = assets

    async def _fetch(self, video_id: uuid.UUID) -> Optional[Video]:
        return await self.db.get(Video, video_id)

    async def _fetch_owned(self, ctx: RequestContext, video_id: uuid.UUID) -> Video:
        video = await self._fetch(video_id)
        if video is None:
            raise NotFound("Video not found")
        self._authorize(ctx, video)
        return video

    @staticmethod
    def _authorize(ctx: RequestContext, video: Video) -> None:
        if not ctx.owns(video.owner_id):
            raise Forbidden("You are not the owner of this video")

    # ─── Publish ────────────────────────────────────────

    async def publish(
        self,
        ctx: RequestContext,
        title: str,
        description: str,
        video_file: Optional[AssetInput],
        thumbnail: Optional[AssetInput],
    ) -> Video:
        """Upload a video + thumbnail and create an (unpublished) video row."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if video_file is None or thumbnail is None:
            raise ValidationError("Video file and thumbnail are required")
        if video_file.kind != AssetKind.VIDEO:
            raise ValidationError("Video file must be a video")

        # Owner must exist at creation time
        if await self.db.get(User, ctx.user_id) is None:
            raise Unauthorized("User not found")

        async def build(uploads: list[UploadResult]) -> Video:
            video_up, thumb_up = uploads
            video = Video(
                title=title,
                description=(description or "").strip(),
                video_url=video_up.url,
                video_key=video_up.storage_key,
                thumbnail_url=thumb_up.url,
                thumbnail_key=thumb_up.storage_key,
                duration=video_up.duration or 0.0,
                owner_id=ctx.user_id,
                is_published=False,
                views=0,
            )
            self.db.add(video)
            await commit_or_raise(self.db)
            return video

        video = await self.assets.create_with_assets(build, [video_file, thumbnail])
        logger.info("videos.created", video_id=str(video.id), owner_id=str(ctx.user_id))
        return video

    # ─── Read ───────────────────────────────────────────

    async def get(self, video_id: uuid.UUID) -> Video:
        """Video with its owner loaded."""
        result = await self.db.execute(
            select(Video)
            .where(Video.id == video_id)
            .options(selectinload(Video.owner))
            .execution_options(populate_existing=True)
        )
        video = result.scalars().first()
        if video is None:
            raise NotFound("Video not found")
        return video

    # ─── Update ─────────────────────────────────────────

    async def update(
        self,
        ctx: RequestContext,
        video_id: uuid.UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail: Optional[AssetInput] = None,
    ) -> Video:
        """Edit title/description and optionally swap the thumbnail.

        With a new thumbnail, the text edits ride along in the same commit
        as the new reference, so a failed write leaves everything as it was.
        """

        def apply_text(video: Video) -> None:
            if title and title.strip():
                video.title = title.strip()
            if description is not None and description.strip():
                video.description = description.strip()

        if thumbnail is None:
            video = await self._fetch_owned(ctx, video_id)
            apply_text(video)
            await commit_or_raise(self.db)
            return video

        async def apply(video: Video, upload: UploadResult) -> Video:
            apply_text(video)
            video.thumbnail = upload.to_ref()
            await commit_or_raise(self.db)
            return video

        # Ownership is checked in the fetch, i.e. before anything is uploaded
        return await self.assets.replace_asset(
            video_id,
            lambda vid: self._fetch_owned(ctx, vid),
            thumbnail,
            lambda v: v.thumbnail,
            apply,
        )

    async def toggle_publish(self, ctx: RequestContext, video_id: uuid.UUID) -> bool:
        video = await self._fetch_owned(ctx, video_id)
        video.is_published = not video.is_published
        await commit_or_raise(self.db)
        logger.info("videos.publish_toggled", video_id=str(video_id), is_published=video.is_published)
        return video.is_published

    # ─── Delete ─────────────────────────────────────────

    async def delete(self, ctx: RequestContext, video_id: uuid.UUID) -> None:
        """Delete the video's blobs, then the row (owner only)."""

        async def delete_row(video: Video) -> None:
            await self.db.delete(video)
            await commit_or_raise(self.db)

        await self.assets.delete_with_assets(
            video_id,
            self._fetch,
            lambda v: self._authorize(ctx, v),
            lambda v: v.asset_refs(),
            delete_row,
        )
