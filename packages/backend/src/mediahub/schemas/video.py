"""Pydantic schemas for videos."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class OwnerSummary(BaseModel):
    id: uuid.UUID
    username: str
    fullname: str
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class VideoRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    video_url: str
    thumbnail_url: str
    duration: float
    views: int
    is_published: bool
    owner_id: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class VideoDetail(VideoRead):
    """Video with its owner's public profile."""
    owner: OwnerSummary


class PublishStatus(BaseModel):
    is_published: bool
