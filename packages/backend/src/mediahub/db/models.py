"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror these definitions.

Key concepts:
- UUID primary keys (generic Uuid type: native on Postgres, CHAR(32) on SQLite)
- Asset references are stored as (url, key) column pairs. The key is what
  the object store needs to delete the blob; the url is what clients see.
- The refresh-token slot is versioned: refresh_token_version is bumped on
  every issue/rotation/revocation so concurrent rotations can be detected.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from mediahub.storage.base import AssetKind, AssetRef


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def _ref(url: Optional[str], key: Optional[str], kind: AssetKind) -> Optional[AssetRef]:
    if not key:
        return None
    return AssetRef(url=url or "", storage_key=key, kind=kind)


class User(Base):
    """An account (identity).

    Learn: refresh_token_hash is a single slot: at most one live refresh
    token per user. Writing a new one invalidates the previous token;
    clearing it (logout) invalidates all of them.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=new_uuid
    )
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    fullname: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Versioned refresh-token slot (SHA-256 of the token, never the token)
    refresh_token_hash: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True
    )
    refresh_token_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    # Asset references (object store)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    cover_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_image_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    videos: Mapped[list["Video"]] = relationship(back_populates="owner")

    @property
    def avatar(self) -> Optional[AssetRef]:
        return _ref(self.avatar_url, self.avatar_key, AssetKind.IMAGE)

    @avatar.setter
    def avatar(self, ref: AssetRef) -> None:
        self.avatar_url = ref.url
        self.avatar_key = ref.storage_key

    @property
    def cover_image(self) -> Optional[AssetRef]:
        return _ref(self.cover_image_url, self.cover_image_key, AssetKind.IMAGE)

    @cover_image.setter
    def cover_image(self, ref: AssetRef) -> None:
        self.cover_image_url = ref.url
        self.cover_image_key = ref.storage_key


class Video(Base):
    """A published (or draft) video owned by a user.

    Learn: owner_id is a lookup reference, not ownership of the user record.
    The two asset pairs (video file, thumbnail) ARE owned by this row:
    deleting the video deletes both blobs.
    """

    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_owner", "owner_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=new_uuid
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    video_key: Mapped[str] = mapped_column(String(255), nullable=False)
    thumbnail_url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_key: Mapped[str] = mapped_column(String(255), nullable=False)
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    views: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    owner: Mapped["User"] = relationship(back_populates="videos")

    @property
    def video_file(self) -> AssetRef:
        return AssetRef(url=self.video_url, storage_key=self.video_key, kind=AssetKind.VIDEO)

    @property
    def thumbnail(self) -> AssetRef:
        return AssetRef(
            url=self.thumbnail_url, storage_key=self.thumbnail_key, kind=AssetKind.IMAGE
        )

    @thumbnail.setter
    def thumbnail(self, ref: AssetRef) -> None:
        self.thumbnail_url = ref.url
        self.thumbnail_key = ref.storage_key

    def asset_refs(self) -> list[AssetRef]:
        return [self.video_file, self.thumbnail]
