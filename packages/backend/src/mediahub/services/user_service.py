"""User service — registration, credentials and profile assets.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database (and, through the
AssetCoordinator, the object store). Every method that acts on behalf of
a logged-in user takes the RequestContext explicitly.
"""

import uuid
from typing import Optional

import pydantic
import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.auth.dependencies import RequestContext
from mediahub.auth.password import hash_password, verify_password
from mediahub.db.engine import commit_or_raise
from mediahub.db.models import User
from mediahub.errors import (
    Conflict,
    NotFound,
    Unauthorized,
    ValidationError,
)
from mediahub.schemas.user import RegisterRequest
from mediahub.services.assets import AssetCoordinator
from mediahub.storage.base import AssetInput, UploadResult

logger = structlog.get_logger()

DUPLICATE_USER = "User with email or username already exists"


def _first_error(e: pydantic.ValidationError) -> str:
    err = e.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ()))
    return f"{field}: {err['msg']}" if field else err["msg"]


class UserService:
    """Business logic for accounts."""

    def __init__(self, db: AsyncSession, assets: AssetCoordinator):
        self.db = db
        self.assets = assets

    # ─── Lookups ────────────────────────────────────────

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def require(self, user_id: uuid.UUID) -> User:
        user = await self.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_by_username(self, username: str) -> User:
        username = (username or "").strip().lower()
        if not username:
            raise ValidationError("Username is required")
        result = await self.db.execute(select(User).where(User.username == username))
        user = result.scalars().first()
        if user is None:
            raise NotFound("Channel not found")
        return user

    async def _find_existing(self, email: str, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(or_(User.email == email, User.username == username))
        )
        return result.scalars().first()

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        fullname: str,
        email: str,
        username: str,
        password: str,
        avatar: Optional[AssetInput],
        cover_image: Optional[AssetInput],
    ) -> User:
        """Create an account with its avatar and cover image.

        Learn: The duplicate check is awaited BEFORE anything is uploaded,
        so a taken email/username never costs two uploads. The unique
        constraints still back it up: a racing registration that slips
        past the check fails at commit, gets Conflict, and its uploads are
        deleted by the coordinator.
        """
        try:
            form = RegisterRequest(
                fullname=fullname, email=email, username=username, password=password
            )
        except pydantic.ValidationError as e:
            raise ValidationError(_first_error(e))
        if avatar is None or cover_image is None:
            raise ValidationError("Avatar and cover image are required")

        email = form.email.lower()
        username = form.username.lower()
        if await self._find_existing(email, username):
            raise Conflict(DUPLICATE_USER)

        async def build(uploads: list[UploadResult]) -> User:
            avatar_up, cover_up = uploads
            user = User(
                fullname=form.fullname,
                email=email,
                username=username,
                password_hash=hash_password(form.password),
            )
            user.avatar = avatar_up.to_ref()
            user.cover_image = cover_up.to_ref()
            self.db.add(user)
            await commit_or_raise(self.db, DUPLICATE_USER)
            return user

        user = await self.assets.create_with_assets(build, [avatar, cover_image])
        logger.info("users.registered", user_id=str(user.id), username=user.username)
        return user

    # ─── Credentials ────────────────────────────────────

    async def authenticate(
        self,
        password: str,
        email: Optional[str] = None,
        username: Optional[str] = None,
    ) -> User:
        """Check a password. Unknown user and wrong password look the same."""
        if not email and not username:
            raise ValidationError("Email or username is required")
        q = (
            select(User).where(User.email == email.lower())
            if email
            else select(User).where(User.username == username.strip().lower())
        )
        result = await self.db.execute(q)
        user = result.scalars().first()

        if not user or not verify_password(password, user.password_hash):
            logger.info("users.login_failed", email=email, username=username)
            raise Unauthorized("Invalid credentials")
        return user

    async def change_password(
        self, ctx: RequestContext, old_password: str, new_password: str
    ) -> None:
        user = await self.require(ctx.user_id)
        if not verify_password(old_password, user.password_hash):
            raise ValidationError("Old password is incorrect")
        user.password_hash = hash_password(new_password)
        await commit_or_raise(self.db)
        logger.info("users.password_changed", user_id=str(user.id))

    # ─── Profile ────────────────────────────────────────

    async def update_account(self, ctx: RequestContext, fullname: str, email: str) -> User:
        fullname = (fullname or "").strip()
        if not fullname:
            raise ValidationError("Fullname is required")
        if not email:
            raise ValidationError("Email is required")
        email = email.lower()

        user = await self.require(ctx.user_id)
        result = await self.db.execute(
            select(User.id).where(User.email == email, User.id != user.id)
        )
        if result.first():
            raise Conflict("Email already registered")

        user.fullname = fullname
        user.email = email
        await commit_or_raise(self.db, "Email already registered")
        return user

    async def update_avatar(self, ctx: RequestContext, avatar: Optional[AssetInput]) -> User:
        """Swap the avatar; the old blob is removed after the new one is saved."""
        if avatar is None:
            raise ValidationError("Avatar is required")

        async def apply(user: User, upload: UploadResult) -> User:
            user.avatar = upload.to_ref()
            await commit_or_raise(self.db)
            return user

        return await self.assets.replace_asset(
            ctx.user_id, self.get, avatar, lambda u: u.avatar, apply
        )

    async def update_cover_image(
        self, ctx: RequestContext, cover_image: Optional[AssetInput]
    ) -> User:
        if cover_image is None:
            raise ValidationError("Cover image is required")

        async def apply(user: User, upload: UploadResult) -> User:
            user.cover_image = upload.to_ref()
            await commit_or_raise(self.db)
            return user

        return await self.assets.replace_asset(
            ctx.user_id, self.get, cover_image, lambda u: u.cover_image, apply
        )
