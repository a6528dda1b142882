"""Token authority — issue, rotate and revoke session credentials.

Learn: Refresh tokens are self-contained JWTs, but on their own they
can't be revoked. So each user row holds ONE refresh slot:

    refresh_token_hash     SHA-256 of the only refresh token still valid
    refresh_token_version  bumped on every issue / rotation / revocation

A refresh token is accepted only if its hash and "ver" claim match the
slot. Rotation first claims the next version with a conditional UPDATE,
then writes the new hash in the same transaction:

    UPDATE users SET version=version+1 WHERE id=:id AND version=:v
    RETURNING version

If two refreshes race from the same version, only one UPDATE matches a
row; the other gets 401 instead of silently overwriting the winner.
Logout clears the slot, which kills every outstanding refresh token.
"""

import secrets
import uuid
from typing import Optional, Union

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.auth.tokens import TokenKind, TokenPair, hash_token, mint_pair, verify
from mediahub.db.models import User
from mediahub.errors import PersistenceError, Unauthorized

logger = structlog.get_logger()


def _as_uuid(user_id: Union[str, uuid.UUID]) -> uuid.UUID:
    return user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))


class TokenAuthority:
    """Session lifecycle on top of the users table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, user_id: uuid.UUID) -> Optional[User]:
        # populate_existing: the slot may have been rewritten by a Core UPDATE
        return await self.db.get(User, user_id, populate_existing=True)

    async def issue_and_persist(
        self,
        user_id: Union[str, uuid.UUID],
        expected_version: Optional[int] = None,
    ) -> TokenPair:
        """Mint a new pair and store the refresh token in the user's slot.

        Internal system write: skips the user-facing validation that
        profile edits go through. With expected_version set, the write only
        lands if nobody rotated the slot in the meantime. Without it (login,
        registration) the write always wins over whatever the slot held.

        Raises PersistenceError if the user is gone or the write fails,
        Unauthorized if expected_version no longer matches.
        """
        uid = _as_uuid(user_id)
        try:
            if await self._load(uid) is None:
                raise PersistenceError("Cannot issue tokens: user not found")

            # Claim the next version first; the row stays locked until commit,
            # so the hash written below belongs to exactly that version.
            claim = update(User).where(User.id == uid)
            if expected_version is not None:
                claim = claim.where(User.refresh_token_version == expected_version)
            result = await self.db.execute(
                claim.values(refresh_token_version=User.refresh_token_version + 1)
                .returning(User.refresh_token_version)
                .execution_options(synchronize_session=False)
            )
            version = result.scalar_one_or_none()
            if version is None:
                await self.db.rollback()
                if expected_version is not None:
                    logger.warning(
                        "auth.rotation_conflict", user_id=str(uid), version=expected_version
                    )
                    raise Unauthorized("Refresh token was already used")
                raise PersistenceError("Cannot issue tokens: user not found")

            pair = mint_pair(str(uid), version=version)
            await self.db.execute(
                update(User)
                .where(User.id == uid)
                .values(refresh_token_hash=hash_token(pair.refresh_token))
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("auth.issue_failed", user_id=str(uid), error=str(e))
            raise PersistenceError("Error while generating access and refresh token") from e

        logger.info("auth.tokens_issued", user_id=str(uid), version=version)
        return pair

    async def refresh_session(self, presented_refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new pair, rotating the slot.

        Raises TokenExpired/TokenInvalid from verification, Unauthorized if
        the user is gone or the token is not the one currently in the slot.
        """
        _, pair = await self.restore_session(presented_refresh_token)
        return pair

    async def restore_session(self, presented_refresh_token: str) -> tuple[User, TokenPair]:
        """Same rotation as refresh_session, also returning the session's user."""
        claims = verify(presented_refresh_token, TokenKind.REFRESH)
        try:
            uid = uuid.UUID(claims["sub"])
        except ValueError:
            raise Unauthorized("Invalid refresh token subject")

        user = await self._load(uid)
        if user is None:
            raise Unauthorized("User not found or invalid refresh token")

        stored = user.refresh_token_hash
        if (
            not stored
            or claims.get("ver") != user.refresh_token_version
            or not secrets.compare_digest(stored, hash_token(presented_refresh_token))
        ):
            logger.warning("auth.stale_refresh_token", user_id=str(uid))
            raise Unauthorized("Refresh token is expired or used")

        pair = await self.issue_and_persist(
            uid, expected_version=user.refresh_token_version
        )
        logger.info("auth.session_refreshed", user_id=str(uid))
        return user, pair

    async def revoke(self, user_id: Union[str, uuid.UUID]) -> None:
        """Clear the refresh slot (logout). Idempotent."""
        uid = _as_uuid(user_id)
        try:
            await self.db.execute(
                update(User)
                .where(User.id == uid)
                .values(
                    refresh_token_hash=None,
                    refresh_token_version=User.refresh_token_version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError("Could not revoke session") from e
        logger.info("auth.session_revoked", user_id=str(uid))
