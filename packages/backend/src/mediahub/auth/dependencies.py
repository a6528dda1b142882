"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to turn the
request's access token into a RequestContext. The context is an
ordinary value: handlers pass it into service calls as a parameter,
nothing is stashed on the request or in a global.

The access token is read from the `accessToken` cookie first, then from
an `Authorization: Bearer <token>` header.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.auth.cookies import ACCESS_COOKIE, read_token
from mediahub.auth.tokens import TokenKind, verify
from mediahub.db.engine import get_db
from mediahub.db.models import User
from mediahub.errors import Unauthorized


@dataclass(frozen=True)
class RequestContext:
    """The authenticated identity making the request."""

    user_id: uuid.UUID
    username: str

    def owns(self, owner_id: uuid.UUID) -> bool:
        return self.user_id == owner_id


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[RequestContext]:
    """Resolve the current identity, or None if no token was sent.

    Learn: A token that IS sent but doesn't verify still fails with 401
    (TokenExpired or TokenInvalid). Only "no token at all" is anonymous.
    """
    token = read_token(request, ACCESS_COOKIE)
    if not token:
        return None

    claims = verify(token, TokenKind.ACCESS)
    try:
        user_id = uuid.UUID(claims["sub"])
    except ValueError:
        raise Unauthorized("Invalid access token subject")

    user = await db.get(User, user_id)
    if user is None:
        raise Unauthorized("Invalid access token")

    return RequestContext(user_id=user.id, username=user.username)


async def get_current_user(
    ctx: Optional[RequestContext] = Depends(get_current_user_optional),
) -> RequestContext:
    """Resolve the current identity (required, 401 if no auth)."""
    if ctx is None:
        raise Unauthorized("Authentication required")
    return ctx
