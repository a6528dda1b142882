"""JWT token pair creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (60 min), sent with ordinary API calls
- Refresh token: long-lived (15 days), only used to get a new pair

The two kinds are signed with DIFFERENT secrets and carry a "type" claim,
so one can never be passed off as the other. Refresh tokens also carry
"ver", the version of the user's refresh slot they were issued for; the
server-side slot check lives in authority.py.

Verification distinguishes two failures on purpose:
- TokenExpired: signature fine, just old → client can refresh silently
- TokenInvalid: forged/malformed/wrong kind → client must log in again
"""

import enum
import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from mediahub.config import settings
from mediahub.errors import TokenExpired, TokenInvalid


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class SigningKeyError(RuntimeError):
    """Signing secret missing. A deployment problem, not a request problem."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _secret(kind: TokenKind) -> str:
    secret = (
        settings.access_token_secret
        if kind == TokenKind.ACCESS
        else settings.refresh_token_secret
    )
    if not secret:
        raise SigningKeyError(f"No signing secret configured for {kind.value} tokens")
    return secret


def _ttl(kind: TokenKind) -> timedelta:
    if kind == TokenKind.ACCESS:
        return timedelta(minutes=settings.access_token_expire_minutes)
    return timedelta(days=settings.refresh_token_expire_days)


def create_token(
    user_id: str,
    kind: TokenKind,
    version: Optional[int] = None,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT of the given kind."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": kind.value,
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else _ttl(kind)),
        # Two tokens minted in the same second must still differ
        "jti": uuid.uuid4().hex,
    }
    if version is not None:
        payload["ver"] = version
    return jwt.encode(payload, _secret(kind), algorithm=settings.jwt_algorithm)


def mint_pair(user_id: str, version: int = 0) -> TokenPair:
    """Mint an access + refresh token pair. No database side effects."""
    return TokenPair(
        access_token=create_token(user_id, TokenKind.ACCESS),
        refresh_token=create_token(user_id, TokenKind.REFRESH, version=version),
    )


def verify(token: str, expected_kind: TokenKind) -> dict:
    """Verify and decode a token of the expected kind.

    Returns the claims dict on success.
    Raises TokenExpired or TokenInvalid on failure.
    """
    try:
        claims = jwt.decode(
            token,
            _secret(expected_kind),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "type"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired(f"{expected_kind.value.capitalize()} token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalid(f"Invalid {expected_kind.value} token: {e}")

    if claims.get("type") != expected_kind.value:
        raise TokenInvalid(f"Not a {expected_kind.value} token")
    return claims


def hash_token(token: str) -> str:
    """SHA-256 of a token, as stored in the user's refresh slot."""
    return hashlib.sha256(token.encode()).hexdigest()
