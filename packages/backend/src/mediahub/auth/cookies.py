"""Cookie transport for the token pair.

Learn: The transport policy is a fixed table, not per-call logic. Both
cookies are:
- HttpOnly: not readable from page JavaScript (XSS can't steal them)
- SameSite=Strict: only sent on first-party requests (CSRF)
- Secure: only over HTTPS, except in local development
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Request, Response

from mediahub.auth.tokens import TokenPair
from mediahub.config import settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


@dataclass(frozen=True)
class CookiePolicy:
    ttl: timedelta
    httponly: bool = True
    samesite: str = "strict"
    secure_in_prod: bool = True

    @property
    def max_age(self) -> int:
        return int(self.ttl.total_seconds())


COOKIE_POLICY: dict[str, CookiePolicy] = {
    ACCESS_COOKIE: CookiePolicy(ttl=timedelta(minutes=settings.access_token_expire_minutes)),
    REFRESH_COOKIE: CookiePolicy(ttl=timedelta(days=settings.refresh_token_expire_days)),
}


def _secure(policy: CookiePolicy) -> bool:
    return policy.secure_in_prod and not settings.is_development


def set_auth_cookies(response: Response, pair: TokenPair) -> None:
    """Attach both tokens as cookies according to COOKIE_POLICY."""
    for name, value in (
        (ACCESS_COOKIE, pair.access_token),
        (REFRESH_COOKIE, pair.refresh_token),
    ):
        policy = COOKIE_POLICY[name]
        response.set_cookie(
            key=name,
            value=value,
            max_age=policy.max_age,
            httponly=policy.httponly,
            samesite=policy.samesite,
            secure=_secure(policy),
        )


def clear_auth_cookies(response: Response) -> None:
    for name, policy in COOKIE_POLICY.items():
        response.delete_cookie(
            key=name,
            httponly=policy.httponly,
            samesite=policy.samesite,
            secure=_secure(policy),
        )


def read_token(request: Request, cookie_name: str) -> Optional[str]:
    """Token from the named cookie, falling back to `Authorization: Bearer`."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None
