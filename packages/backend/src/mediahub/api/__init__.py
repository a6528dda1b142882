"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Unlike a blanket include_router(dependencies=...), auth is declared
per route here. The handlers need the RequestContext value itself, and
some routes in each router are public (login, channel profiles, video
reads).
"""

from fastapi import APIRouter

from mediahub.api.auth import router as auth_router
from mediahub.api.health import router as health_router
from mediahub.api.users import router as users_router
from mediahub.api.videos import router as videos_router
from mediahub.schemas.common import ErrorResponse

# Documented once for every route; the bodies come from the handlers in main.py
_ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 429, 500)
}

api_router = APIRouter(prefix="/api/v1", responses=_ERROR_RESPONSES)

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(videos_router, tags=["videos"])
