"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and its
dependencies (database, Redis) are reachable. Object storage isn't
probed: a health check shouldn't upload blobs.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub import __version__
from mediahub.cache import get_redis
from mediahub.config import settings
from mediahub.db.engine import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__, "storage": settings.storage_backend}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" and checks["redis"] == "ok" else "degraded"
    return {"status": status, **checks}
