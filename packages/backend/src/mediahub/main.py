"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database engine).
Middleware, exception handlers, and routers all registered here.

Every error leaves the app in the same envelope:
    {"statusCode": ..., "message": ..., "errorKind": ...}
ApiError subclasses carry their own status and kind; request validation
failures become ValidationError (400); anything unexpected is logged and
becomes InternalError (500).
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediahub import __version__
from mediahub.api import api_router
from mediahub.config import settings
from mediahub.errors import ApiError, ErrorKind, Unauthorized

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "mediahub.starting",
        version=__version__,
        environment=settings.environment,
        storage=settings.storage_backend,
        port=settings.port,
    )

    from mediahub.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("mediahub.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("mediahub.redis_unavailable", error=str(e))
        # Redis is optional; without it there is no rate limiting

    yield

    logger.info("mediahub.shutdown")
    await close_redis()

    from mediahub.db.engine import engine
    await engine.dispose()


# ─── Exception handlers ──────────────────────────────────


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    if exc.status_code >= 500:
        logger.error("request.failed", error_kind=exc.kind.value, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_envelope(), headers=headers
    )


_HTTP_STATUS_KINDS = {
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    429: ErrorKind.RATE_LIMITED,
}


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Framework errors (unknown route, wrong method) in the same envelope."""
    if exc.status_code >= 500:
        kind = ErrorKind.INTERNAL
    else:
        kind = _HTTP_STATUS_KINDS.get(exc.status_code, ErrorKind.VALIDATION)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "statusCode": exc.status_code,
            "message": str(exc.detail),
            "errorKind": kind.value,
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
        message = f"{loc}: {errors[0]['msg']}" if loc else errors[0]["msg"]
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=400,
        content={
            "statusCode": 400,
            "message": message,
            "errorKind": ErrorKind.VALIDATION.value,
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "statusCode": 500,
            "message": "Internal server error",
            "errorKind": ErrorKind.INTERNAL.value,
        },
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="MediaHub",
        description="Media-sharing platform backend: accounts, sessions and videos",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from mediahub.middleware.rate_limit import RateLimitMiddleware
    from mediahub.middleware.request_id import RequestIdMiddleware
    from mediahub.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: mediahub.main:app)
app = create_app()
