"""
Oven Booking API - Main Application Entry Point

Lab oven reservations with:
- Conflict-free booking per oven, enforced under row locks
- Maintenance cascades and time-driven auto-completion
- An append-only event log for every booking transition
- Redis caching for the status board and calendar
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from oven_booking.core.config import get_settings
from oven_booking.core.exceptions import ErrorCode
from oven_booking.core.logging import setup_logging, get_logger
from oven_booking.core.metrics import metrics_endpoint
from oven_booking.api.router import api_router
from oven_booking.api.middleware import RequestLoggingMiddleware
from oven_booking.db.session import dispose_engine
from oven_booking.schemas.common import ActionResponse
from oven_booking.services.cache_service import get_redis, close_redis, get_cache_stats

settings = get_settings()
logger = get_logger(__name__)

HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: ErrorCode.AUTHORIZATION,
    status.HTTP_403_FORBIDDEN: ErrorCode.AUTHORIZATION,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
}

REQUEST_PARTS = ("body", "query", "path", "header")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    await close_redis()
    await dispose_engine()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Lab oven booking API with conflict-free reservations",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


def _envelope(status_code: int, body: ActionResponse, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Malformed input (a bad date format, a missing field) is a VALIDATION
    rejection in the shared envelope, named after the first offending field.
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in REQUEST_PARTS) or None
    reason = first.get("msg", "Invalid request")

    logger.info("request_validation_failed", path=request.url.path, field=field, errors=len(errors))
    body = ActionResponse(
        success=False,
        message=f"{field}: {reason}" if field else reason,
        error_code=ErrorCode.VALIDATION,
        details={"field": field} if field else None,
    )
    return _envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, body)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = ActionResponse(
        success=False,
        message=str(exc.detail),
        error_code=HTTP_ERROR_CODES.get(exc.status_code),
    )
    return _envelope(exc.status_code, body, headers=getattr(exc, "headers", None))


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
