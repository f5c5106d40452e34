"""
Atelier Leslie FastAPI Application
Main entry point for the backend API server.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ateleslie.config import settings
from ateleslie.database import init_db, close_db
from ateleslie.exceptions import ApiError, validation_errors
from ateleslie.api.rate_limit import limiter
from ateleslie.services.images import get_image_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and cleanup on shutdown.
    """
    # Startup
    from ateleslie.logging_config import setup_logging
    setup_logging(log_dir=settings.log_dir, log_level=settings.log_level)

    logger.info("Starting Atelier Leslie backend...")

    # In production, use Alembic migrations instead
    if settings.auto_create_tables:
        await init_db()
        logger.info("Database tables ensured")

    get_image_service().ensure_directories()
    logger.info(f"Uploads stored under {settings.upload_dir}")

    yield

    # Shutdown
    logger.info("Shutting down Atelier Leslie backend...")
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Atelier Leslie",
    description="""
    ## Atelier Leslie API

    - **Accounts**: registration, login, password recovery and profiles
    - **Events**: public agenda with image galleries
    - **Contact**: information, callback and review requests
    - **Newsletter**: subscriptions, authoring and scheduled delivery
    """,
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Configure rate limiting
app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.client_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error Envelope
# =============================================================================

def error_response(status_code: int, message: str, errors=None, headers=None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = validation_errors(exc.errors())
    message = errors[0]["message"] if len(errors) == 1 else "Validation failed"
    return error_response(400, message, errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded for {request.client.host if request.client else 'unknown'} on {request.url.path}")
    return error_response(429, "Too many requests, please try again later")


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return error_response(409, "Resource already exists")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, "Internal Server Error")


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Atelier Leslie API",
        "version": "0.1.0",
        "docs": "/api/docs",
        "status": "running"
    }


@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "service": "ateleslie-backend",
        "version": "0.1.0"
    }


@app.get("/api/health/db", tags=["Health"])
async def database_health():
    """Database connectivity check."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from ateleslie.database import AsyncSessionLocal

    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            result.fetchone()
        return {
            "status": "healthy",
            "database": "connected",
        }
    except (SQLAlchemyError, OSError) as e:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e)
        }


@app.get("/api/health/redis", tags=["Health"])
async def redis_health():
    """Redis connectivity check."""
    import redis.asyncio as redis_async
    from redis.exceptions import RedisError

    try:
        r = redis_async.from_url(settings.redis_url)
        await r.ping()
        await r.aclose()
        return {
            "status": "healthy",
            "redis": "connected"
        }
    except (RedisError, OSError) as e:
        return {
            "status": "unhealthy",
            "redis": "disconnected",
            "error": str(e)
        }


from ateleslie.api import auth, users, events, contacts, newsletter


# =============================================
# API Routers
# =============================================

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(contacts.router, prefix="/api/contact", tags=["Contact"])
app.include_router(newsletter.router, prefix="/api/newsletter", tags=["Newsletter"])

# Uploaded originals and thumbnails
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ateleslie.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug
    )
