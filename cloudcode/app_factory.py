"""
FastAPI application factory for the Cloud Code Editor.

Creates and configures the FastAPI application with all middleware,
routers, and startup/shutdown logic.
"""

import asyncio
import logging
import uuid as uuid_lib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from cloudcode.config import CloudCodeSettings, get_settings
from cloudcode.db import get_sqlite_connection, init_db
from cloudcode.logging_config import request_id_ctx
from cloudcode.middleware import configure_cors, register_error_handlers
from cloudcode.rate_limiter import DatabaseRateLimiter, policies_from_settings

logger = logging.getLogger(__name__)

RATE_LIMIT_CLEANUP_INTERVAL_SECONDS = 3600


async def cleanup_rate_limit_logs(limiter: DatabaseRateLimiter, interval: int = RATE_LIMIT_CLEANUP_INTERVAL_SECONDS):
    """Background task to drop stale rate limit windows"""
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(limiter.cleanup, interval)
        except Exception as e:
            logger.error(f"Rate limit cleanup error: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Initializes the database and runs the hourly rate limit cleanup.
    """
    # ===== STARTUP =====
    settings: CloudCodeSettings = app.state.settings
    logger.info(f"Starting Cloud Code API ({settings.environment})")

    conn = get_sqlite_connection(settings.database_path)
    try:
        init_db(conn)
    finally:
        conn.close()

    cleanup_task = asyncio.create_task(cleanup_rate_limit_logs(app.state.rate_limiter))

    yield

    # ===== SHUTDOWN =====
    cleanup_task.cancel()
    logger.info("Cloud Code API stopped")


def create_app(settings: Optional[CloudCodeSettings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function encapsulates:
    - App instantiation and shared state (settings, rate limiter)
    - Middleware registration (CORS, error handlers)
    - Request ID tracking middleware
    - Router registration

    Args:
        settings: Explicit settings (tests); defaults to get_settings()

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Cloud Code Editor API",
        description="""
## Cloud Code Editor

Projects, files and an AI code assistant for the browser editor.

### Authentication
Send `Authorization: Bearer <token>` or rely on the httpOnly cookies set by
`/api/v1/auth/login`.
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.rate_limiter = DatabaseRateLimiter(settings.database_path, policies_from_settings(settings))

    configure_cors(app, settings.cors_origins)
    register_error_handlers(app)

    # Middleware to add request ID to all requests
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add unique request ID for tracing and structured logging"""
        request_id = request.headers.get("X-Request-ID") or str(uuid_lib.uuid4())
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response

    from cloudcode.auth.routes import router as auth_router
    from cloudcode.routes.ai import router as ai_router
    from cloudcode.routes.files import router as files_router
    from cloudcode.routes.projects import router as projects_router

    app.include_router(auth_router)
    app.include_router(projects_router)
    app.include_router(files_router)
    app.include_router(ai_router)

    @app.get("/api/health", tags=["health"])
    async def health():
        return {"status": "ok", "environment": settings.environment}

    return app
