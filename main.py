"""
VidShare API - Main Application Entry Point.

This module initializes and configures the FastAPI application for the VidShare
video-sharing backend. It sets up logging, database tables, middleware, error
translation and routes.

Key Responsibilities:
- Configure and launch the FastAPI application.
- Set up middleware for correlation, error handling, request logging and
  request validation, plus the exception handlers producing the uniform error
  envelope.
- Mount the resource routers under `/api/v1` and the public health routers at
  the root.
- Serve locally stored media under `settings.media_url` when the local asset
  store is in use.
- Manage the application's lifecycle with startup and shutdown events.
"""

import os
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.comment_endpoints import router as comment_router
from api.dependencies import get_asset_store
from api.health_router import health_router, monitoring_router
from api.like_endpoints import router as like_router
from api.playlist_endpoints import router as playlist_router
from api.subscription_endpoints import router as subscription_router
from api.tweet_endpoints import router as tweet_router
from api.user_endpoints import router as user_router
from api.video_endpoints import router as video_router
from core.config import get_settings
from core.database import create_db_and_tables, engine
from core.logging_config import get_logger, setup_logging
from core.middleware import (
    CorrelationMiddleware,
    ErrorHandlingMiddleware,
    PerformanceMiddleware,
    RequestValidationMiddleware,
    register_exception_handlers,
)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger = get_logger("main.startup")

    await create_db_and_tables()
    logger.info("Database initialized successfully")

    os.makedirs(settings.upload_tmp_dir, exist_ok=True)
    if settings.asset_store == "local":
        os.makedirs(settings.media_root, exist_ok=True)
    # Misconfigured asset store credentials fail startup
    get_asset_store()
    logger.info(
        f"Service startup completed ({settings.environment}, asset store: {settings.asset_store})"
    )
    yield

    # Cleanup on shutdown
    logger.info("Shutting down VidShare API")
    await engine.dispose()
    logger.info("Cleanup completed")


app = FastAPI(
    title="VidShare API",
    description="Video-sharing backend: videos, comments, likes, tweets, playlists and subscriptions",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Added innermost first; CORS ends up outermost
app.add_middleware(RequestValidationMiddleware)
app.add_middleware(PerformanceMiddleware)
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(CorrelationMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health routers (no authentication required for monitoring)
app.include_router(health_router)
app.include_router(monitoring_router)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(user_router)
api_router.include_router(video_router)
api_router.include_router(comment_router)
api_router.include_router(tweet_router)
api_router.include_router(like_router)
api_router.include_router(subscription_router)
api_router.include_router(playlist_router)
app.include_router(api_router)

if settings.asset_store == "local":
    app.mount(
        settings.media_url,
        StaticFiles(directory=settings.media_root, check_dir=False),
        name="media",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
