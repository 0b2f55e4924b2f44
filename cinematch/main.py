"""
CineMatch - Main FastAPI Application
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .api import auth_router, friends_router, swipe_router, movies_router
from .core.logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .storage import init_storage, get_storage, set_storage

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    setup_logging(settings)

    # Reuse a storage that is already installed
    owns_storage = False
    try:
        get_storage()
    except RuntimeError:
        await init_storage(settings.database_url, echo=settings.database_echo)
        owns_storage = True
    logger.info("Storage initialized")

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level.upper()}")
    logger.info(f"Debug mode: {settings.debug}")
    yield
    # Shutdown
    if owns_storage:
        await get_storage().close()
        set_storage(None)
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Swipe on movies together and find the one you both want to watch",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware (after CORS)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(auth_router)
app.include_router(friends_router)
app.include_router(swipe_router)
app.include_router(movies_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "database": settings.database_url.split(":", 1)[0],
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cinematch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
