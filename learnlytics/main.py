"""
Learnlytics Backend - FastAPI Application

Main entry point for the application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from learnlytics import __version__
from learnlytics.api.v1 import router as api_v1_router
from learnlytics.core.config import settings
from learnlytics.core.database import close_db, init_db
from learnlytics.core.exceptions import LearnlyticsError


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    
    Handles startup and shutdown events.
    """
    # Startup
    configure_logging()
    logger.info("Starting Learnlytics backend...")
    if settings.is_sqlite:
        await init_db()
    yield
    # Shutdown
    logger.info("Shutting down Learnlytics backend...")
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="Learnlytics Backend",
    description="Video-viewing telemetry ingestion, aggregation, and skill scoring.",
    version=__version__,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LearnlyticsError)
async def learnlytics_error_handler(request: Request, exc: LearnlyticsError) -> JSONResponse:
    """Translate domain errors into JSON error responses."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Include API routers
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.
    
    Returns:
        dict: Health status and environment info.
    """
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": __version__,
    }
