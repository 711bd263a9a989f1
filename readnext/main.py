"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from readnext.api import router as api_router
from readnext.core.config import get_settings
from readnext.core.database import Base, engine
from readnext.core.logging import get_logger, setup_logging
from readnext.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)

settings = get_settings()

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(
        f"Starting {settings.APP_NAME}",
        extra={
            "extra_fields": {
                "environment": settings.ENVIRONMENT,
                "debug": settings.DEBUG,
                "llm_provider": settings.LLM_PROVIDER if settings.llm_enabled else None,
            }
        },
    )

    # Import models so their tables are registered before create_all
    from readnext import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified/created")

    if not settings.llm_enabled:
        logger.warning("No language-model API key configured, recommendations use heuristic analysis")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")


app = FastAPI(
    title=settings.APP_NAME,
    description="Personal library tracker with catalog-based reading recommendations",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)

# CORS middleware - must be added first (outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for load balancers and monitoring.

    Returns basic application health status.
    """
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health/ready")
async def readiness_check():
    """
    Readiness check endpoint.

    Verifies the database is reachable.
    """
    from sqlalchemy import text

    from readnext.core.database import SessionLocal

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "disconnected"
    finally:
        db.close()

    return {
        "status": "ready" if db_status == "connected" else "not_ready",
        "checks": {
            "database": db_status,
            # Informational: recommendations still work without a model
            "llm": settings.LLM_PROVIDER if settings.llm_enabled else "disabled",
        },
    }


app.include_router(api_router, prefix=settings.API_V1_PREFIX)
