"""
Main FastAPI application entry point.
"""
import logging
import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from apkdepot.core.config import settings
from apkdepot.core.database import engine, Base, SessionLocal
from apkdepot.core.errors import DomainError
from apkdepot.core.logging_config import setup_logging
from apkdepot.api.v1.router import api_router
from apkdepot.middleware.request_logging import RequestLoggingMiddleware
from apkdepot.services.super_admin_seeder import ensure_super_admin

# Import all models to ensure they register with Base.metadata
from apkdepot.models import User, Application, ApiKey, ApplicationVersion  # noqa: F401

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


def run_migrations() -> None:
    """Upgrade the database to the latest Alembic revision."""
    from alembic.config import Config
    from alembic import command

    alembic_cfg = Config("alembic.ini")
    command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting up {settings.APP_NAME} API...")

    # Run Alembic migrations if DATABASE_URL is set (hosted deployment)
    if os.getenv("DATABASE_URL"):
        try:
            logger.info("[MIGRATION] DATABASE_URL detected, running Alembic migrations...")
            run_migrations()
            logger.info("[MIGRATION] Alembic migrations completed successfully (or already up-to-date)")
        except Exception as e:
            trace_id = str(uuid.uuid4())
            logger.warning(
                f"[MIGRATION] [{trace_id}] Alembic migration failed: {e}. "
                "Falling back to creating missing tables."
            )
            logger.debug(f"[MIGRATION] [{trace_id}] Migration error details:", exc_info=True)
    else:
        logger.info("[MIGRATION] DATABASE_URL not set, skipping migrations (local dev mode)")

    # Ensure database tables are created (fallback for local dev without Alembic)
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}", exc_info=True)

    # Test database connectivity
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        logger.info("Database connectivity verified")
        ensure_super_admin(db, settings)
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.error(f"[{trace_id}] Startup database work failed: {e}", exc_info=True)
    finally:
        db.close()

    yield
    logger.info(f"Shutting down {settings.APP_NAME} API...")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Self-hosted Android APK distribution service - users, applications, API keys and versions",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# Request logging middleware (must be added before other middleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Map business failures to their status code with a uniform body."""
    trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))
    logger.info(f"[{trace_id}] {exc.kind.name}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "error": exc.kind.value,
            "trace_id": trace_id,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors with trace_id."""
    trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))

    logger.error(
        f"[{trace_id}] Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )

    if isinstance(exc, SQLAlchemyError):
        error_detail = "Database error: check DATABASE_URL / migrations"
        error_type = "DatabaseError"
    else:
        error_detail = str(exc) if settings.DEBUG else "Internal Server Error"
        error_type = type(exc).__name__

    return JSONResponse(
        status_code=500,
        content={
            "detail": error_detail,
            "error": error_type,
            "trace_id": trace_id,
        },
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """
    Liveness endpoint for load balancers.

    Returns 200 without touching the database. Use /api/v1/health for readiness.
    """
    return {"status": "ok"}
