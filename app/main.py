"""
Main FastAPI application entry point.
"""
import logging
import os
import uuid
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import engine, Base, SessionLocal
from app.core.exceptions import ComplianceAuditError, to_http_exception
from app.core.logging_config import setup_logging
from app.api.v1.router import api_router
from app.middleware.request_logging import RequestLoggingMiddleware

# Import all models so they register with Base.metadata
from app.models import (  # noqa: F401
    Status,
    User,
    Outlet,
    FormTemplate,
    ComplianceRequirement,
    Audit,
    AuditForm,
    AuditAuditForm,
    AuditVersion,
    Issue,
    CorrectiveAction,
    ActivityLog,
)

setup_logging()
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def run_migrations() -> None:
    """Apply Alembic migrations when running against a managed database."""
    if not os.getenv("DATABASE_URL"):
        logger.info("[MIGRATION] DATABASE_URL not set, skipping migrations (local dev mode)")
        return
    try:
        from alembic.config import Config
        from alembic import command

        logger.info("[MIGRATION] DATABASE_URL detected, running Alembic migrations...")
        command.upgrade(Config("alembic.ini"), "head")
        logger.info("[MIGRATION] Alembic migrations completed (or already up-to-date)")
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.warning(
            f"[MIGRATION] [{trace_id}] Alembic migration failed: {e}. "
            "Falling back to metadata table creation."
        )
        logger.debug(f"[MIGRATION] [{trace_id}] Migration error details:", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting up {settings.APP_NAME}...")

    run_migrations()

    # Fallback for local dev without Alembic
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}", exc_info=True)

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            logger.info("Database connectivity verified")
        finally:
            db.close()
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.error(f"[{trace_id}] Database connectivity test failed: {e}", exc_info=True)

    # Workflow status ids are looked up by name, so the names must exist
    try:
        from app.services.status_seeder import ensure_statuses_seeded
        db = SessionLocal()
        try:
            ensure_statuses_seeded(db)
        finally:
            db.close()
    except Exception as e:
        logger.warning(f"Failed to seed statuses: {e}")

    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    description="Compliance audit workflow: audit review, rejection versioning and history",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# Request logging middleware (must be added before other middleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(ComplianceAuditError)
async def compliance_error_handler(request: Request, exc: ComplianceAuditError):
    """Domain errors that escaped an endpoint keep their status code and envelope."""
    http_exc = to_http_exception(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors with trace_id."""
    trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))
    logger.error(
        f"[{trace_id}] Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )

    if isinstance(exc, SQLAlchemyError):
        message = "Database error"
    else:
        message = str(exc) if settings.DEBUG else "An unexpected error occurred"

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": message,
            "trace_id": trace_id,
            "error": type(exc).__name__,
        },
    )


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": settings.APP_NAME,
        "version": APP_VERSION,
        "docs": "/docs",
    }
