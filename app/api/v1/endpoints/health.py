"""
Health check endpoint for monitoring and diagnostics.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.config import settings
from app.models.status import Status

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Verify the API is running, the database answers and statuses are seeded.

    Returns:
        {"ok": true, "db": true, "statuses": <count>, "environment": ...}
    """
    try:
        db.execute(text("SELECT 1")).fetchone()
        status_count = db.query(Status).count()
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed"
        )

    return {
        "ok": True,
        "db": True,
        "statuses": status_count,
        "environment": settings.APP_ENV,
    }
