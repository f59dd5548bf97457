"""
Activity log endpoints for the review trail.
"""
import logging
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.auth import require_role, APIClient
from app.models.activity_log import ActivityLog
from app.schemas.activity import ActivityLogResponse, ActivityLogListResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ActivityLogListResponse)
def list_activity_logs(
    limit: int = Query(50, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    start_date: Optional[datetime] = Query(None, description="Filter logs from this date"),
    end_date: Optional[datetime] = Query(None, description="Filter logs until this date"),
    user_id: Optional[int] = Query(None, description="Filter by acting user"),
    action_type: Optional[str] = Query(None, description="Filter by action type"),
    target_type: Optional[str] = Query(None, description="Filter by target type"),
    target_id: Optional[int] = Query(None, description="Filter by target id"),
    client: APIClient = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    """
    List activity logs with optional filters, newest first.
    """
    try:
        query = db.query(ActivityLog)

        if start_date:
            query = query.filter(ActivityLog.created_at >= start_date)
        if end_date:
            query = query.filter(ActivityLog.created_at <= end_date)
        if user_id is not None:
            query = query.filter(ActivityLog.user_id == user_id)
        if action_type:
            query = query.filter(ActivityLog.action_type == action_type)
        if target_type:
            query = query.filter(ActivityLog.target_type == target_type)
        if target_id is not None:
            query = query.filter(ActivityLog.target_id == target_id)

        total = query.count()
        logs = (
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

        return ActivityLogListResponse(
            items=[ActivityLogResponse.model_validate(log) for log in logs],
            total=total,
            limit=limit,
            offset=offset,
        )
    except Exception as e:
        logger.error(f"Error listing activity logs: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve activity logs"
        )


@router.get("/{log_id}", response_model=ActivityLogResponse)
def get_activity_log(
    log_id: int,
    client: APIClient = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    """
    Get a specific activity log entry by ID.
    """
    log = db.get(ActivityLog, log_id)
    if not log:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Activity log with id {log_id} not found"
        )
    return ActivityLogResponse.model_validate(log)
