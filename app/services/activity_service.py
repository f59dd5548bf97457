"""
Activity logging service for the review trail.
"""
import logging
from typing import Optional, Dict, Any, Iterable
from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog
from app.models.user import User

logger = logging.getLogger(__name__)


class ActivityAction:
    """Constants for activity actions."""
    CREATE = "create"
    REVIEW = "review"
    DELETE = "delete"
    ISSUE_UPDATE = "issue_update"
    ISSUE_DELETE = "issue_delete"
    AI_ANALYSIS = "ai_analysis"


class TargetType:
    """Constants for target types."""
    AUDIT = "audit"
    AUDIT_FORM = "audit_form"
    ISSUE = "issue"


def log_activity(
    db: Session,
    user_id: Optional[int],
    action_type: str,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    commit: bool = True,
) -> ActivityLog:
    """
    Log an activity to the review trail.

    Args:
        db: Database session
        user_id: Acting user, if known
        action_type: Action name (e.g., "review", "delete")
        target_type: Type of record affected (e.g., "audit", "audit_form")
        target_id: ID of the affected record
        details: Additional JSON details about the action
        commit: Commit immediately; pass False to join the caller's transaction

    Returns:
        Created ActivityLog record
    """
    activity = ActivityLog(
        user_id=user_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        details=details,
    )
    db.add(activity)
    if commit:
        db.commit()
        db.refresh(activity)
    else:
        db.flush()

    logger.debug(f"Logged activity: {action_type} {target_type}#{target_id} by user {user_id}")
    return activity


def latest_reviewers(db: Session, audit_ids: Iterable[int]) -> Dict[int, Optional[str]]:
    """
    Name of the user behind the most recent review of each audit.

    Audits never reviewed are absent from the result; reviews logged without a
    user map to None.
    """
    audit_ids = list(audit_ids)
    if not audit_ids:
        return {}

    rows = (
        db.query(ActivityLog.target_id, User.name)
        .outerjoin(User, ActivityLog.user_id == User.id)
        .filter(
            ActivityLog.action_type == ActivityAction.REVIEW,
            ActivityLog.target_type == TargetType.AUDIT,
            ActivityLog.target_id.in_(audit_ids),
        )
        .order_by(ActivityLog.created_at.asc(), ActivityLog.id.asc())
        .all()
    )
    reviewers: Dict[int, Optional[str]] = {}
    for target_id, name in rows:
        # Later rows overwrite earlier ones
        reviewers[target_id] = name
    return reviewers
