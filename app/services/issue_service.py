"""
Service for issues raised against rejected forms and their corrective actions.
"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, TransactionFailure, ValidationError
from app.models.issue import Issue, IssueSeverity, CorrectiveAction
from app.services.activity_service import ActivityAction, TargetType, log_activity

logger = logging.getLogger(__name__)


class IssueService:
    """Maintenance of issues and lookup of their corrective actions."""

    def __init__(self, db: Session):
        self.db = db

    def get_issue(self, issue_id: int) -> Issue:
        issue = self.db.get(Issue, issue_id)
        if issue is None:
            raise NotFoundError("Issue not found")
        return issue

    def update_issue(
        self,
        issue_id: int,
        description: str,
        severity: str,
        due_date: date,
        actor_id: Optional[int] = None,
    ) -> Issue:
        """Update an issue. The due date may be today but not in the past."""
        issue = self.get_issue(issue_id)
        if not (description or "").strip():
            raise ValidationError("Issue description is required")
        try:
            severity = IssueSeverity(severity).value
        except ValueError:
            allowed = ", ".join(s.value for s in IssueSeverity)
            raise ValidationError(f"Issue severity must be one of: {allowed}")
        if due_date < date.today():
            raise ValidationError("Issue due date cannot be in the past")

        try:
            issue.description = description.strip()
            issue.severity = severity
            issue.due_date = due_date
            log_activity(
                self.db,
                actor_id,
                ActivityAction.ISSUE_UPDATE,
                target_type=TargetType.ISSUE,
                target_id=issue_id,
                commit=False,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update issue {issue_id}: {e}", exc_info=True)
            raise TransactionFailure("Failed to update issue") from e

        self.db.refresh(issue)
        logger.info(f"Updated issue {issue_id}")
        return issue

    def delete_issue(self, issue_id: int, actor_id: Optional[int] = None) -> None:
        issue = self.get_issue(issue_id)
        try:
            self.db.delete(issue)
            log_activity(
                self.db,
                actor_id,
                ActivityAction.ISSUE_DELETE,
                target_type=TargetType.ISSUE,
                target_id=issue_id,
                commit=False,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete issue {issue_id}: {e}", exc_info=True)
            raise TransactionFailure("Failed to delete issue") from e
        logger.info(f"Deleted issue {issue_id}")

    def list_corrective_actions(self, issue_id: int) -> List[CorrectiveAction]:
        """Corrective actions of an issue, newest first."""
        self.get_issue(issue_id)
        return (
            self.db.query(CorrectiveAction)
            .filter(CorrectiveAction.issue_id == issue_id)
            .order_by(CorrectiveAction.created_at.desc(), CorrectiveAction.id.desc())
            .all()
        )
