"""
Issue endpoints.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.auth import APIClient, require_role
from app.core.exceptions import ComplianceAuditError, to_http_exception
from app.services.issue_service import IssueService
from app.schemas.audit import MessageResponse
from app.schemas.issue import CorrectiveActionResponse, IssueResponse, IssueUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put("/{issue_id}", response_model=IssueResponse)
def update_issue(
    issue_id: int,
    payload: IssueUpdateRequest,
    client: APIClient = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    try:
        issue = IssueService(db).update_issue(
            issue_id,
            description=payload.description,
            severity=payload.severity,
            due_date=payload.due_date,
            actor_id=client.user_id,
        )
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return IssueResponse.model_validate(issue)


@router.delete("/{issue_id}", response_model=MessageResponse)
def delete_issue(
    issue_id: int,
    client: APIClient = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    try:
        IssueService(db).delete_issue(issue_id, actor_id=client.user_id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Issue deleted successfully")


@router.get("/{issue_id}/corrective-actions", response_model=List[CorrectiveActionResponse])
def list_corrective_actions(
    issue_id: int,
    _client: APIClient = Depends(require_role("outlet_user")),
    db: Session = Depends(get_db),
):
    """Corrective actions of an issue, newest first."""
    try:
        actions = IssueService(db).list_corrective_actions(issue_id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return [CorrectiveActionResponse.model_validate(action) for action in actions]
