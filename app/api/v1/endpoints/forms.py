"""
Audit form endpoints: details, review, AI analysis and previous-version issues.
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.auth import APIClient, require_role
from app.core.exceptions import ComplianceAuditError, to_http_exception
from app.services.ai_service import FormAnalysisService
from app.services.audit_queries import AuditQueryService
from app.services.audit_workflow import AuditWorkflowService, IssueDetails
from app.services.status_codes import StatusCodes, get_status_codes
from app.schemas.form import (
    AuditFormDetail,
    AuditFormSummary,
    FormAnalysisResponse,
    FormStatusUpdateRequest,
    FormStatusUpdateResponse,
)
from app.schemas.issue import IssueResponse, IssueWithActionsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{form_id}", response_model=AuditFormDetail)
def get_form(
    form_id: int,
    _client: APIClient = Depends(require_role("outlet_user")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """Form answers merged into the template structure, with the owning audit."""
    try:
        return AuditQueryService(db, codes).form_details(form_id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)


@router.put("/{form_id}/status", response_model=FormStatusUpdateResponse)
def update_form_status(
    form_id: int,
    payload: FormStatusUpdateRequest,
    client: APIClient = Depends(require_role("manager")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """Review one form. Rejection requires an issue."""
    issue = None
    if payload.issue is not None:
        issue = IssueDetails(
            description=payload.issue.description,
            severity=payload.issue.severity,
            due_date=payload.issue.due_date,
        )
    try:
        result = AuditWorkflowService(db, codes).update_form_status(
            form_id, payload.status_id, issue=issue, actor_id=client.user_id
        )
    except ComplianceAuditError as e:
        raise to_http_exception(e)

    return FormStatusUpdateResponse(
        message="Form status updated successfully",
        form=AuditFormSummary.model_validate(result.form),
        issue=IssueResponse.model_validate(result.issue) if result.issue else None,
    )


@router.post("/{form_id}/analysis", response_model=FormAnalysisResponse)
def analyze_form(
    form_id: int,
    refresh: bool = Query(False, description="Ignore a stored analysis"),
    client: APIClient = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    """AI analysis of a submitted form; stored on the form after the first call."""
    try:
        result = FormAnalysisService(db).analyze(form_id, actor_id=client.user_id, refresh=refresh)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return FormAnalysisResponse(analysis=result["analysis"], cached=result["cached"])


@router.get("/{form_id}/previous-issues", response_model=List[IssueWithActionsResponse])
def get_previous_issues(
    form_id: int,
    _client: APIClient = Depends(require_role("outlet_user")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """Issues raised on this form's template in the previous audit version."""
    try:
        issues = AuditQueryService(db, codes).previous_version_issues(form_id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return [IssueWithActionsResponse.model_validate(issue) for issue in issues]
