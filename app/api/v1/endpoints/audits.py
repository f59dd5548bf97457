"""
Audit endpoints: creation, listings, version history, details and the status workflow.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.auth import APIClient, require_role
from app.core.exceptions import ComplianceAuditError, to_http_exception
from app.services.audit_history import AuditHistoryService
from app.services.audit_queries import AuditQueryService
from app.services.audit_workflow import AuditWorkflowService
from app.services.status_codes import StatusCodes, get_status_codes
from app.schemas.audit import (
    AdminAuditListResponse,
    AuditCreateRequest,
    AuditCreateResponse,
    AuditDetailResponse,
    AuditSummary,
    AuditStatusUpdateRequest,
    AuditStatusUpdateResponse,
    MessageResponse,
    RejectedFormsCheckResponse,
)
from app.schemas.form import AuditFormSummary
from app.schemas.history import AuditHistoryPage

logger = logging.getLogger(__name__)

router = APIRouter()


def _internal_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"success": False, "message": message},
    )


# Static routes must be defined before the /{audit_id} routes


@router.get("", response_model=AdminAuditListResponse)
def list_audits(
    date_filter: str = Query("last30", description="last7, last30, last90 or thisYear"),
    status_filter: str = Query("all", description="Status name or 'all'"),
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    history_page: int = Query(1, ge=1),
    history_per_page: Optional[int] = Query(None, ge=1, le=100),
    _client: APIClient = Depends(require_role("admin")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """
    Admin dashboard listing.

    Returns one page of current audits (latest version of every chain plus
    audits never versioned), one page of version histories, and the filter
    options.
    """
    try:
        audits = AuditQueryService(db, codes).list_admin_audits(
            date_filter=date_filter,
            status_filter=status_filter,
            page=page,
            per_page=per_page,
        )
        history = AuditHistoryService(db, codes).history_page(history_page, history_per_page)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error listing audits: {e}", exc_info=True)
        raise _internal_error("Failed to retrieve audits")

    return AdminAuditListResponse(
        audits={k: audits[k] for k in ("items", "total", "page", "per_page", "pages")},
        history=history,
        date_filter=audits["date_filter"],
        status_filter=audits["status_filter"],
        date_filters=audits["date_filters"],
        status_filters=audits["status_filters"],
    )


@router.post("", response_model=AuditCreateResponse, status_code=status.HTTP_201_CREATED)
def create_audit(
    payload: AuditCreateRequest,
    client: APIClient = Depends(require_role("outlet_user")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """Start a draft audit of an outlet; the acting user becomes its auditor."""
    try:
        audit = AuditWorkflowService(db, codes).create_audit(
            payload.outlet_id, payload.compliance_id, user_id=client.user_id
        )
        details = AuditQueryService(db, codes).audit_details(audit.id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return AuditCreateResponse(message="Audit created successfully", audit=details)


@router.get("/mine", response_model=List[AuditSummary])
def list_my_audits(
    user_id: Optional[int] = Query(None, description="Defaults to the acting user"),
    client: APIClient = Depends(require_role("outlet_user")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """Current version of every audit the user started."""
    user_id = user_id if user_id is not None else client.user_id
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"success": False, "message": "user_id is required"},
        )
    try:
        return AuditQueryService(db, codes).list_user_audits(user_id)
    except Exception as e:
        logger.error(f"Error listing audits for user {user_id}: {e}", exc_info=True)
        raise _internal_error("Failed to retrieve audits")


@router.get("/history", response_model=AuditHistoryPage)
def get_audit_history(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    _client: APIClient = Depends(require_role("admin")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """Version chains, newest activity first."""
    try:
        return AuditHistoryService(db, codes).history_page(page, per_page)
    except Exception as e:
        logger.error(f"Error building audit history: {e}", exc_info=True)
        raise _internal_error("Failed to retrieve audit history")


@router.get("/{audit_id}", response_model=AuditDetailResponse)
def get_audit(
    audit_id: int,
    _client: APIClient = Depends(require_role("outlet_user")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    try:
        return AuditQueryService(db, codes).audit_details(audit_id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)


@router.delete("/{audit_id}", response_model=MessageResponse)
def delete_audit(
    audit_id: int,
    client: APIClient = Depends(require_role("outlet_user")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """Delete a draft audit that is the latest version of its chain."""
    try:
        AuditWorkflowService(db, codes).delete_audit(audit_id, actor_id=client.user_id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Audit deleted successfully")


@router.put("/{audit_id}/status", response_model=AuditStatusUpdateResponse)
def update_audit_status(
    audit_id: int,
    payload: AuditStatusUpdateRequest,
    client: APIClient = Depends(require_role("manager")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """
    Review an audit.

    Rejecting creates the next version of the audit in "revision requested",
    with rejected forms duplicated for rework and the other forms linked as-is.
    The response carries the new audit id.
    """
    try:
        result = AuditWorkflowService(db, codes).update_audit_status(
            audit_id, payload.status_id, actor_id=client.user_id
        )
    except ComplianceAuditError as e:
        raise to_http_exception(e)

    return AuditStatusUpdateResponse(message=result.message, new_audit_id=result.new_audit_id)


@router.get("/{audit_id}/forms", response_model=List[AuditFormSummary])
def list_audit_forms(
    audit_id: int,
    _client: APIClient = Depends(require_role("outlet_user")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    try:
        forms = AuditQueryService(db, codes).audit_forms(audit_id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return [AuditFormSummary.model_validate(form) for form in forms]


@router.get("/{audit_id}/rejected-forms-check", response_model=RejectedFormsCheckResponse)
def check_rejected_forms(
    audit_id: int,
    _client: APIClient = Depends(require_role("outlet_user")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    try:
        has_rejected = AuditQueryService(db, codes).has_rejected_forms(audit_id)
    except ComplianceAuditError as e:
        raise to_http_exception(e)
    return RejectedFormsCheckResponse(hasRejectedForms=has_rejected)
