"""
Manager dashboard endpoints.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.auth import APIClient, require_role
from app.services.audit_queries import AuditQueryService
from app.services.status_codes import StatusCodes, get_status_codes
from app.schemas.audit import AuditSummary

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/audits", response_model=List[AuditSummary])
def list_manager_audits(
    manager_id: Optional[int] = Query(None, description="Defaults to the acting user"),
    client: APIClient = Depends(require_role("manager")),
    codes: StatusCodes = Depends(get_status_codes),
    db: Session = Depends(get_db),
):
    """Current audits of the outlets a manager is responsible for."""
    manager_id = manager_id if manager_id is not None else client.user_id
    if manager_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"success": False, "message": "manager_id is required"},
        )

    try:
        return AuditQueryService(db, codes).list_manager_audits(manager_id)
    except Exception as e:
        logger.error(f"Error listing audits for manager {manager_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "message": "Failed to retrieve audits"},
        )
