"""
Resolution of the named workflow statuses to their ids in the status table.

Services receive a StatusCodes instance at construction instead of comparing
against status id literals.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.core.database import get_db
from app.core.exceptions import ValidationError
from app.models.status import Status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusCodes:
    """Ids of the workflow statuses for one database."""
    draft: int
    pending: int
    approved: int
    rejected: int
    revision_requested: int
    names: Dict[int, str] = field(default_factory=dict, compare=False)

    def name_of(self, status_id: Optional[int]) -> Optional[str]:
        if status_id is None:
            return None
        return self.names.get(status_id)

    def is_rejected(self, status_id: Optional[int]) -> bool:
        return status_id is not None and status_id == self.rejected


def resolve_status_codes(db: Session, config: Optional[Settings] = None) -> StatusCodes:
    """
    Read the status table once and map the configured workflow names to ids.

    Raises:
        ValidationError: If one of the workflow statuses is missing
    """
    config = config or default_settings
    rows = db.query(Status.id, Status.name).all()
    names = {status_id: name for status_id, name in rows}
    by_name = {name.strip().lower(): status_id for status_id, name in rows}

    wanted = {
        "draft": config.STATUS_DRAFT,
        "pending": config.STATUS_PENDING,
        "approved": config.STATUS_APPROVED,
        "rejected": config.STATUS_REJECTED,
        "revision_requested": config.STATUS_REVISION_REQUESTED,
    }
    resolved = {}
    missing = []
    for attr, name in wanted.items():
        status_id = by_name.get(name.strip().lower())
        if status_id is None:
            missing.append(name)
        resolved[attr] = status_id

    if missing:
        logger.error(f"Workflow statuses missing from status table: {missing}")
        raise ValidationError(f"Workflow statuses not configured: {', '.join(missing)}")

    return StatusCodes(names=names, **resolved)


def get_status_codes(db: Session = Depends(get_db)) -> StatusCodes:
    """FastAPI dependency resolving the workflow statuses for the request's session."""
    try:
        return resolve_status_codes(db)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "message": e.message},
        )
