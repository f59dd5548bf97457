"""
Service for seeding the built-in workflow statuses.
"""
import logging
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.status import Status

logger = logging.getLogger(__name__)


def builtin_statuses():
    """Workflow statuses every deployment needs, as (name, description) pairs."""
    return [
        (settings.STATUS_DRAFT, "Audit or form is being filled in by the outlet user"),
        (settings.STATUS_PENDING, "Submitted and waiting for review"),
        (settings.STATUS_APPROVED, "Reviewed and accepted"),
        (settings.STATUS_REJECTED, "Reviewed and rejected; a new version is opened"),
        (settings.STATUS_REVISION_REQUESTED, "Successor audit opened after a rejection"),
    ]


def seed_statuses(db: Session) -> int:
    """
    Insert any missing workflow status. Existing rows are matched by name,
    case-insensitively, and left untouched.

    Returns:
        Number of statuses created
    """
    existing = {name.lower() for (name,) in db.query(Status.name).all()}
    created = 0
    for name, description in builtin_statuses():
        if name.lower() in existing:
            continue
        db.add(Status(name=name, description=description))
        created += 1

    if created:
        db.commit()
        logger.info(f"Seeded {created} workflow statuses")
    else:
        logger.info("Workflow statuses already exist. Skipping seed.")
    return created


def ensure_statuses_seeded(db: Session) -> None:
    """Ensure workflow statuses are seeded (called on startup)."""
    try:
        seed_statuses(db)
    except Exception as e:
        db.rollback()
        logger.error(f"Error seeding workflow statuses: {e}", exc_info=True)
