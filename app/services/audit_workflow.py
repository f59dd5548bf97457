"""
Audit review workflow.

Audits move Draft -> Pending -> Approved | Rejected. Rejecting an audit opens a
successor audit in "revision requested", registers it in the version chain and
replicates the forms into it, all in one transaction: either every write lands
or none does.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ComplianceAuditError,
    ConflictError,
    NotFoundError,
    TransactionFailure,
    ValidationError,
)
from app.models.audit import Audit, AuditForm, AuditAuditForm
from app.models.compliance import ComplianceRequirement
from app.models.issue import Issue, IssueSeverity
from app.models.outlet import Outlet
from app.models.status import Status
from app.services.activity_service import ActivityAction, TargetType, log_activity
from app.services.form_replication import FormReplicationEngine, ReplicationResult
from app.services.status_codes import StatusCodes
from app.services.version_chain import VersionChainStore

logger = logging.getLogger(__name__)

# Columns a successor audit never inherits
_SUCCESSOR_SKIP_COLUMNS = {"id", "created_at", "updated_at"}


@dataclass
class StatusUpdateResult:
    """Outcome of an audit status update."""
    audit_id: int
    status_id: int
    message: str
    new_audit_id: Optional[int] = None
    replication: Optional[ReplicationResult] = None


@dataclass
class IssueDetails:
    """Issue raised together with a form rejection."""
    description: str
    severity: str
    due_date: date


@dataclass
class FormStatusResult:
    form: AuditForm
    issue: Optional[Issue] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditWorkflowService:
    """Status transitions for audits and audit forms."""

    def __init__(
        self,
        db: Session,
        status_codes: StatusCodes,
        allow_reject_superseded: Optional[bool] = None,
    ):
        self.db = db
        self.status_codes = status_codes
        self.chains = VersionChainStore(db)
        self.replication = FormReplicationEngine(db, status_codes)
        if allow_reject_superseded is None:
            allow_reject_superseded = settings.ALLOW_REJECT_SUPERSEDED
        self.allow_reject_superseded = allow_reject_superseded

    def create_audit(self, outlet_id: int, compliance_id: int, user_id: Optional[int] = None) -> Audit:
        """Start a new draft audit of an outlet against a compliance requirement."""
        if outlet_id is None or self.db.get(Outlet, outlet_id) is None:
            raise ValidationError("The selected outlet_id is invalid")
        if compliance_id is None or self.db.get(ComplianceRequirement, compliance_id) is None:
            raise ValidationError("The selected compliance_id is invalid")

        now = _utcnow()
        try:
            audit = Audit(
                outlet_id=outlet_id,
                compliance_id=compliance_id,
                user_id=user_id,
                status_id=self.status_codes.draft,
                start_time=now,
                progress=0,
            )
            self.db.add(audit)
            self.db.flush()
            log_activity(
                self.db,
                user_id,
                ActivityAction.CREATE,
                target_type=TargetType.AUDIT,
                target_id=audit.id,
                details={"outlet_id": outlet_id, "compliance_id": compliance_id},
                commit=False,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating audit for outlet {outlet_id}: {e}", exc_info=True)
            raise TransactionFailure("Failed to create audit") from e

        self.db.refresh(audit)
        logger.info(f"Created audit {audit.id} for outlet {outlet_id}")
        return audit

    def update_audit_status(
        self,
        audit_id: int,
        status_id: int,
        actor_id: Optional[int] = None,
    ) -> StatusUpdateResult:
        """
        Set an audit's status; on rejection open the next version of the audit.

        Raises:
            ValidationError: Unknown status id
            NotFoundError: Unknown audit id
            ConflictError: Audit already superseded, or a concurrent rejection won the race
            TransactionFailure: Any other failure; nothing was written
        """
        self._require_status(status_id)
        audit = (
            self.db.query(Audit)
            .filter(Audit.id == audit_id)
            .with_for_update()
            .first()
        )
        if audit is None:
            raise NotFoundError("Audit not found")

        rejecting = self.status_codes.is_rejected(status_id)
        if rejecting and not self.allow_reject_superseded and not self.chains.is_latest_version(audit_id):
            self.db.rollback()
            raise ConflictError(
                f"Audit {audit_id} already has a newer version; only the latest version can be rejected"
            )

        now = _utcnow()
        try:
            audit.status_id = status_id
            audit.updated_at = now
            self.db.flush()

            result = StatusUpdateResult(
                audit_id=audit_id,
                status_id=status_id,
                message="Audit status updated successfully",
            )

            if rejecting:
                successor = self._create_successor(audit, now)
                self._register_version(audit_id, successor.id)
                result.replication = self.replication.replicate_forms(audit_id, successor.id, now=now)
                result.new_audit_id = successor.id
                result.message = "Audit rejected and new version created successfully"

            log_activity(
                self.db,
                actor_id,
                ActivityAction.REVIEW,
                target_type=TargetType.AUDIT,
                target_id=audit_id,
                details={
                    "status_id": status_id,
                    "status": self.status_codes.name_of(status_id),
                    "new_audit_id": result.new_audit_id,
                },
                commit=False,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Concurrent update of audit {audit_id} rejected by the datastore: {e}")
            raise ConflictError(
                f"Audit {audit_id} was updated concurrently; reload it and retry"
            ) from e
        except ComplianceAuditError:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Error updating audit status: audit_id={audit_id}, status_id={status_id}, error={e}",
                exc_info=True,
            )
            raise TransactionFailure("Error updating audit status") from e

        if result.new_audit_id is not None:
            logger.info(f"Audit {audit_id} rejected; version successor is audit {result.new_audit_id}")
        else:
            logger.info(f"Audit {audit_id} status set to {status_id}")
        return result

    def _create_successor(self, audit: Audit, now: datetime) -> Audit:
        """Copy an audit into a new revision-requested audit starting now."""
        data = {
            column.key: getattr(audit, column.key)
            for column in Audit.__table__.columns
            if column.key not in _SUCCESSOR_SKIP_COLUMNS
        }
        data.update(
            status_id=self.status_codes.revision_requested,
            start_time=now,
            progress=0,
            created_at=now,
            updated_at=now,
        )
        successor = Audit(**data)
        self.db.add(successor)
        self.db.flush()
        logger.info(f"Created new audit {successor.id} for rejected audit {audit.id}")
        return successor

    def _register_version(self, current_audit_id: int, new_audit_id: int) -> None:
        info = self.chains.get_chain_info(current_audit_id)
        if info.is_versioned:
            first_audit_id = info.first_audit_id
        else:
            self.chains.record_first_version(current_audit_id)
            first_audit_id = current_audit_id
        self.chains.record_next_version(first_audit_id, new_audit_id)

    def update_form_status(
        self,
        form_id: int,
        status_id: int,
        issue: Optional[IssueDetails] = None,
        actor_id: Optional[int] = None,
    ) -> FormStatusResult:
        """
        Review one form. Rejecting a form requires issue details; the issue is
        created in the same transaction as the status change.
        """
        self._require_status(status_id)
        form = self.db.get(AuditForm, form_id)
        if form is None:
            raise NotFoundError("Form not found")

        rejecting = self.status_codes.is_rejected(status_id)
        if rejecting:
            self._validate_issue(issue)

        now = _utcnow()
        try:
            form.status_id = status_id
            form.updated_at = now
            created_issue = None
            if rejecting:
                created_issue = Issue(
                    description=issue.description.strip(),
                    severity=IssueSeverity(issue.severity).value,
                    due_date=issue.due_date,
                    audit_form_id=form.id,
                    # Issue starts in the same status as the form
                    status_id=status_id,
                )
                self.db.add(created_issue)
            log_activity(
                self.db,
                actor_id,
                ActivityAction.REVIEW,
                target_type=TargetType.AUDIT_FORM,
                target_id=form.id,
                details={"status_id": status_id, "status": self.status_codes.name_of(status_id)},
                commit=False,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating form status: form_id={form_id}, error={e}", exc_info=True)
            raise TransactionFailure("Error updating form status") from e

        self.db.refresh(form)
        if created_issue is not None:
            self.db.refresh(created_issue)
            logger.info(f"Form {form_id} rejected with issue {created_issue.id}")
        return FormStatusResult(form=form, issue=created_issue)

    def delete_audit(self, audit_id: int, actor_id: Optional[int] = None) -> None:
        """
        Delete a draft audit that is the latest version of its chain.

        Its chain row goes with it, which makes the previous version the latest
        one again. Forms no longer joined to any audit are deleted too.
        """
        audit = self.db.get(Audit, audit_id)
        if audit is None:
            raise NotFoundError("Audit not found")
        if audit.status_id != self.status_codes.draft:
            raise ConflictError("Only draft audits can be deleted")
        if not self.chains.is_latest_version(audit_id):
            raise ConflictError("Only the latest version of an audit can be deleted")

        try:
            form_ids = [
                form_id
                for (form_id,) in self.db.query(AuditAuditForm.audit_form_id)
                .filter(AuditAuditForm.audit_id == audit_id)
                .all()
            ]
            self.db.query(AuditAuditForm).filter(AuditAuditForm.audit_id == audit_id).delete(
                synchronize_session=False
            )
            if form_ids:
                still_linked = {
                    form_id
                    for (form_id,) in self.db.query(AuditAuditForm.audit_form_id)
                    .filter(AuditAuditForm.audit_form_id.in_(form_ids))
                    .all()
                }
                orphaned = [form_id for form_id in form_ids if form_id not in still_linked]
                if orphaned:
                    self.db.query(Issue).filter(Issue.audit_form_id.in_(orphaned)).delete(
                        synchronize_session=False
                    )
                    self.db.query(AuditForm).filter(AuditForm.id.in_(orphaned)).delete(
                        synchronize_session=False
                    )
            had_chain = self.chains.remove(audit_id)
            self.db.delete(audit)
            log_activity(
                self.db,
                actor_id,
                ActivityAction.DELETE,
                target_type=TargetType.AUDIT,
                target_id=audit_id,
                details={"versioned": had_chain},
                commit=False,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting audit {audit_id}: {e}", exc_info=True)
            raise TransactionFailure("Error deleting audit") from e

        logger.info(f"Deleted audit {audit_id}")

    def _require_status(self, status_id) -> Status:
        if status_id is None:
            raise ValidationError("The status_id field is required")
        status = self.db.get(Status, status_id)
        if status is None:
            raise ValidationError("The selected status_id is invalid")
        return status

    @staticmethod
    def _validate_issue(issue: Optional[IssueDetails]) -> None:
        if issue is None or not (issue.description or "").strip():
            raise ValidationError("Issue description is required when rejecting a form")
        try:
            IssueSeverity(issue.severity)
        except ValueError:
            allowed = ", ".join(s.value for s in IssueSeverity)
            raise ValidationError(f"Issue severity must be one of: {allowed}")
        if issue.due_date is None or issue.due_date <= date.today():
            raise ValidationError("Issue due date must be after today")
