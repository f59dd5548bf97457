"""
Form replication for successor audits.

When an audit is superseded, each of its forms either follows the new audit
as-is (the same AuditForm row gets a second join row) or, if it was rejected,
is copied into a fresh editable form so the rejected original stays frozen on
the old audit as evidence.
"""
import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.models.audit import AuditForm, AuditAuditForm
from app.services.status_codes import StatusCodes

logger = logging.getLogger(__name__)


@dataclass
class ReplicationResult:
    """What happened to each form of the source audit."""
    source_audit_id: int
    target_audit_id: int
    duplicated: List[Tuple[int, int]] = field(default_factory=list)  # (original form id, copy id)
    linked: List[int] = field(default_factory=list)

    @property
    def form_count(self) -> int:
        return len(self.duplicated) + len(self.linked)


class FormReplicationEngine:
    """Duplicates rejected forms and relinks all other forms into a target audit."""

    def __init__(self, db: Session, status_codes: StatusCodes):
        self.db = db
        self.status_codes = status_codes

    def source_forms(self, audit_id: int) -> List[AuditForm]:
        return (
            self.db.query(AuditForm)
            .join(AuditAuditForm, AuditAuditForm.audit_form_id == AuditForm.id)
            .filter(AuditAuditForm.audit_id == audit_id)
            .order_by(AuditAuditForm.id)
            .all()
        )

    def replicate_forms(
        self,
        source_audit_id: int,
        target_audit_id: int,
        now: Optional[datetime] = None,
    ) -> ReplicationResult:
        """
        Attach every form of `source_audit_id` to `target_audit_id`.

        Rejected forms are duplicated (name, template and value copied verbatim,
        status reset to pending); every other form, including one without a
        status, is relinked. The caller owns the transaction.
        """
        now = now or datetime.now(timezone.utc)
        result = ReplicationResult(source_audit_id=source_audit_id, target_audit_id=target_audit_id)

        for form in self.source_forms(source_audit_id):
            if self.status_codes.is_rejected(form.status_id):
                duplicate = AuditForm(
                    name=form.name,
                    form_id=form.form_id,
                    value=copy.deepcopy(form.value),
                    status_id=self.status_codes.pending,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(duplicate)
                self.db.flush()
                self._link(target_audit_id, duplicate.id, now)
                result.duplicated.append((form.id, duplicate.id))
                logger.info(
                    f"Duplicated rejected form {form.id} as new form {duplicate.id} for audit {target_audit_id}"
                )
            else:
                self._link(target_audit_id, form.id, now)
                result.linked.append(form.id)
                logger.info(f"Linked existing form {form.id} to new audit {target_audit_id}")

        self.db.flush()
        logger.info(
            f"Processed {result.form_count} forms for rejected audit {source_audit_id} "
            f"({len(result.duplicated)} duplicated, {len(result.linked)} linked)"
        )
        return result

    def _link(self, audit_id: int, audit_form_id: int, now: datetime) -> AuditAuditForm:
        link = AuditAuditForm(
            audit_id=audit_id,
            audit_form_id=audit_form_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(link)
        return link
