"""
Version history of audits.

Chains are rebuilt from the full `audit_version` table: one entry per chain,
versions in ascending order, with every audit that was never versioned shown
as a chain of its own. Forms and issues are only loaded for the page being
returned.
"""
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.config import settings
from app.models.audit import Audit, AuditForm, AuditAuditForm
from app.models.issue import Issue
from app.services.activity_service import latest_reviewers
from app.services.form_structure import combine_structure_with_values, decode_json
from app.services.status_codes import StatusCodes
from app.services.version_chain import VersionChainStore
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)


@dataclass
class VersionEntry:
    """One audit as shown inside a chain."""
    audit_id: int
    audit_version: int
    status_id: Optional[int]
    status: Optional[str]
    outlet_name: Optional[str]
    audit_type: Optional[str]
    submitted_by: Optional[str]
    submitted_at: Optional[datetime]
    last_action_at: Optional[datetime]
    reviewer: Optional[str] = None
    rejection_reason: Optional[str] = None
    issues: List[Dict[str, Any]] = field(default_factory=list)
    forms: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ChainHistory:
    first_audit_id: int
    num_versions: int
    versions: List[VersionEntry]
    is_standalone: bool = False

    @property
    def initiated(self) -> VersionEntry:
        return self.versions[0]

    @property
    def current(self) -> VersionEntry:
        return self.versions[-1]

    @property
    def last_action_date(self) -> Optional[datetime]:
        return self.current.last_action_at or self.current.submitted_at

    def to_dict(self) -> Dict[str, Any]:
        initiated, current = self.initiated, self.current
        return {
            "first_audit_id": self.first_audit_id,
            "num_versions": self.num_versions,
            "is_standalone": self.is_standalone,
            "outlet_name": initiated.outlet_name,
            "audit_type": initiated.audit_type,
            "initiated_by": initiated.submitted_by,
            "initiated_at": initiated.submitted_at,
            "current_audit_id": current.audit_id,
            "current_status": current.status,
            "last_action_date": self.last_action_date,
            "versions": [asdict(v) for v in self.versions],
        }


def _sort_instant(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.min
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def reconstruct_chains(
    entries: Mapping[int, VersionEntry],
    chain_rows: Iterable[Tuple[int, int, int]],
) -> List[ChainHistory]:
    """
    Group audits into version chains.

    Args:
        entries: Every audit keyed by id
        chain_rows: (audit_id, first_audit_id, audit_version) rows

    Returns:
        Chains sorted by last action, newest first. Audits without a chain row
        become single-version chains; chains whose first audit is missing are
        dropped.
    """
    grouped: Dict[int, List[Tuple[int, int]]] = defaultdict(list)
    chained_ids = set()
    for audit_id, first_audit_id, version in chain_rows:
        grouped[first_audit_id].append((version, audit_id))
        chained_ids.add(audit_id)

    chains: List[ChainHistory] = []
    for first_audit_id, members in grouped.items():
        if first_audit_id not in entries:
            logger.warning(
                f"Dropping orphaned version chain {first_audit_id}: first audit not found "
                f"({len(members)} chain rows)"
            )
            continue
        versions = []
        for version, audit_id in sorted(members):
            entry = entries.get(audit_id)
            if entry is None:
                logger.warning(f"Chain {first_audit_id} references missing audit {audit_id}")
                continue
            versions.append(replace(entry, audit_version=version))
        chains.append(
            ChainHistory(first_audit_id=first_audit_id, num_versions=len(members), versions=versions)
        )

    for audit_id, entry in entries.items():
        if audit_id in chained_ids:
            continue
        chains.append(
            ChainHistory(
                first_audit_id=audit_id,
                num_versions=1,
                versions=[replace(entry, audit_version=1)],
                is_standalone=True,
            )
        )

    chains.sort(
        key=lambda c: (_sort_instant(c.last_action_date), c.first_audit_id),
        reverse=True,
    )
    return chains


class AuditHistoryService:
    """Loads audits and chain rows and serves history pages."""

    def __init__(self, db: Session, status_codes: StatusCodes):
        self.db = db
        self.status_codes = status_codes
        self.chains = VersionChainStore(db)

    def _entries(self) -> Dict[int, VersionEntry]:
        audits = (
            self.db.query(Audit)
            .options(
                joinedload(Audit.outlet),
                joinedload(Audit.user),
                joinedload(Audit.status),
                joinedload(Audit.compliance_requirement),
            )
            .all()
        )
        return {
            audit.id: VersionEntry(
                audit_id=audit.id,
                audit_version=1,
                status_id=audit.status_id,
                status=audit.status.name if audit.status else None,
                outlet_name=audit.outlet.name if audit.outlet else None,
                audit_type=audit.compliance_requirement.title if audit.compliance_requirement else None,
                submitted_by=audit.user.name if audit.user else None,
                submitted_at=audit.start_time,
                last_action_at=audit.updated_at,
            )
            for audit in audits
        }

    def build_history(self) -> List[ChainHistory]:
        """Every chain, without forms or issues attached."""
        rows = [(r.audit_id, r.first_audit_id, r.audit_version) for r in self.chains.all_rows()]
        return reconstruct_chains(self._entries(), rows)

    def history_page(self, page: int = 1, per_page: Optional[int] = None) -> Dict[str, Any]:
        per_page = per_page or settings.HISTORY_PAGE_SIZE
        page_data = paginate(self.build_history(), page, per_page)
        self._attach_details(page_data["items"])
        page_data["items"] = [chain.to_dict() for chain in page_data["items"]]
        return page_data

    def _attach_details(self, chains: List[ChainHistory]) -> None:
        """Resolve reviewer, rejection reason, issues and forms of each version."""
        entries = [entry for chain in chains for entry in chain.versions]
        audit_ids = [entry.audit_id for entry in entries]
        if not audit_ids:
            return

        reviewers = latest_reviewers(self.db, audit_ids)
        issues = self._issues_by_audit(audit_ids)
        forms = self._forms_by_audit(audit_ids)

        for entry in entries:
            entry.reviewer = reviewers.get(entry.audit_id)
            entry.issues = issues.get(entry.audit_id, [])
            entry.forms = forms.get(entry.audit_id, [])
            if entry.status_id == self.status_codes.rejected and entry.issues:
                entry.rejection_reason = entry.issues[0]["description"]

    def _issues_by_audit(self, audit_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
        rows = (
            self.db.query(AuditAuditForm.audit_id, Issue)
            .join(Issue, Issue.audit_form_id == AuditAuditForm.audit_form_id)
            .options(
                joinedload(Issue.status),
                selectinload(Issue.corrective_actions),
            )
            .filter(AuditAuditForm.audit_id.in_(audit_ids))
            .order_by(AuditAuditForm.audit_id, Issue.id)
            .all()
        )
        result: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        for audit_id, issue in rows:
            result[audit_id].append({
                "id": issue.id,
                "audit_form_id": issue.audit_form_id,
                "description": issue.description,
                "severity": issue.severity,
                "due_date": issue.due_date,
                "status": issue.status.name if issue.status else None,
                "corrective_actions": [
                    {
                        "id": action.id,
                        "description": action.description,
                        "completion_date": action.completion_date,
                        "verification_date": action.verification_date,
                        "status_id": action.status_id,
                    }
                    for action in issue.corrective_actions
                ],
            })
        return result

    def _forms_by_audit(self, audit_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
        rows = (
            self.db.query(AuditAuditForm.audit_id, AuditForm)
            .join(AuditForm, AuditForm.id == AuditAuditForm.audit_form_id)
            .options(joinedload(AuditForm.template), joinedload(AuditForm.status))
            .filter(AuditAuditForm.audit_id.in_(audit_ids))
            .order_by(AuditAuditForm.audit_id, AuditAuditForm.id)
            .all()
        )
        result: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        for audit_id, form in rows:
            structure = decode_json(form.template.structure) if form.template else []
            values = decode_json(form.value) or {}
            result[audit_id].append({
                "id": form.id,
                "form_id": form.form_id,
                "name": form.name,
                "status": form.status.name if form.status else None,
                "structure": structure,
                "value": values,
                "fields": combine_structure_with_values(structure, values),
            })
        return result
