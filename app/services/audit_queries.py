"""
Read-side queries over audits.

Listings only show the current version of every audit: the newest member of
each version chain plus every audit that was never versioned.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.models.audit import Audit, AuditForm, AuditAuditForm, AuditVersion
from app.models.issue import Issue
from app.models.outlet import Outlet
from app.models.status import Status
from app.services.form_structure import combine_structure_with_values, decode_json
from app.services.status_codes import StatusCodes
from app.services.version_chain import ChainInfo, VersionChainStore
from app.utils.pagination import paginate_query

logger = logging.getLogger(__name__)

DATE_FILTERS = {
    "last7": "Last 7 Days",
    "last30": "Last 30 Days",
    "last90": "Last 90 Days",
    "thisYear": "This Year",
}


@dataclass
class FormContext:
    """Audit and outlet that currently own a form."""
    audit_id: int
    outlet_id: int
    outlet_name: Optional[str]


def date_filter_start(date_filter: str, now: Optional[datetime] = None) -> datetime:
    """Earliest start_time admitted by a named date filter."""
    now = now or datetime.now(timezone.utc)
    if date_filter == "last7":
        return now - timedelta(days=7)
    if date_filter == "last30":
        return now - timedelta(days=30)
    if date_filter == "last90":
        return now - timedelta(days=90)
    if date_filter == "thisYear":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    raise ValidationError(
        f"Unknown date filter '{date_filter}'; expected one of: {', '.join(DATE_FILTERS)}"
    )


class AuditQueryService:
    """Listings and detail views of audits and their forms."""

    def __init__(self, db: Session, status_codes: StatusCodes):
        self.db = db
        self.status_codes = status_codes
        self.chains = VersionChainStore(db)

    @staticmethod
    def current_audit_filter():
        """Predicate selecting the latest version of every audit."""
        return or_(
            Audit.id.in_(VersionChainStore.latest_version_ids_select()),
            Audit.id.not_in(VersionChainStore.versioned_ids_select()),
        )

    def current_audit_ids(self) -> List[int]:
        rows = self.db.query(Audit.id).filter(self.current_audit_filter()).order_by(Audit.id)
        return [audit_id for (audit_id,) in rows]

    def current_audits_query(self):
        return (
            self.db.query(Audit)
            .options(
                joinedload(Audit.outlet),
                joinedload(Audit.user),
                joinedload(Audit.status),
                joinedload(Audit.compliance_requirement),
            )
            .filter(self.current_audit_filter())
        )

    def get_audit(self, audit_id: int) -> Audit:
        audit = self.db.get(Audit, audit_id)
        if audit is None:
            raise NotFoundError("Audit not found")
        return audit

    def _form_counts(self, audit_ids: List[int]) -> Dict[int, int]:
        if not audit_ids:
            return {}
        rows = (
            self.db.query(AuditAuditForm.audit_id, func.count(AuditAuditForm.id))
            .filter(AuditAuditForm.audit_id.in_(audit_ids))
            .group_by(AuditAuditForm.audit_id)
            .all()
        )
        return {audit_id: count for audit_id, count in rows}

    def _chain_infos(self, audit_ids: List[int]) -> Dict[int, ChainInfo]:
        infos = {
            audit_id: ChainInfo(audit_id=audit_id, first_audit_id=audit_id, version=1, is_versioned=False)
            for audit_id in audit_ids
        }
        if not audit_ids:
            return infos
        rows = self.db.query(AuditVersion).filter(AuditVersion.audit_id.in_(audit_ids)).all()
        for row in rows:
            infos[row.audit_id] = ChainInfo(
                audit_id=row.audit_id,
                first_audit_id=row.first_audit_id,
                version=row.audit_version,
                is_versioned=True,
            )
        return infos

    @staticmethod
    def _summary(audit: Audit, info: ChainInfo, form_count: int) -> Dict[str, Any]:
        return {
            "id": audit.id,
            "outlet_id": audit.outlet_id,
            "outlet_name": audit.outlet.name if audit.outlet else None,
            "user_name": audit.user.name if audit.user else None,
            "audit_type": audit.compliance_requirement.title if audit.compliance_requirement else None,
            "status_id": audit.status_id,
            "status": audit.status.name if audit.status else None,
            "progress": audit.progress,
            "start_time": audit.start_time,
            "end_time": audit.end_time,
            "due_date": audit.due_date,
            "created_at": audit.created_at,
            "form_count": form_count,
            "is_versioned": info.is_versioned,
            "version_number": info.version,
            "first_audit_id": info.first_audit_id,
        }

    def _summaries(self, audits: List[Audit]) -> List[Dict[str, Any]]:
        ids = [a.id for a in audits]
        counts = self._form_counts(ids)
        infos = self._chain_infos(ids)
        return [self._summary(a, infos[a.id], counts.get(a.id, 0)) for a in audits]

    def list_manager_audits(self, manager_id: int) -> List[Dict[str, Any]]:
        """Current audits of every outlet the manager is responsible for."""
        audits = (
            self.current_audits_query()
            .join(Outlet, Audit.outlet_id == Outlet.id)
            .filter(Outlet.manager_id == manager_id)
            .order_by(Audit.start_time.desc(), Audit.id.desc())
            .all()
        )
        logger.debug(f"Manager {manager_id} has {len(audits)} current audits")
        return self._summaries(audits)

    def list_user_audits(self, user_id: int) -> List[Dict[str, Any]]:
        """Current audits started by an outlet user, newest first."""
        audits = (
            self.current_audits_query()
            .filter(Audit.user_id == user_id)
            .order_by(Audit.created_at.desc(), Audit.id.desc())
            .all()
        )
        return self._summaries(audits)

    def list_admin_audits(
        self,
        date_filter: str = "last30",
        status_filter: Optional[str] = None,
        page: int = 1,
        per_page: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        One page of current audits for the admin dashboard.

        `status_filter` is a status name ("all" or None disables it). The result
        also carries the filter options the dashboard renders.
        """
        per_page = per_page or settings.AUDIT_PAGE_SIZE
        start = date_filter_start(date_filter, now)

        query = self.current_audits_query().filter(Audit.start_time >= start)
        if status_filter and status_filter.lower() != "all":
            status = (
                self.db.query(Status)
                .filter(func.lower(Status.name) == status_filter.lower())
                .first()
            )
            if status is None:
                raise ValidationError(f"Unknown status filter '{status_filter}'")
            query = query.filter(Audit.status_id == status.id)

        query = query.order_by(Audit.start_time.desc(), Audit.id.desc())
        page_data = paginate_query(query, page, per_page)
        page_data["items"] = self._summaries(page_data["items"])
        page_data["date_filter"] = date_filter
        page_data["status_filter"] = status_filter or "all"
        page_data["date_filters"] = [{"value": k, "label": v} for k, v in DATE_FILTERS.items()]
        page_data["status_filters"] = [
            s.name for s in self.db.query(Status).order_by(Status.id).all()
        ]
        return page_data

    def audit_details(self, audit_id: int) -> Dict[str, Any]:
        audit = self.get_audit(audit_id)
        info = self.chains.get_chain_info(audit_id)
        details = self._summary(audit, info, self._form_counts([audit_id]).get(audit_id, 0))
        details["notes"] = audit.notes
        details["is_latest_version"] = self.chains.is_latest_version(audit_id)
        return details

    def audit_forms(self, audit_id: int) -> List[AuditForm]:
        """Forms joined to an audit, in join order."""
        self.get_audit(audit_id)
        return (
            self.db.query(AuditForm)
            .join(AuditAuditForm, AuditAuditForm.audit_form_id == AuditForm.id)
            .options(joinedload(AuditForm.status), joinedload(AuditForm.template))
            .filter(AuditAuditForm.audit_id == audit_id)
            .order_by(AuditAuditForm.id)
            .all()
        )

    def resolve_form_context(self, form_id: int) -> Optional[FormContext]:
        """
        Audit a form currently belongs to.

        Replicated forms are joined to several audits; the most recent join row
        wins.
        """
        row = (
            self.db.query(Audit.id, Audit.outlet_id, Outlet.name)
            .join(AuditAuditForm, AuditAuditForm.audit_id == Audit.id)
            .outerjoin(Outlet, Outlet.id == Audit.outlet_id)
            .filter(AuditAuditForm.audit_form_id == form_id)
            .order_by(AuditAuditForm.created_at.desc(), AuditAuditForm.id.desc())
            .first()
        )
        if row is None:
            return None
        return FormContext(audit_id=row[0], outlet_id=row[1], outlet_name=row[2])

    def get_form(self, form_id: int) -> AuditForm:
        form = self.db.get(AuditForm, form_id)
        if form is None:
            raise NotFoundError("Form not found")
        return form

    def form_details(self, form_id: int) -> Dict[str, Any]:
        """A form with its template structure, answers and owning audit."""
        form = self.get_form(form_id)
        structure = decode_json(form.template.structure) if form.template else []
        values = decode_json(form.value) or {}
        context = self.resolve_form_context(form_id)
        return {
            "id": form.id,
            "form_id": form.form_id,
            "name": form.name,
            "status_id": form.status_id,
            "status": form.status.name if form.status else None,
            "structure": structure,
            "value": values,
            "fields": combine_structure_with_values(structure, values),
            "ai_analysis": decode_json(form.ai_analysis),
            "audit_id": context.audit_id if context else None,
            "outlet_name": context.outlet_name if context else None,
            "created_at": form.created_at,
            "updated_at": form.updated_at,
        }

    def previous_version_issues(self, form_id: int) -> List[Issue]:
        """
        Issues raised on the same template in the previous version of the
        form's audit. Empty when the audit is not a revision.
        """
        form = self.get_form(form_id)
        context = self.resolve_form_context(form_id)
        if context is None:
            return []
        info = self.chains.get_chain_info(context.audit_id)
        if not info.is_versioned or info.version < 2:
            return []

        previous = (
            self.db.query(AuditVersion.audit_id)
            .filter(
                AuditVersion.first_audit_id == info.first_audit_id,
                AuditVersion.audit_version == info.version - 1,
            )
            .scalar()
        )
        if previous is None:
            return []

        return (
            self.db.query(Issue)
            .join(AuditForm, AuditForm.id == Issue.audit_form_id)
            .join(AuditAuditForm, AuditAuditForm.audit_form_id == AuditForm.id)
            .options(joinedload(Issue.corrective_actions))
            .filter(
                AuditAuditForm.audit_id == previous,
                AuditForm.form_id == form.form_id,
            )
            .order_by(Issue.id)
            .all()
        )

    def has_rejected_forms(self, audit_id: int) -> bool:
        self.get_audit(audit_id)
        return (
            self.db.query(AuditAuditForm.id)
            .join(AuditForm, AuditForm.id == AuditAuditForm.audit_form_id)
            .filter(
                AuditAuditForm.audit_id == audit_id,
                AuditForm.status_id == self.status_codes.rejected,
            )
            .first()
            is not None
        )
