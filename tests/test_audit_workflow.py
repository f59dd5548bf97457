"""
Tests for the audit review workflow and the rejection state machine.
"""
from datetime import date, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ConflictError, NotFoundError, TransactionFailure, ValidationError
from app.models.activity_log import ActivityLog
from app.models.audit import Audit, AuditForm, AuditAuditForm, AuditVersion
from app.models.issue import Issue
from app.services.audit_workflow import AuditWorkflowService, IssueDetails
from app.services.form_replication import FormReplicationEngine
from app.services.version_chain import VersionChainStore


def _chain(db, first_audit_id):
    return [
        (r.audit_id, r.first_audit_id, r.audit_version)
        for r in db.query(AuditVersion)
        .filter(AuditVersion.first_audit_id == first_audit_id)
        .order_by(AuditVersion.audit_version)
        .all()
    ]


def _form_ids(db, audit_id):
    return {
        form_id
        for (form_id,) in db.query(AuditAuditForm.audit_form_id).filter(AuditAuditForm.audit_id == audit_id)
    }


@pytest.fixture
def rejected_scenario(db_session, factory, codes):
    """Pending audit with one approved and one rejected form."""
    audit = factory.audit(status_id=codes.pending, progress=80)
    approved = factory.form(audit, status_id=codes.approved)
    rejected = factory.form(audit, status_id=codes.rejected, value={"q1": "no"})
    return audit, approved, rejected


class TestRejectAudit:
    """Rejecting an audit opens its next version."""

    def test_first_rejection_creates_version_two(self, db_session, codes, rejected_scenario):
        audit, approved, rejected = rejected_scenario
        service = AuditWorkflowService(db_session, codes)

        result = service.update_audit_status(audit.id, codes.rejected)

        assert result.message == "Audit rejected and new version created successfully"
        db_session.expire_all()
        assert db_session.get(Audit, audit.id).status_id == codes.rejected

        successor = db_session.get(Audit, result.new_audit_id)
        assert successor.status_id == codes.revision_requested
        assert successor.progress == 0
        assert successor.outlet_id == audit.outlet_id

        assert _chain(db_session, audit.id) == [
            (audit.id, audit.id, 1),
            (successor.id, audit.id, 2),
        ]

        successor_forms = _form_ids(db_session, successor.id)
        assert approved.id in successor_forms
        assert rejected.id not in successor_forms
        (copy_id,) = successor_forms - {approved.id}
        copy = db_session.get(AuditForm, copy_id)
        assert copy.value == {"q1": "no"}
        assert copy.status_id == codes.pending

        assert _form_ids(db_session, audit.id) == {approved.id, rejected.id}
        assert db_session.get(AuditForm, rejected.id).status_id == codes.rejected

    def test_second_rejection_extends_same_chain(self, db_session, codes, rejected_scenario):
        audit, _, _ = rejected_scenario
        service = AuditWorkflowService(db_session, codes)

        second = service.update_audit_status(audit.id, codes.rejected).new_audit_id
        third = service.update_audit_status(second, codes.rejected).new_audit_id

        assert _chain(db_session, audit.id) == [
            (audit.id, audit.id, 1),
            (second, audit.id, 2),
            (third, audit.id, 3),
        ]
        # No chain was started for the second version
        assert _chain(db_session, second) == []

    def test_rejecting_superseded_audit_conflicts_when_guarded(self, db_session, codes, rejected_scenario):
        audit, _, _ = rejected_scenario
        service = AuditWorkflowService(db_session, codes, allow_reject_superseded=False)
        service.update_audit_status(audit.id, codes.rejected)

        with pytest.raises(ConflictError):
            service.update_audit_status(audit.id, codes.rejected)

        assert len(_chain(db_session, audit.id)) == 2

    def test_rejecting_superseded_audit_appends_by_default(self, db_session, codes, rejected_scenario):
        audit, _, _ = rejected_scenario
        service = AuditWorkflowService(db_session, codes)
        second = service.update_audit_status(audit.id, codes.rejected).new_audit_id

        third = service.update_audit_status(audit.id, codes.rejected).new_audit_id

        assert _chain(db_session, audit.id) == [
            (audit.id, audit.id, 1),
            (second, audit.id, 2),
            (third, audit.id, 3),
        ]

    def test_failure_rolls_back_everything(self, db_session, codes, rejected_scenario):
        audit, _, _ = rejected_scenario
        audit_count = db_session.query(Audit).count()

        with patch.object(FormReplicationEngine, "replicate_forms", side_effect=RuntimeError("disk full")):
            with pytest.raises(TransactionFailure) as exc_info:
                AuditWorkflowService(db_session, codes).update_audit_status(audit.id, codes.rejected)

        assert exc_info.value.message == "Error updating audit status"
        db_session.expire_all()
        assert db_session.get(Audit, audit.id).status_id == codes.pending
        assert db_session.query(Audit).count() == audit_count
        assert db_session.query(AuditVersion).count() == 0
        assert db_session.query(ActivityLog).count() == 0

    def test_integrity_error_becomes_conflict(self, db_session, codes, rejected_scenario):
        audit, _, _ = rejected_scenario
        error = IntegrityError("INSERT INTO audit_version", {}, Exception("UNIQUE constraint failed"))

        with patch.object(VersionChainStore, "record_next_version", side_effect=error):
            with pytest.raises(ConflictError):
                AuditWorkflowService(db_session, codes).update_audit_status(audit.id, codes.rejected)

        db_session.expire_all()
        assert db_session.get(Audit, audit.id).status_id == codes.pending
        assert db_session.query(AuditVersion).count() == 0


class TestUpdateAuditStatus:

    def test_approve_does_not_version(self, db_session, factory, codes):
        audit = factory.audit()

        result = AuditWorkflowService(db_session, codes).update_audit_status(audit.id, codes.approved)

        assert result.new_audit_id is None
        assert result.message == "Audit status updated successfully"
        assert db_session.query(AuditVersion).count() == 0

    def test_review_is_logged(self, db_session, factory, codes):
        reviewer = factory.user(role="manager", name="Maria Manager")
        audit = factory.audit()

        AuditWorkflowService(db_session, codes).update_audit_status(
            audit.id, codes.approved, actor_id=reviewer.id
        )

        log = db_session.query(ActivityLog).one()
        assert log.action_type == "review"
        assert log.target_type == "audit"
        assert log.target_id == audit.id
        assert log.user_id == reviewer.id

    def test_unknown_audit(self, db_session, codes):
        with pytest.raises(NotFoundError):
            AuditWorkflowService(db_session, codes).update_audit_status(999999, codes.approved)

    def test_unknown_status(self, db_session, factory, codes):
        audit = factory.audit()
        with pytest.raises(ValidationError):
            AuditWorkflowService(db_session, codes).update_audit_status(audit.id, 999999)

    def test_missing_status(self, db_session, factory, codes):
        audit = factory.audit()
        with pytest.raises(ValidationError, match="required"):
            AuditWorkflowService(db_session, codes).update_audit_status(audit.id, None)


class TestUpdateFormStatus:

    def test_reject_form_creates_issue(self, db_session, factory, codes):
        audit = factory.audit()
        form = factory.form(audit, status_id=codes.pending)
        details = IssueDetails(
            description="Floor dirty",
            severity="High",
            due_date=date.today() + timedelta(days=3),
        )

        result = AuditWorkflowService(db_session, codes).update_form_status(
            form.id, codes.rejected, issue=details
        )

        assert result.form.status_id == codes.rejected
        assert result.issue.description == "Floor dirty"
        assert result.issue.status_id == codes.rejected
        assert result.issue.audit_form_id == form.id

    def test_reject_form_requires_issue(self, db_session, factory, codes):
        form = factory.form(factory.audit(), status_id=codes.pending)

        with pytest.raises(ValidationError):
            AuditWorkflowService(db_session, codes).update_form_status(form.id, codes.rejected)

    @pytest.mark.parametrize("severity,days", [("Urgent", 3), ("High", 0), ("Low", -1)])
    def test_reject_form_validates_issue(self, db_session, factory, codes, severity, days):
        form = factory.form(factory.audit(), status_id=codes.pending)
        details = IssueDetails(description="x", severity=severity, due_date=date.today() + timedelta(days=days))

        with pytest.raises(ValidationError):
            AuditWorkflowService(db_session, codes).update_form_status(form.id, codes.rejected, issue=details)

        assert db_session.query(Issue).count() == 0

    def test_approve_form(self, db_session, factory, codes):
        form = factory.form(factory.audit(), status_id=codes.pending)

        result = AuditWorkflowService(db_session, codes).update_form_status(form.id, codes.approved)

        assert result.form.status_id == codes.approved
        assert result.issue is None

    def test_unknown_form(self, db_session, codes):
        with pytest.raises(NotFoundError):
            AuditWorkflowService(db_session, codes).update_form_status(999999, codes.approved)


class TestDeleteAudit:

    def test_delete_draft_audit_removes_orphaned_forms(self, db_session, factory, codes):
        audit = factory.audit(status_id=codes.draft)
        form = factory.form(audit)
        factory.issue(form)
        audit_id, form_id = audit.id, form.id

        AuditWorkflowService(db_session, codes).delete_audit(audit_id)

        db_session.expire_all()
        assert db_session.get(Audit, audit_id) is None
        assert db_session.get(AuditForm, form_id) is None
        assert db_session.query(Issue).count() == 0

    def test_delete_latest_version_restores_previous(self, db_session, factory, codes, rejected_scenario):
        audit, approved, _ = rejected_scenario
        service = AuditWorkflowService(db_session, codes)
        successor_id = service.update_audit_status(audit.id, codes.rejected).new_audit_id
        successor = db_session.get(Audit, successor_id)
        successor.status_id = codes.draft
        db_session.commit()

        service.delete_audit(successor_id)

        db_session.expire_all()
        assert _chain(db_session, audit.id) == [(audit.id, audit.id, 1)]
        assert VersionChainStore(db_session).is_latest_version(audit.id) is True
        # Shared form survives, the duplicated copy does not
        assert db_session.get(AuditForm, approved.id) is not None
        assert _form_ids(db_session, audit.id) == {approved.id, rejected_scenario[2].id}
        assert db_session.query(AuditForm).count() == 2

    def test_delete_non_draft_conflicts(self, db_session, factory, codes):
        audit = factory.audit(status_id=codes.pending)
        with pytest.raises(ConflictError, match="draft"):
            AuditWorkflowService(db_session, codes).delete_audit(audit.id)

    def test_delete_superseded_conflicts(self, db_session, factory, codes):
        first = factory.audit(status_id=codes.draft)
        second = factory.audit(status_id=codes.draft)
        factory.chain_row(first.id, first.id, 1)
        factory.chain_row(second.id, first.id, 2)

        with pytest.raises(ConflictError, match="latest"):
            AuditWorkflowService(db_session, codes).delete_audit(first.id)


class TestCreateAudit:

    def test_creates_draft_audit(self, db_session, factory, codes):
        auditor = factory.user(role="outlet_user")
        outlet = factory.outlet(outlet_user=auditor)
        requirement = factory.requirement()

        audit = AuditWorkflowService(db_session, codes).create_audit(
            outlet.id, requirement.id, user_id=auditor.id
        )

        assert audit.status_id == codes.draft
        assert audit.progress == 0
        assert audit.user_id == auditor.id
        assert audit.compliance_id == requirement.id
        assert audit.start_time is not None
        log = db_session.query(ActivityLog).one()
        assert (log.action_type, log.target_id, log.user_id) == ("create", audit.id, auditor.id)

    def test_unknown_outlet(self, db_session, factory, codes):
        requirement = factory.requirement()

        with pytest.raises(ValidationError, match="outlet_id"):
            AuditWorkflowService(db_session, codes).create_audit(999999, requirement.id)

        assert db_session.query(Audit).count() == 0

    def test_unknown_requirement(self, db_session, factory, codes):
        outlet = factory.outlet()

        with pytest.raises(ValidationError, match="compliance_id"):
            AuditWorkflowService(db_session, codes).create_audit(outlet.id, 999999)

        assert db_session.query(Audit).count() == 0
