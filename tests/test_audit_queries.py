"""
Tests for the audit read model.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.services.audit_queries import AuditQueryService, date_filter_start
from app.services.audit_workflow import AuditWorkflowService
from app.services.form_structure import combine_structure_with_values


@pytest.fixture
def manager(factory):
    return factory.user(role="manager", name="Maria Manager")


class TestCurrentAudits:
    """Only the latest version of each chain is listed."""

    def test_latest_version_partition(self, db_session, factory, codes, manager):
        outlet = factory.outlet(manager=manager)
        v1 = factory.audit(outlet=outlet)
        v2 = factory.audit(outlet=outlet)
        v3 = factory.audit(outlet=outlet)
        standalone = factory.audit(outlet=outlet)
        factory.chain_row(v1.id, v1.id, 1)
        factory.chain_row(v2.id, v1.id, 2)
        factory.chain_row(v3.id, v1.id, 3)

        listed = AuditQueryService(db_session, codes).list_manager_audits(manager.id)

        assert {a["id"] for a in listed} == {v3.id, standalone.id}
        by_id = {a["id"]: a for a in listed}
        assert by_id[v3.id]["is_versioned"] is True
        assert by_id[v3.id]["version_number"] == 3
        assert by_id[v3.id]["first_audit_id"] == v1.id
        assert by_id[standalone.id]["is_versioned"] is False
        assert by_id[standalone.id]["version_number"] == 1
        assert AuditQueryService(db_session, codes).current_audit_ids() == [v3.id, standalone.id]

    def test_manager_sees_only_own_outlets(self, db_session, factory, codes, manager):
        other_manager = factory.user(role="manager")
        mine = factory.audit(outlet=factory.outlet(manager=manager))
        factory.audit(outlet=factory.outlet(manager=other_manager))

        listed = AuditQueryService(db_session, codes).list_manager_audits(manager.id)

        assert [a["id"] for a in listed] == [mine.id]

    def test_form_count(self, db_session, factory, codes, manager):
        audit = factory.audit(outlet=factory.outlet(manager=manager))
        factory.form(audit)
        factory.form(audit)

        listed = AuditQueryService(db_session, codes).list_manager_audits(manager.id)

        assert listed[0]["form_count"] == 2

    def test_rejection_moves_listing_to_successor(self, db_session, factory, codes, manager):
        audit = factory.audit(outlet=factory.outlet(manager=manager))
        factory.form(audit, status_id=codes.rejected)
        new_id = AuditWorkflowService(db_session, codes).update_audit_status(
            audit.id, codes.rejected
        ).new_audit_id

        listed = AuditQueryService(db_session, codes).list_manager_audits(manager.id)

        assert [a["id"] for a in listed] == [new_id]
        assert listed[0]["status"] == "revision requested"


class TestAdminListing:

    def test_date_and_status_filters(self, db_session, factory, codes):
        now = datetime.now(timezone.utc)
        recent = factory.audit(status_id=codes.pending, start_time=now - timedelta(days=2))
        factory.audit(status_id=codes.approved, start_time=now - timedelta(days=3))
        factory.audit(status_id=codes.pending, start_time=now - timedelta(days=45))
        service = AuditQueryService(db_session, codes)

        page = service.list_admin_audits(date_filter="last7", status_filter="Pending")

        assert [a["id"] for a in page["items"]] == [recent.id]
        assert page["total"] == 1
        assert page["status_filter"] == "Pending"
        assert "approved" in page["status_filters"]
        assert {f["value"] for f in page["date_filters"]} == {"last7", "last30", "last90", "thisYear"}

        assert service.list_admin_audits(date_filter="last90")["total"] == 3

    def test_pagination(self, db_session, factory, codes):
        for _ in range(5):
            factory.audit()

        page = AuditQueryService(db_session, codes).list_admin_audits(page=2, per_page=2)

        assert page["total"] == 5
        assert page["pages"] == 3
        assert len(page["items"]) == 2

    def test_unknown_filters(self, db_session, codes):
        service = AuditQueryService(db_session, codes)
        with pytest.raises(ValidationError):
            service.list_admin_audits(date_filter="lastCentury")
        with pytest.raises(ValidationError):
            service.list_admin_audits(status_filter="archived")

    def test_this_year_starts_january_first(self):
        start = date_filter_start("thisYear", now=datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc))
        assert start == datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestFormDetails:

    def test_combined_structure(self, db_session, factory, codes):
        template = factory.template(structure=[
            {"id": "a", "type": "text", "label": "Notes", "order": 3},
            {"id": "b", "type": "checkbox", "label": "Clean", "order": 1},
            {"id": "c", "type": "checkbox-group", "label": "Areas", "order": 2},
        ])
        audit = factory.audit()
        form = factory.form(audit, template=template, value={"a": "All good"})

        details = AuditQueryService(db_session, codes).form_details(form.id)

        assert [f["id"] for f in details["fields"]] == ["b", "c", "a"]
        assert [f["value"] for f in details["fields"]] == [False, [], "All good"]
        assert details["audit_id"] == audit.id

    def test_combine_decodes_json_text(self):
        combined = combine_structure_with_values(
            '[{"id": "q", "type": "radio-group", "label": "Q"}, {"id": "r", "type": "text"}]',
            '{"r": "x"}',
        )
        assert combined == [
            {"id": "q", "type": "radio-group", "label": "Q", "value": []},
            {"id": "r", "type": "text", "value": "x"},
        ]

    def test_form_context_follows_newest_audit(self, db_session, factory, codes):
        audit = factory.audit()
        shared = factory.form(audit, status_id=codes.approved)
        new_id = AuditWorkflowService(db_session, codes).update_audit_status(
            audit.id, codes.rejected
        ).new_audit_id

        context = AuditQueryService(db_session, codes).resolve_form_context(shared.id)

        assert context.audit_id == new_id

    def test_unknown_form(self, db_session, codes):
        with pytest.raises(NotFoundError):
            AuditQueryService(db_session, codes).form_details(999999)


class TestPreviousVersionIssues:

    def test_issues_from_previous_version(self, db_session, factory, codes):
        template = factory.template()
        audit = factory.audit()
        rejected = factory.form(audit, status_id=codes.rejected, template=template)
        issue = factory.issue(rejected, description="Floor dirty")
        factory.corrective_action(issue)
        result = AuditWorkflowService(db_session, codes).update_audit_status(audit.id, codes.rejected)
        copy_id = result.replication.duplicated[0][1]

        issues = AuditQueryService(db_session, codes).previous_version_issues(copy_id)

        assert [i.id for i in issues] == [issue.id]
        assert len(issues[0].corrective_actions) == 1

    def test_first_version_has_no_previous_issues(self, db_session, factory, codes):
        form = factory.form(factory.audit(), status_id=codes.rejected)
        factory.issue(form)

        assert AuditQueryService(db_session, codes).previous_version_issues(form.id) == []


def test_has_rejected_forms(db_session, factory, codes):
    audit = factory.audit()
    factory.form(audit, status_id=codes.approved)
    service = AuditQueryService(db_session, codes)

    assert service.has_rejected_forms(audit.id) is False
    factory.form(audit, status_id=codes.rejected)
    assert service.has_rejected_forms(audit.id) is True
