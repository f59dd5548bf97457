"""
Tests for form, issue and activity endpoints.
"""
from datetime import date, timedelta

from fastapi import status

from app.models.issue import Issue


def _issue_body(days=5, severity="High"):
    return {
        "description": "Fire exit blocked",
        "severity": severity,
        "due_date": (date.today() + timedelta(days=days)).isoformat(),
    }


def test_get_form_details(client, factory):
    audit = factory.audit()
    form = factory.form(audit, value={"q1": "Yes, mopped", "q2": True})

    response = client.get(f"/api/v1/forms/{form.id}")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["audit_id"] == audit.id
    assert [f["id"] for f in data["fields"]] == ["q2", "q1"]
    assert data["fields"][0]["value"] is True


def test_get_unknown_form(client):
    response = client.get("/api/v1/forms/999999")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"]["message"] == "Form not found"


def test_reject_form_with_issue(client, db_session, factory, codes):
    form = factory.form(factory.audit(), status_id=codes.pending)

    response = client.put(
        f"/api/v1/forms/{form.id}/status",
        json={"status_id": codes.rejected, "issue": _issue_body()},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["form"]["status_id"] == codes.rejected
    assert data["issue"]["description"] == "Fire exit blocked"
    assert db_session.query(Issue).count() == 1


def test_reject_form_without_issue_fails(client, factory, codes):
    form = factory.form(factory.audit(), status_id=codes.pending)

    response = client.put(f"/api/v1/forms/{form.id}/status", json={"status_id": codes.rejected})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_reject_form_with_past_due_date_fails(client, factory, codes):
    form = factory.form(factory.audit(), status_id=codes.pending)

    response = client.put(
        f"/api/v1/forms/{form.id}/status",
        json={"status_id": codes.rejected, "issue": _issue_body(days=0)},
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "after today" in response.json()["detail"]["message"]


def test_previous_issues_endpoint(client, factory, codes):
    template = factory.template()
    audit = factory.audit()
    rejected = factory.form(audit, status_id=codes.rejected, template=template)
    issue = factory.issue(rejected, description="Floor dirty")
    factory.corrective_action(issue, description="Mop floor")
    new_id = client.put(
        f"/api/v1/audits/{audit.id}/status", json={"status_id": codes.rejected}
    ).json()["new_audit_id"]
    (new_form,) = client.get(f"/api/v1/audits/{new_id}/forms").json()

    response = client.get(f"/api/v1/forms/{new_form['id']}/previous-issues")

    assert response.status_code == status.HTTP_200_OK
    (previous,) = response.json()
    assert previous["id"] == issue.id
    assert previous["corrective_actions"][0]["description"] == "Mop floor"


def test_analysis_unavailable_without_openai(client, factory):
    form = factory.form(factory.audit())

    response = client.post(f"/api/v1/forms/{form.id}/analysis")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_update_and_delete_issue(client, db_session, factory):
    issue_id = factory.issue(factory.form(factory.audit())).id

    updated = client.put(f"/api/v1/issues/{issue_id}", json=_issue_body(days=0, severity="Critical"))
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["severity"] == "Critical"

    past = client.put(f"/api/v1/issues/{issue_id}", json=_issue_body(days=-1))
    assert past.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    deleted = client.delete(f"/api/v1/issues/{issue_id}")
    assert deleted.status_code == status.HTTP_200_OK
    db_session.expire_all()
    assert db_session.get(Issue, issue_id) is None

    missing = client.delete(f"/api/v1/issues/{issue_id}")
    assert missing.status_code == status.HTTP_404_NOT_FOUND


def test_corrective_actions_newest_first(client, factory):
    issue = factory.issue(factory.form(factory.audit()))
    first = factory.corrective_action(issue, description="First")
    second = factory.corrective_action(issue, description="Second")

    response = client.get(f"/api/v1/issues/{issue.id}/corrective-actions")

    assert [a["id"] for a in response.json()] == [second.id, first.id]


def test_activity_log_lists_reviews(client, factory, codes):
    manager = factory.user(role="manager")
    audit = factory.audit()
    client.put(
        f"/api/v1/audits/{audit.id}/status",
        json={"status_id": codes.approved},
        headers={"X-User-Id": str(manager.id)},
    )

    response = client.get("/api/v1/activity", params={"action_type": "review"})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 1
    item = data["items"][0]
    assert item["target_type"] == "audit"
    assert item["target_id"] == audit.id
    assert item["user_id"] == manager.id

    single = client.get(f"/api/v1/activity/{item['id']}")
    assert single.json()["action_type"] == "review"
    assert client.get("/api/v1/activity/999999").status_code == status.HTTP_404_NOT_FOUND


def test_activity_filters_treat_zero_as_a_value(client, factory, codes):
    audit = factory.audit()
    client.put(f"/api/v1/audits/{audit.id}/status", json={"status_id": codes.approved})

    unfiltered = client.get("/api/v1/activity")
    by_user = client.get("/api/v1/activity", params={"user_id": 0})
    by_target = client.get("/api/v1/activity", params={"target_id": 0})

    assert unfiltered.json()["total"] == 1
    assert by_user.json()["total"] == 0
    assert by_target.json()["total"] == 0
