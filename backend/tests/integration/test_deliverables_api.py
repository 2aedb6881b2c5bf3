"""Integration tests for the deliverables API

Covers listing and visibility, creation, the status workflow with its
preconditions, checklist-driven progress and the activity log.
"""

import pytest

from portal.models import DeliverableActivity

from tests.fixtures.factories import add_checklist, attach_proof, make_deliverable

pytestmark = pytest.mark.integration


def url(org, suffix=""):
    return f"/api/v1/orgs/{org.id}/deliverables{suffix}"


class TestListDeliverables:

    def test_member_sees_only_client_visible(self, client, db_session, client_org, member_headers):
        make_deliverable(db_session, client_org, title="Visible")
        make_deliverable(db_session, client_org, title="Internal", client_visible=False)

        response = client.get(url(client_org), headers=member_headers)

        assert response.status_code == 200
        assert [d["title"] for d in response.json()["data"]] == ["Visible"]

    def test_admin_sees_hidden(self, client, db_session, client_org, admin_headers):
        make_deliverable(db_session, client_org, title="Visible")
        make_deliverable(db_session, client_org, title="Internal", client_visible=False)

        response = client.get(url(client_org), headers=admin_headers)
        assert {d["title"] for d in response.json()["data"]} == {"Visible", "Internal"}

    def test_archived_excluded(self, client, db_session, client_org, admin_headers):
        make_deliverable(db_session, client_org, title="Old", archived=True)
        assert client.get(url(client_org), headers=admin_headers).json()["data"] == []

    def test_workspace_by_external_ref(self, client, db_session, client_org, member_headers):
        make_deliverable(db_session, client_org, title="Visible")
        response = client.get("/api/v1/orgs/org_client/deliverables", headers=member_headers)
        assert response.status_code == 200
        assert len(response.json()["data"]) == 1

    def test_member_cannot_see_hidden_detail(self, client, db_session, client_org, member_headers):
        hidden = make_deliverable(db_session, client_org, client_visible=False)
        response = client.get(url(client_org, f"/{hidden.id}"), headers=member_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Deliverable not found"}


class TestCreateDeliverable:

    def test_admin_creates(self, client, db_session, client_org, admin_headers):
        response = client.post(
            url(client_org),
            headers=admin_headers,
            json={"title": "  Landing page  ", "type": "website", "dueDate": "2026-11-01"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Landing page"
        assert data["status"] == "planned"
        assert data["progress"] == 0
        assert data["org_id"] == str(client_org.id)
        assert data["due_date"] == "2026-11-01"

        activity = db_session.query(DeliverableActivity).one()
        assert activity.action_type == "created"
        assert activity.actor_id == "user_admin"

    def test_member_forbidden(self, client, client_org, member_headers):
        response = client.post(url(client_org), headers=member_headers, json={"title": "Sneaky"})
        assert response.status_code == 403
        assert response.json() == {"error": "Insufficient permissions"}

    def test_blank_title(self, client, client_org, admin_headers):
        response = client.post(url(client_org), headers=admin_headers, json={"title": "   "})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"
        assert response.json()["details"][0]["loc"][-1] == "title"


class TestStatusWorkflow:

    def change(self, client, org, deliverable, status, headers):
        return client.post(
            url(org, f"/{deliverable.id}/status"), headers=headers, json={"status": status}
        )

    def test_full_lifecycle(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org)

        assert self.change(client, client_org, deliverable, "in_progress", admin_headers).status_code == 200

        add_checklist(db_session, deliverable, done=4, total=5)
        deliverable.progress = 80
        db_session.commit()
        attach_proof(db_session, deliverable)

        response = self.change(client, client_org, deliverable, "in_review", admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["allowed_transitions"] == ["approved", "revisions_requested", "blocked"]

        assert self.change(client, client_org, deliverable, "approved", admin_headers).status_code == 200

        response = self.change(client, client_org, deliverable, "complete", admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "complete"
        assert data["completed_at"] is not None
        assert data["allowed_transitions"] == []

    def test_illegal_transition(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org)
        response = self.change(client, client_org, deliverable, "complete", admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Cannot transition from planned to complete"}

    def test_review_needs_progress(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org, status="in_progress", progress=40)
        attach_proof(db_session, deliverable)
        response = self.change(client, client_org, deliverable, "in_review", admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Progress must be at least 80% (currently 40%)"}

    def test_review_needs_required_proof(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org, status="in_progress", progress=90)
        attach_proof(db_session, deliverable, required=False)
        response = self.change(client, client_org, deliverable, "in_review", admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Required proof must be attached before sending to review"}

    def test_complete_needs_required_proof(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org, status="approved", progress=100)
        response = self.change(client, client_org, deliverable, "complete", admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Required proof must be attached before marking complete"}

    def test_rejected_transition_leaves_status(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org)
        self.change(client, client_org, deliverable, "approved", admin_headers)
        db_session.refresh(deliverable)
        assert deliverable.status == "planned"

    def test_unknown_status_value(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org)
        response = self.change(client, client_org, deliverable, "archived", admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_member_cannot_change_status(self, client, db_session, client_org, member_headers):
        deliverable = make_deliverable(db_session, client_org)
        response = self.change(client, client_org, deliverable, "in_progress", member_headers)
        assert response.status_code == 403

    def test_activity_records_transition(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org)
        client.post(
            url(client_org, f"/{deliverable.id}/status"),
            headers=admin_headers,
            json={"status": "blocked", "note": "Waiting on brand assets"},
        )

        response = client.get(url(client_org, f"/{deliverable.id}/activity"), headers=admin_headers)
        assert response.status_code == 200
        entry = response.json()["data"][0]
        assert entry["action_type"] == "status_change"
        assert entry["old_value"] == "planned"
        assert entry["new_value"] == "blocked"
        assert entry["note"] == "Waiting on brand assets"


class TestChecklist:

    def test_progress_follows_checklist(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org)
        item_ids = []
        for title in ("Wireframe", "Copy", "Build"):
            response = client.post(
                url(client_org, f"/{deliverable.id}/checklist"), headers=admin_headers, json={"title": title}
            )
            assert response.status_code == 201
            item_ids.append(response.json()["data"]["id"])

        response = client.patch(
            url(client_org, f"/{deliverable.id}/checklist/{item_ids[0]}"),
            headers=admin_headers,
            json={"isDone": True},
        )
        assert response.status_code == 200
        assert response.json()["data"]["progress"] == 33

        response = client.patch(
            url(client_org, f"/{deliverable.id}/checklist/{item_ids[1]}"),
            headers=admin_headers,
            json={"isDone": True},
        )
        data = response.json()["data"]
        assert data["progress"] == 67
        assert [item["order_index"] for item in data["checklist_items"]] == [0, 1, 2]
        assert data["ready_for_finishing_touches"] is False

        response = client.patch(
            url(client_org, f"/{deliverable.id}/checklist/{item_ids[2]}"),
            headers=admin_headers,
            json={"isDone": True},
        )
        data = response.json()["data"]
        assert data["progress"] == 100
        assert data["ready_for_finishing_touches"] is True

    def test_unknown_item(self, client, db_session, client_org, admin_headers):
        deliverable = make_deliverable(db_session, client_org)
        response = client.patch(
            url(client_org, f"/{deliverable.id}/checklist/00000000-0000-0000-0000-000000000000"),
            headers=admin_headers,
            json={"isDone": True},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Checklist item not found"}
