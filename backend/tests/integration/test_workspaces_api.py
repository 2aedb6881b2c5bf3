"""Integration tests for org sync, client provisioning and workspace routing"""

import re
from uuid import UUID

import pytest

from portal.models import Org, OrgMember
from portal.storage import get_storage

from tests.conftest import add_member, auth_headers
from tests.fixtures.storage import FailingStorage

pytestmark = pytest.mark.integration


class TestOrgSync:

    def test_first_sync_provisions(self, client, db_session):
        headers = auth_headers("user_new", org_ref="org_fresh", org_role="org:admin", org_name="Fresh Co")

        response = client.post("/api/v1/orgs/sync", headers=headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["created"] is True
        assert data["role"] == "admin"
        assert data["org"]["external_ref"] == "org_fresh"
        assert data["org"]["name"] == "Fresh Co"

    def test_second_sync_is_idempotent(self, client, db_session):
        headers = auth_headers("user_new", org_ref="org_fresh", org_role="org:member")
        first = client.post("/api/v1/orgs/sync", headers=headers).json()["data"]
        second = client.post("/api/v1/orgs/sync", headers=headers).json()["data"]

        assert second["created"] is False
        assert second["org"]["id"] == first["org"]["id"]
        assert db_session.query(Org).count() == 1

    def test_sync_other_org_than_token(self, client, db_session):
        headers = auth_headers("user_new", org_ref="org_fresh")
        response = client.post("/api/v1/orgs/sync", headers=headers, json={"orgId": "org_someone_else"})
        assert response.status_code == 404
        assert response.json() == {"error": "Organization not found in identity provider"}

    def test_sync_without_active_org(self, client):
        response = client.post("/api/v1/orgs/sync", headers=auth_headers("user_new"))
        assert response.status_code == 400
        assert response.json() == {"error": "No organization to sync"}

    def test_sync_requires_authentication(self, client):
        assert client.post("/api/v1/orgs/sync").status_code == 401


class TestAgencySetup:

    def test_signup_then_create_client(self, client, db_session):
        headers = auth_headers("user_founder", name="Dana Reyes")

        response = client.post("/api/v1/orgs/setup", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["created"] is True
        assert data["role"] == "owner"
        assert data["org"]["kind"] == "agency"
        assert data["org"]["name"] == "Dana Reyes's Agency"
        agency_id = data["org"]["id"]

        response = client.post(
            f"/api/v1/orgs/{agency_id}/clients", headers=headers, json={"name": "Acme Bakery"}
        )
        assert response.status_code == 201
        client_data = response.json()["data"]
        assert client_data["kind"] == "client"
        assert client_data["parent_org_id"] == agency_id

    def test_setup_is_idempotent(self, client, db_session):
        headers = auth_headers("user_founder")
        first = client.post("/api/v1/orgs/setup", headers=headers, json={"name": "Studio North"})
        second = client.post("/api/v1/orgs/setup", headers=headers)

        assert first.json()["data"]["org"]["name"] == "Studio North"
        assert second.json()["data"]["created"] is False
        assert second.json()["data"]["org"]["id"] == first.json()["data"]["org"]["id"]
        assert db_session.query(Org).filter_by(kind="agency").count() == 1

    def test_token_org_already_a_client(self, client, client_org):
        headers = auth_headers("user_founder", org_ref="org_client")
        response = client.post("/api/v1/orgs/setup", headers=headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Organization is already registered as a client"}

    def test_setup_requires_authentication(self, client):
        assert client.post("/api/v1/orgs/setup").status_code == 401


class TestOrgs:

    def test_get_org(self, client, client_org, member_headers):
        response = client.get(f"/api/v1/orgs/{client_org.id}", headers=member_headers)
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Acme Bakery"

    def test_members_admin_only(self, client, client_org, admin_headers, member_headers):
        assert client.get(f"/api/v1/orgs/{client_org.id}/members", headers=member_headers).status_code == 403

        response = client.get(f"/api/v1/orgs/{client_org.id}/members", headers=admin_headers)
        assert {m["user_id"] for m in response.json()["data"]} == {"user_admin", "user_member"}

    def test_agency_creates_client(self, client, db_session, agency_org):
        add_member(db_session, agency_org, "user_agency", "owner")
        headers = auth_headers("user_agency")

        response = client.post(f"/api/v1/orgs/{agency_org.id}/clients", headers=headers,
                               json={"name": "Initech"})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["kind"] == "client"
        assert data["parent_org_id"] == str(agency_org.id)
        owner = db_session.query(OrgMember).filter_by(user_id="user_agency", org_id=UUID(data["id"])).one()
        assert owner.role == "owner"

    def test_client_org_cannot_create_clients(self, client, client_org, admin_headers):
        response = client.post(f"/api/v1/orgs/{client_org.id}/clients", headers=admin_headers,
                               json={"name": "Initech"})
        assert response.status_code == 400
        assert response.json() == {"error": "Only agency organizations can create clients"}


class TestWorkspaces:

    def test_lists_memberships(self, client, db_session, client_org, other_org, admin_headers):
        add_member(db_session, other_org, "user_admin", "member")

        response = client.get("/api/v1/workspaces", headers=admin_headers)

        assert response.status_code == 200
        assert [(w["name"], w["role"]) for w in response.json()["data"]] == [
            ("Acme Bakery", "admin"),
            ("Globex Plumbing", "member"),
        ]


class TestEnterWorkspace:

    def enter(self, client, workspace_id, headers=None):
        return client.get(f"/api/v1/workspaces/{workspace_id}/enter", headers=headers or {},
                          follow_redirects=False)

    def test_admin_lands_on_admin_dashboard(self, client, admin_headers):
        response = self.enter(client, "org_client", admin_headers)
        assert response.status_code == 303
        assert response.headers["location"] == "/admin/org_client/dashboard"

    def test_member_without_flow_lands_on_client_dashboard(self, client, member_headers):
        response = self.enter(client, "org_client", member_headers)
        assert response.headers["location"] == "/client/org_client/dashboard"

    def test_member_with_pending_onboarding(self, client, client_org, admin_headers, member_headers):
        client.post(f"/api/v1/orgs/{client_org.id}/onboarding/nodes", headers=admin_headers,
                    json={"type": "welcome", "title": "Welcome"})
        client.post(f"/api/v1/orgs/{client_org.id}/onboarding/flow/publish", headers=admin_headers)

        response = self.enter(client, "org_client", member_headers)
        assert response.headers["location"] == "/org_client/onboarding"

    def test_outsider_redirected_to_fallback(self, client, client_org, outsider_headers):
        response = self.enter(client, "org_client", outsider_headers)
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

    def test_anonymous_redirected_to_fallback(self, client, client_org):
        assert self.enter(client, "org_client").headers["location"] == "/dashboard"

    def test_unknown_workspace_not_provisioned(self, client, db_session):
        headers = auth_headers("user_new", org_ref="org_ghost", org_role="org:admin")
        response = self.enter(client, "org_ghost", headers)
        assert response.headers["location"] == "/dashboard"
        assert db_session.query(Org).filter_by(external_ref="org_ghost").count() == 0


class TestObservability:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        components = response.json()["components"]
        assert components["database"]["status"] == "healthy"
        assert components["object_storage"]["status"] == "healthy"

    def test_health_reports_unreachable_bucket(self, client):
        from portal.main import app

        app.dependency_overrides[get_storage] = lambda: FailingStorage()
        response = client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["components"]["object_storage"]["message"] == "Asset bucket unavailable"

    def test_metrics(self, client, client_org, member_headers):
        client.get(f"/api/v1/orgs/{client_org.id}/deliverables", headers=member_headers)
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "portal_access_decisions_total" in response.text
        # The template is labelled with or without the mount prefix depending on the FastAPI release
        assert re.search(r'route="(/api/v1)?/orgs/\{org_id\}/deliverables"', response.text)

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
