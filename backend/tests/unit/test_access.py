"""Unit tests for the workspace access verifier"""

import pytest
from sqlalchemy.exc import OperationalError

from portal.auth import access as access_module
from portal.auth.access import AccessError, require_access_or_redirect, verify_access
from portal.auth.identity import Identity
from portal.auth.roles import OrgRole
from portal.errors import (
    AccessRedirect,
    InsufficientPermissions,
    NotAMember,
    NotFound,
    Unauthenticated,
    UpstreamFailure,
)
from portal.models import Org

from tests.conftest import add_member

ALICE = Identity(user_id="user_alice")


class TestVerifyAccess:

    def test_no_identity(self, db_session, client_org):
        result = verify_access(db_session, None, str(client_org.id))
        assert result.allowed is False
        assert result.error == AccessError.UNAUTHENTICATED
        assert result.message == "Not authenticated"
        assert result.role is None

    def test_unknown_external_ref(self, db_session):
        result = verify_access(db_session, ALICE, "org_does_not_exist")
        assert result.error == AccessError.NOT_FOUND
        assert result.message == "Workspace not found"

    def test_unknown_external_ref_is_not_provisioned(self, db_session):
        verify_access(db_session, ALICE, "org_does_not_exist")
        assert db_session.query(Org).count() == 0

    def test_malformed_workspace_id(self, db_session):
        assert verify_access(db_session, ALICE, "not-a-uuid").error == AccessError.NOT_FOUND

    def test_not_a_member(self, db_session, client_org):
        result = verify_access(db_session, ALICE, str(client_org.id))
        assert result.error == AccessError.NOT_A_MEMBER
        assert result.org_id == client_org.id
        assert result.role is None

    @pytest.mark.parametrize("required_role", [None, OrgRole.MEMBER, OrgRole.ADMIN, OrgRole.OWNER])
    def test_non_member_denied_for_every_required_role(self, db_session, client_org, other_org, required_role):
        add_member(db_session, other_org, ALICE.user_id, "owner")
        result = verify_access(db_session, ALICE, str(client_org.id), required_role)
        assert result.allowed is False
        assert result.error == AccessError.NOT_A_MEMBER
        assert result.message == "Not a member of this workspace"

    @pytest.mark.parametrize("role", ["owner", "admin", "member"])
    def test_every_role_meets_member_floor(self, db_session, client_org, role):
        add_member(db_session, client_org, ALICE.user_id, role)
        result = verify_access(db_session, ALICE, str(client_org.id), OrgRole.MEMBER)
        assert result.allowed is True
        assert result.role == OrgRole(role)

    @pytest.mark.parametrize("role,required_role,allowed", [
        ("owner", OrgRole.ADMIN, True),
        ("admin", OrgRole.ADMIN, True),
        ("member", OrgRole.ADMIN, False),
        ("owner", OrgRole.OWNER, True),
        ("member", OrgRole.OWNER, False),
    ])
    def test_role_floor(self, db_session, client_org, role, required_role, allowed):
        add_member(db_session, client_org, ALICE.user_id, role)
        assert verify_access(db_session, ALICE, str(client_org.id), required_role).allowed is allowed

    def test_member_allowed_by_uuid(self, db_session, client_org):
        add_member(db_session, client_org, ALICE.user_id, "member")
        result = verify_access(db_session, ALICE, str(client_org.id))
        assert result.allowed is True
        assert result.role == OrgRole.MEMBER
        assert result.org_id == client_org.id

    def test_member_allowed_by_external_ref(self, db_session, client_org):
        add_member(db_session, client_org, ALICE.user_id, "member")
        result = verify_access(db_session, ALICE, "org_client")
        assert result.allowed is True
        assert result.org_id == client_org.id

    def test_insufficient_permissions_reports_actual_role(self, db_session, client_org):
        add_member(db_session, client_org, ALICE.user_id, "member")
        result = verify_access(db_session, ALICE, str(client_org.id), OrgRole.ADMIN)
        assert result.allowed is False
        assert result.error == AccessError.INSUFFICIENT_PERMISSIONS
        assert result.message == "Insufficient permissions"
        assert result.role == OrgRole.MEMBER

    def test_admin_satisfies_owner_requirement(self, db_session, client_org):
        add_member(db_session, client_org, ALICE.user_id, "admin")
        result = verify_access(db_session, ALICE, str(client_org.id), OrgRole.OWNER)
        assert result.allowed is True
        assert result.role == OrgRole.ADMIN

    def test_role_comes_from_membership_not_token(self, db_session, client_org):
        add_member(db_session, client_org, ALICE.user_id, "member")
        identity = Identity(user_id=ALICE.user_id, org_ref="org_client", org_role="org:admin")
        result = verify_access(db_session, identity, "org_client", OrgRole.ADMIN)
        assert result.error == AccessError.INSUFFICIENT_PERMISSIONS

    def test_database_failure(self, db_session, monkeypatch):
        def broken_resolve(db, workspace_id):
            raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        monkeypatch.setattr(access_module, "resolve_org_id", broken_resolve)
        result = verify_access(db_session, ALICE, "org_client")
        assert result.error == AccessError.UPSTREAM_FAILURE
        assert result.message == "Failed to verify workspace access"


class TestAccessResultToException:

    @pytest.mark.parametrize("error,exc_type", [
        (AccessError.UNAUTHENTICATED, Unauthenticated),
        (AccessError.NOT_FOUND, NotFound),
        (AccessError.NOT_A_MEMBER, NotAMember),
        (AccessError.INSUFFICIENT_PERMISSIONS, InsufficientPermissions),
        (AccessError.UPSTREAM_FAILURE, UpstreamFailure),
    ])
    def test_maps_to_portal_error(self, error, exc_type):
        result = access_module.AccessResult(allowed=False, error=error, message="nope")
        exc = result.to_exception()
        assert isinstance(exc, exc_type)
        assert exc.message == "nope"


class TestRequireAccessOrRedirect:

    def test_returns_role(self, db_session, client_org):
        add_member(db_session, client_org, ALICE.user_id, "owner")
        assert require_access_or_redirect(db_session, ALICE, "org_client") == OrgRole.OWNER

    def test_redirects_to_default_fallback(self, db_session, client_org):
        with pytest.raises(AccessRedirect) as exc_info:
            require_access_or_redirect(db_session, ALICE, "org_client")
        assert exc_info.value.location == "/dashboard"

    def test_redirects_to_custom_fallback(self, db_session, client_org):
        with pytest.raises(AccessRedirect) as exc_info:
            require_access_or_redirect(db_session, None, "org_client", fallback="/sign-in")
        assert exc_info.value.location == "/sign-in"

    def test_insufficient_role_redirects(self, db_session, client_org):
        add_member(db_session, client_org, ALICE.user_id, "member")
        with pytest.raises(AccessRedirect):
            require_access_or_redirect(db_session, ALICE, "org_client", OrgRole.ADMIN)
