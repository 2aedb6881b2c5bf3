"""Org provisioning and workspace routing API

Endpoints:
- POST /orgs/sync                         provision the caller's identity-provider org
- POST /orgs/setup                        signup: agency org with the caller as owner
- GET  /orgs/{org_id}                     any member
- GET  /orgs/{org_id}/members             admin
- POST /orgs/{org_id}/clients             admin of an agency org, creates a client org
- GET  /workspaces                        caller's memberships
- GET  /workspaces/{workspace_id}/enter   303 to the right landing page, or to the fallback
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ..auth.access import require_access_or_redirect
from ..auth.dependencies import (
    WorkspaceContext,
    get_current_identity,
    get_identity_provider,
    get_optional_identity,
    require_admin,
    require_member,
)
from ..auth.identity import Identity, IdentityProvider
from ..auth.roles import OrgRole, is_admin_role
from ..database import TenantQuery, get_db
from ..errors import ValidationFailed
from ..models.org import Org, OrgMember
from ..observability import get_logger
from ..onboarding.service import is_onboarding_complete
from ..schemas import DataEnvelope
from .resolver import OrgProvisioner, resolve_org_id
from .schemas import (
    AgencySetupRequest,
    ClientOrgCreate,
    MemberResponse,
    OrgResponse,
    OrgSyncRequest,
    OrgSyncResponse,
    WorkspaceResponse,
)

logger = get_logger(__name__)

router = APIRouter(tags=["Organizations"])


@router.post("/orgs/sync", response_model=DataEnvelope[OrgSyncResponse])
def sync_org(
    body: Optional[OrgSyncRequest] = None,
    identity: Identity = Depends(get_current_identity),
    provider: IdentityProvider = Depends(get_identity_provider),
    db: Session = Depends(get_db),
):
    """Resolve the caller's identity-provider org, provisioning it on first sight."""
    external_ref = (body.external_ref if body else None) or identity.org_ref
    if not external_ref:
        raise ValidationFailed("No organization to sync")

    result = OrgProvisioner(db, provider).resolve_or_provision(external_ref, identity)
    return {"data": {"org": result.org, "role": result.role.value, "created": result.created}}


@router.post("/orgs/setup", response_model=DataEnvelope[OrgSyncResponse])
def setup_agency(
    body: Optional[AgencySetupRequest] = None,
    identity: Identity = Depends(get_current_identity),
    provider: IdentityProvider = Depends(get_identity_provider),
    db: Session = Depends(get_db),
):
    """Sign the caller up as an agency owner. Repeat calls return the same agency."""
    name = body.name if body else None
    result = OrgProvisioner(db, provider).setup_agency(identity, name)
    return {"data": {"org": result.org, "role": result.role.value, "created": result.created}}


@router.get("/orgs/{org_id}", response_model=DataEnvelope[OrgResponse])
def get_org(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": db.get(Org, ctx.org_id)}


@router.get("/orgs/{org_id}/members", response_model=DataEnvelope[List[MemberResponse]])
def list_members(
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    members = TenantQuery.scoped_query(db, OrgMember, ctx.org_id).order_by(OrgMember.created_at).all()
    return {"data": members}


@router.post("/orgs/{org_id}/clients", response_model=DataEnvelope[OrgResponse], status_code=status.HTTP_201_CREATED)
def create_client_org(
    body: ClientOrgCreate,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create a client org under an agency. The caller becomes its owner."""
    agency = db.get(Org, ctx.org_id)
    if agency.kind != "agency":
        raise ValidationFailed("Only agency organizations can create clients")

    client = Org(name=body.name, kind="client", parent_org_id=agency.id)
    db.add(client)
    db.flush()
    db.add(OrgMember(org_id=client.id, user_id=ctx.user_id, role=OrgRole.OWNER.value))
    db.commit()
    db.refresh(client)

    logger.info(
        f"Agency created client org '{client.name}'",
        extra={"org_id": agency.id, "user_id": ctx.user_id},
    )
    return {"data": client}


@router.get("/workspaces", response_model=DataEnvelope[List[WorkspaceResponse]])
def list_workspaces(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    rows = db.query(OrgMember, Org).join(Org, Org.id == OrgMember.org_id).filter(
        OrgMember.user_id == identity.user_id
    ).order_by(Org.name).all()

    return {"data": [
        WorkspaceResponse(
            org_id=org.id,
            external_ref=org.external_ref,
            name=org.name,
            kind=org.kind,
            role=member.role,
        )
        for member, org in rows
    ]}


@router.get("/workspaces/{workspace_id}/enter", status_code=status.HTTP_303_SEE_OTHER)
def enter_workspace(
    workspace_id: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    """Send the caller to their landing page in a workspace.

    Admins and owners land on the admin dashboard. Members land on
    onboarding until it is complete, then on the client dashboard. Any
    access denial redirects to the configured fallback.
    """
    role = require_access_or_redirect(db, identity, workspace_id)

    if is_admin_role(role):
        location = f"/admin/{workspace_id}/dashboard"
    elif not is_onboarding_complete(db, resolve_org_id(db, workspace_id), identity.user_id):
        location = f"/{workspace_id}/onboarding"
    else:
        location = f"/client/{workspace_id}/dashboard"

    return RedirectResponse(url=location, status_code=status.HTTP_303_SEE_OTHER)
