"""Onboarding API

Endpoints:
- GET  /orgs/{org_id}/onboarding/progress[?userId=]   own progress; other users need admin
- POST /orgs/{org_id}/onboarding/progress             complete a node for the caller
- POST /orgs/{org_id}/onboarding/contract             sign a contract node
- GET  /orgs/{org_id}/onboarding/flow                 published flow with nodes
- POST /orgs/{org_id}/onboarding/nodes                admin, add a node
- POST /orgs/{org_id}/onboarding/flow/publish         admin
- GET  /orgs/{org_id}/onboarding/status               admin, every member's completion
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..auth.dependencies import WorkspaceContext, require_admin, require_member
from ..database import get_db
from ..errors import InsufficientPermissions
from ..schemas import DataEnvelope
from ..storage import ObjectStoragePort, get_storage
from . import service
from .schemas import (
    ContractSignatureResponse,
    ContractSignRequest,
    FlowPublishRequest,
    FlowResponse,
    MemberOnboardingStatus,
    NodeCreate,
    NodeResponse,
    ProgressComplete,
    ProgressResponse,
    UserProgressResponse,
)

router = APIRouter(prefix="/orgs/{org_id}/onboarding", tags=["Onboarding"])


@router.get("/progress", response_model=DataEnvelope[UserProgressResponse])
def get_progress(
    user_id: Optional[str] = Query(None, alias="userId"),
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    """Onboarding progress of the caller, or of ``userId`` for admins."""
    target_user = user_id or ctx.user_id
    if target_user != ctx.user_id and not ctx.is_admin:
        raise InsufficientPermissions("Only admins can view other users' progress")

    rows = service.get_progress(db, ctx.org_id, target_user)
    return {"data": {
        "user_id": target_user,
        "progress": rows,
        "is_complete": service.is_onboarding_complete(db, ctx.org_id, target_user),
    }}


@router.post("/progress", response_model=DataEnvelope[ProgressResponse])
def complete_node(
    body: ProgressComplete,
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    row = service.complete_node(db, ctx.org_id, ctx.user_id, body.node_id, body.metadata)
    return {"data": row}


@router.post(
    "/contract",
    response_model=DataEnvelope[ContractSignatureResponse],
    status_code=status.HTTP_201_CREATED,
)
async def sign_contract(
    body: ContractSignRequest,
    request: Request,
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
):
    forwarded_for = request.headers.get("x-forwarded-for")
    ip = forwarded_for.split(",")[0].strip() if forwarded_for else (
        request.client.host if request.client else None
    )

    signature = await service.sign_contract(
        db,
        storage,
        org_id=ctx.org_id,
        identity=ctx.identity,
        node_id=body.node_id,
        signed_name=body.signed_name,
        signature_data_url=body.signature_data_url,
        contract_sha256=body.contract_sha256,
        terms_version=body.terms_version,
        privacy_version=body.privacy_version,
        ip=ip,
        user_agent=request.headers.get("user-agent"),
    )
    return {"data": signature}


@router.get("/flow", response_model=DataEnvelope[Optional[FlowResponse]])
def get_flow(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    """Published flow of the org, or ``null`` when nothing is published."""
    return {"data": service.get_published_flow(db, ctx.org_id)}


@router.post("/nodes", response_model=DataEnvelope[NodeResponse], status_code=status.HTTP_201_CREATED)
def create_node(
    body: NodeCreate,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    node = service.add_node(db, ctx.org_id, body.type, body.title, body.required, body.config)
    return {"data": node}


@router.post("/flow/publish", response_model=DataEnvelope[FlowResponse])
def publish_flow(
    body: Optional[FlowPublishRequest] = None,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    flow = service.publish_flow(db, ctx.org_id, name=body.name if body else None)
    return {"data": flow}


@router.get("/status", response_model=DataEnvelope[List[MemberOnboardingStatus]])
def get_all_status(
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    statuses = service.get_all_status(db, ctx.org_id)
    return {"data": [MemberOnboardingStatus(**vars(s)) for s in statuses]}
