"""Deliverables API

Endpoints:
- GET   /orgs/{org_id}/deliverables                                  any member
- POST  /orgs/{org_id}/deliverables                                  admin
- GET   /orgs/{org_id}/deliverables/{deliverable_id}                 any member
- POST  /orgs/{org_id}/deliverables/{deliverable_id}/status          admin
- POST  /orgs/{org_id}/deliverables/{deliverable_id}/checklist       admin
- PATCH /orgs/{org_id}/deliverables/{deliverable_id}/checklist/{id}  admin
- GET   /orgs/{org_id}/deliverables/{deliverable_id}/activity        any member
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth.dependencies import WorkspaceContext, require_admin, require_member
from ..database import get_db
from ..models.deliverable import Deliverable
from ..schemas import DataEnvelope
from . import service
from .schemas import (
    ActivityResponse,
    ChecklistItemCreate,
    ChecklistItemResponse,
    ChecklistItemUpdate,
    DeliverableCreate,
    DeliverableDetailResponse,
    DeliverableResponse,
    StatusChangeRequest,
)
from .progress import is_ready_for_finishing_touches
from .status import get_allowed_transitions

router = APIRouter(prefix="/orgs/{org_id}/deliverables", tags=["Deliverables"])


def _detail(deliverable: Deliverable) -> DeliverableDetailResponse:
    detail = DeliverableDetailResponse.model_validate(deliverable)
    detail.allowed_transitions = [s.value for s in get_allowed_transitions(deliverable.status)]
    detail.ready_for_finishing_touches = is_ready_for_finishing_touches(deliverable.progress or 0)
    return detail


@router.get("", response_model=DataEnvelope[List[DeliverableResponse]])
def list_deliverables(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    """List deliverables. Members only see client-visible ones."""
    deliverables = service.list_deliverables(db, ctx.org_id, include_hidden=ctx.is_admin)
    return {"data": deliverables}


@router.post("", response_model=DataEnvelope[DeliverableResponse], status_code=status.HTTP_201_CREATED)
def create_deliverable(
    body: DeliverableCreate,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    deliverable = service.create_deliverable(
        db,
        org_id=ctx.org_id,
        actor_id=ctx.user_id,
        title=body.title,
        type=body.type,
        description=body.description,
        due_date=body.due_date,
        client_visible=body.client_visible,
    )
    return {"data": deliverable}


@router.get("/{deliverable_id}", response_model=DataEnvelope[DeliverableDetailResponse])
def get_deliverable(
    deliverable_id: UUID,
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    deliverable = service.get_deliverable(db, ctx.org_id, deliverable_id, include_hidden=ctx.is_admin)
    return {"data": _detail(deliverable)}


@router.post("/{deliverable_id}/status", response_model=DataEnvelope[DeliverableDetailResponse])
def change_status(
    deliverable_id: UUID,
    body: StatusChangeRequest,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Move a deliverable to a new status.

    400 with the state machine's reason when the transition is illegal or
    a precondition (progress, required proof, approval) is not met.
    """
    deliverable = service.change_status(
        db,
        org_id=ctx.org_id,
        deliverable_id=deliverable_id,
        new_status=body.status,
        actor_id=ctx.user_id,
        note=body.note,
    )
    return {"data": _detail(deliverable)}


@router.post(
    "/{deliverable_id}/checklist",
    response_model=DataEnvelope[ChecklistItemResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_checklist_item(
    deliverable_id: UUID,
    body: ChecklistItemCreate,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = service.add_checklist_item(db, ctx.org_id, deliverable_id, body.title)
    return {"data": item}


@router.patch("/{deliverable_id}/checklist/{item_id}", response_model=DataEnvelope[DeliverableDetailResponse])
def update_checklist_item(
    deliverable_id: UUID,
    item_id: UUID,
    body: ChecklistItemUpdate,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Toggle a checklist item; the response carries the recomputed progress."""
    deliverable = service.set_checklist_item_done(db, ctx.org_id, deliverable_id, item_id, body.is_done)
    return {"data": _detail(deliverable)}


@router.get("/{deliverable_id}/activity", response_model=DataEnvelope[List[ActivityResponse]])
def list_activity(
    deliverable_id: UUID,
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    service.get_deliverable(db, ctx.org_id, deliverable_id, include_hidden=ctx.is_admin)
    return {"data": service.list_activity(db, ctx.org_id, deliverable_id)}
