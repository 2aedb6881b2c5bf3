"""Weekly updates and roadmap API

Endpoints:
- GET  /orgs/{org_id}/updates   any member, latest published updates
- POST /orgs/{org_id}/updates   admin
- GET  /orgs/{org_id}/roadmap   any member
- POST /orgs/{org_id}/roadmap   admin
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth.dependencies import WorkspaceContext, require_admin, require_member
from ..database import get_db
from ..schemas import DataEnvelope
from . import service
from .schemas import RoadmapItemCreate, RoadmapItemResponse, WeeklyUpdateCreate, WeeklyUpdateResponse

router = APIRouter(prefix="/orgs/{org_id}", tags=["Updates"])


@router.get("/updates", response_model=DataEnvelope[List[WeeklyUpdateResponse]])
def list_updates(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": service.list_recent_updates(db, ctx.org_id)}


@router.post("/updates", response_model=DataEnvelope[WeeklyUpdateResponse], status_code=status.HTTP_201_CREATED)
def create_update(
    body: WeeklyUpdateCreate,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    update = service.create_update(
        db,
        org_id=ctx.org_id,
        actor_id=ctx.user_id,
        title=body.title,
        what_we_did=body.what_we_did,
        results=body.results,
        next_steps=body.next_steps,
        deliverable_id=body.deliverable_id,
    )
    return {"data": update}


@router.get("/roadmap", response_model=DataEnvelope[List[RoadmapItemResponse]])
def list_roadmap(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": service.list_roadmap(db, ctx.org_id)}


@router.post("/roadmap", response_model=DataEnvelope[RoadmapItemResponse], status_code=status.HTTP_201_CREATED)
def create_roadmap_item(
    body: RoadmapItemCreate,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = service.create_roadmap_item(
        db,
        org_id=ctx.org_id,
        actor_id=ctx.user_id,
        title=body.title,
        timeframe=body.timeframe,
        description=body.description,
    )
    return {"data": item}
