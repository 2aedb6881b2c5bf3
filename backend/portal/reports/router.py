"""Reports API

Endpoints:
- POST  /orgs/{org_id}/reports/generate                         admin
- GET   /orgs/{org_id}/reports                                  any member (drafts for admins only)
- GET   /orgs/{org_id}/reports/{report_id}                      any member (drafts for admins only)
- POST  /orgs/{org_id}/reports/{report_id}/publish              admin
- POST  /orgs/{org_id}/reports/{report_id}/regenerate           admin, drafts only
- PATCH /orgs/{org_id}/reports/{report_id}/blocks/{block_id}    admin
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth.dependencies import WorkspaceContext, require_admin, require_member
from ..database import get_db
from ..schemas import DataEnvelope
from . import service
from .schemas import ReportBlockResponse, ReportBlockUpdate, ReportGenerateRequest, ReportResponse

router = APIRouter(prefix="/orgs/{org_id}/reports", tags=["Reports"])


@router.post("/generate", response_model=DataEnvelope[ReportResponse], status_code=status.HTTP_201_CREATED)
def generate_report(
    body: ReportGenerateRequest,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Generate a draft report from the org's deliverable data.

    ``kpi`` reports additionally need ``kpiData.leads``.
    """
    report = service.generate_report(
        db,
        org_id=ctx.org_id,
        actor_id=ctx.user_id,
        tier=body.tier,
        period_start=body.period_start,
        period_end=body.period_end,
        kpi_data=body.kpi_data.model_dump() if body.kpi_data else None,
        title=body.title,
    )
    return {"data": report}


@router.get("", response_model=DataEnvelope[List[ReportResponse]])
def list_reports(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": service.list_reports(db, ctx.org_id, include_drafts=ctx.is_admin)}


@router.get("/{report_id}", response_model=DataEnvelope[ReportResponse])
def get_report(
    report_id: UUID,
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": service.get_report(db, ctx.org_id, report_id, include_drafts=ctx.is_admin)}


@router.post("/{report_id}/publish", response_model=DataEnvelope[ReportResponse])
def publish_report(
    report_id: UUID,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"data": service.publish_report(db, ctx.org_id, report_id)}


@router.post("/{report_id}/regenerate", response_model=DataEnvelope[ReportResponse])
def regenerate_report(
    report_id: UUID,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"data": service.regenerate_report(db, ctx.org_id, report_id, actor_id=ctx.user_id)}


@router.patch("/{report_id}/blocks/{block_id}", response_model=DataEnvelope[ReportBlockResponse])
def update_report_block(
    report_id: UUID,
    block_id: UUID,
    body: ReportBlockUpdate,
    ctx: WorkspaceContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    block = service.update_block(db, ctx.org_id, report_id, block_id, content=body.content, title=body.title)
    return {"data": block}
