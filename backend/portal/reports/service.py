"""Report generation, publishing and listing."""

import time
from datetime import date, datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..database import TenantQuery
from ..errors import NotFound, ValidationFailed
from ..models.report import Report, ReportBlock
from ..observability import get_logger, report_generation_seconds, reports_generated_total
from .generation import GeneratedBlock, generate_blocks

logger = get_logger(__name__)

REPORT_TIERS = ("auto", "kpi")


def default_title(tier: str, period_start: date, period_end: date) -> str:
    label = "KPI Report" if tier == "kpi" else "Performance Report"
    return f"{label}: {period_start.isoformat()} to {period_end.isoformat()}"


def _attach_blocks(report: Report, blocks: List[GeneratedBlock]) -> None:
    for index, block in enumerate(blocks):
        report.blocks.append(ReportBlock(
            org_id=report.org_id,
            block_type=block.block_type,
            title=block.title,
            content=block.content,
            order_index=index,
        ))


def generate_report(
    db: Session,
    org_id: UUID,
    actor_id: str,
    tier: str,
    period_start: date,
    period_end: date,
    kpi_data: Optional[Dict[str, float]] = None,
    title: Optional[str] = None,
) -> Report:
    """Generate a draft report with its blocks in display order.

    Raises:
        ValidationFailed: On an unknown tier, an inverted period, or a kpi
            tier without ``leads``
    """
    if tier not in REPORT_TIERS:
        raise ValidationFailed("Invalid tier. Must be auto or kpi")
    if period_end < period_start:
        raise ValidationFailed("periodEnd must not be before periodStart")
    if tier == "kpi" and (not kpi_data or kpi_data.get("leads") is None):
        raise ValidationFailed("Missing required KPI data: leads")

    started = time.perf_counter()
    blocks = generate_blocks(
        db, org_id, period_start, period_end,
        kpi=kpi_data if tier == "kpi" else None,
    )

    report = Report(
        org_id=org_id,
        title=title or default_title(tier, period_start, period_end),
        tier=tier,
        period_start=period_start,
        period_end=period_end,
        status="draft",
        client_visible=True,
        kpi_data=kpi_data if tier == "kpi" else None,
        created_by=actor_id,
    )
    _attach_blocks(report, blocks)
    db.add(report)
    db.commit()
    db.refresh(report)

    report_generation_seconds.observe(time.perf_counter() - started)
    reports_generated_total.labels(tier=tier).inc()
    logger.info(
        f"Generated {tier} report with {len(blocks)} blocks",
        extra={"org_id": org_id, "user_id": actor_id, "report_id": report.id},
    )
    return report


def get_report(db: Session, org_id: UUID, report_id: UUID, include_drafts: bool = True) -> Report:
    report = TenantQuery.get_or_404(db, Report, report_id, org_id, label="Report")
    if not include_drafts and (report.status != "published" or not report.client_visible):
        raise NotFound("Report not found")
    return report


def publish_report(db: Session, org_id: UUID, report_id: UUID) -> Report:
    report = get_report(db, org_id, report_id)
    if report.status != "published":
        report.status = "published"
        report.published_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(report)
        logger.info("Published report", extra={"org_id": org_id, "report_id": report.id})
    return report


def regenerate_report(db: Session, org_id: UUID, report_id: UUID, actor_id: str) -> Report:
    """Rebuild a draft's blocks from current org data.

    Tier, period and KPI values are taken from the stored report. Manual
    block edits are discarded.

    Raises:
        NotFound: If the report is not in this org
        ValidationFailed: If the report is already published
    """
    report = get_report(db, org_id, report_id)
    if report.status == "published":
        raise ValidationFailed("Published reports cannot be regenerated")

    started = time.perf_counter()
    blocks = generate_blocks(
        db, org_id, report.period_start, report.period_end,
        kpi=report.kpi_data if report.tier == "kpi" else None,
    )
    report.blocks.clear()
    _attach_blocks(report, blocks)
    db.commit()
    db.refresh(report)

    report_generation_seconds.observe(time.perf_counter() - started)
    logger.info(
        f"Regenerated report with {len(blocks)} blocks",
        extra={"org_id": org_id, "user_id": actor_id, "report_id": report.id},
    )
    return report


def update_block(
    db: Session,
    org_id: UUID,
    report_id: UUID,
    block_id: UUID,
    content: str,
    title: Optional[str] = None,
) -> ReportBlock:
    """Replace a block's text. Allowed on drafts and published reports."""
    report = get_report(db, org_id, report_id)
    block = TenantQuery.scoped_query(db, ReportBlock, org_id).filter(
        ReportBlock.id == block_id,
        ReportBlock.report_id == report.id,
    ).first()
    if block is None:
        raise NotFound("Report block not found")

    block.content = content
    if title is not None:
        block.title = title
    db.commit()
    db.refresh(block)

    logger.info(f"Edited {block.block_type} block", extra={"org_id": org_id, "report_id": report.id})
    return block


def list_reports(db: Session, org_id: UUID, include_drafts: bool = False) -> List[Report]:
    """Reports of an org, newest first. Members only see published, client-visible ones."""
    query = TenantQuery.scoped_query(db, Report, org_id)
    if not include_drafts:
        query = query.filter(Report.status == "published", Report.client_visible.is_(True))
    return query.order_by(Report.created_at.desc()).all()
