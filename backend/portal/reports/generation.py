"""Rule-based report block generation.

Every block is derived from stored org data (or submitted KPI values); no
text is invented. Period filters run in SQL against timezone-aware bounds
covering whole days in UTC.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..database import TenantQuery
from ..deliverables.status import DeliverableStatus
from ..models.deliverable import Deliverable

DONE_STATUSES = (DeliverableStatus.COMPLETE.value, DeliverableStatus.APPROVED.value)
MAX_INSIGHTS = 5
MAX_NEXT_STEPS = 6


@dataclass
class GeneratedBlock:
    block_type: str
    title: str
    content: str


def period_bounds(period_start: date, period_end: date) -> Tuple[datetime, datetime]:
    """First and last instant of the period in UTC."""
    return (
        datetime.combine(period_start, time.min, tzinfo=timezone.utc),
        datetime.combine(period_end, time.max, tzinfo=timezone.utc),
    )


def _format_date(value, with_year: bool = True) -> str:
    fmt = "%b %d, %Y" if with_year else "%b %d"
    return value.strftime(fmt).replace(" 0", " ")


def _bullets(lines: List[str], marker: str = "•") -> str:
    return "\n".join(f"{marker} {line}" for line in lines)


def _active(db: Session, org_id: UUID):
    return TenantQuery.scoped_query(db, Deliverable, org_id).filter(Deliverable.archived.is_(False))


def _created_in(start: datetime, end: datetime):
    return and_(Deliverable.created_at >= start, Deliverable.created_at <= end)


def _completed_in(start: datetime, end: datetime):
    return and_(
        Deliverable.status.in_(DONE_STATUSES),
        or_(
            and_(Deliverable.completed_at >= start, Deliverable.completed_at <= end),
            and_(
                Deliverable.completed_at.is_(None),
                Deliverable.updated_at >= start,
                Deliverable.updated_at <= end,
            ),
        ),
    )


def generate_summary_block(db: Session, org_id: UUID, start: datetime, end: datetime) -> GeneratedBlock:
    created_count = _active(db, org_id).filter(_created_in(start, end)).count()
    completed_count = _active(db, org_id).filter(_completed_in(start, end)).count()
    notable = _active(db, org_id).filter(_created_in(start, end)).order_by(
        Deliverable.created_at.desc()
    ).first()

    lines = [
        f"{created_count} deliverables created",
        f"{completed_count} deliverables completed",
        f"Notable: {notable.title if notable else 'Not available'}",
    ]
    return GeneratedBlock("summary", "Summary", _bullets(lines))


def generate_work_block(db: Session, org_id: UUID, start: datetime, end: datetime) -> GeneratedBlock:
    completed = _active(db, org_id).filter(_completed_in(start, end)).order_by(
        Deliverable.completed_at.desc(), Deliverable.updated_at.desc()
    ).all()

    if not completed:
        return GeneratedBlock("work", "Work Completed", "No deliverables completed in this period.")

    lines = [
        f"{d.title} ({d.type}) - Completed {_format_date(d.completed_at or d.updated_at)}"
        for d in completed
    ]
    return GeneratedBlock("work", "Work Completed", _bullets(lines, marker="-"))


def generate_insights_block(db: Session, org_id: UUID, start: datetime, end: datetime) -> GeneratedBlock:
    in_period = _active(db, org_id).filter(_created_in(start, end)).all()
    created = len(in_period)
    done = [d for d in in_period if d.status in DONE_STATUSES]

    insights = []
    if created:
        rate = (200 * len(done) + created) // (2 * created)
        insights.append(f"Completion rate: {rate}% ({len(done)} of {created} deliverables)")
    else:
        insights.append("Completion rate: Not available (no deliverables created)")

    durations = [
        (d.completed_at - d.created_at).total_seconds() / 86400
        for d in done if d.completed_at is not None
    ]
    avg_days = round(sum(round(x) for x in durations) / len(durations)) if durations else 0
    if avg_days > 0:
        insights.append(f"Average time to complete: {avg_days} days")
    else:
        insights.append("Average time to complete: Not available")

    for status, label in ((DeliverableStatus.IN_REVIEW, "in review"), (DeliverableStatus.BLOCKED, "blocked")):
        count = sum(1 for d in in_period if d.status == status.value)
        if count:
            insights.append(f"{count} deliverable{'s' if count != 1 else ''} {label}")

    if created:
        counts: Dict[str, int] = {}
        for d in in_period:
            counts[d.status] = counts.get(d.status, 0) + 1
        insights.append("Status distribution: " + ", ".join(f"{s}: {n}" for s, n in counts.items()))

    return GeneratedBlock("insights", "Insights", _bullets(insights[:MAX_INSIGHTS]))


def generate_next_steps_block(db: Session, org_id: UUID, start: datetime, end: datetime) -> GeneratedBlock:
    def due(d: Deliverable) -> str:
        return _format_date(d.due_date, with_year=False) if d.due_date else "Not set"

    unfinished = _active(db, org_id).filter(
        _created_in(start, end),
        Deliverable.status.notin_(DONE_STATUSES),
    ).order_by(Deliverable.created_at).limit(MAX_NEXT_STEPS).all()
    in_review = _active(db, org_id).filter(
        Deliverable.status == DeliverableStatus.IN_REVIEW.value
    ).order_by(Deliverable.created_at).limit(3).all()
    revisions = _active(db, org_id).filter(
        Deliverable.status == DeliverableStatus.REVISIONS_REQUESTED.value
    ).order_by(Deliverable.created_at).limit(3).all()

    tasks = [f'Complete "{d.title}" | Due: {due(d)}' for d in unfinished]
    tasks += [f'Review "{d.title}" | Due: {due(d)}' for d in in_review]
    tasks += [f'Address revisions for "{d.title}" | Due: {due(d)}' for d in revisions]

    if not tasks:
        return GeneratedBlock("next_steps", "Next Steps", "No next steps identified. All deliverables are on track.")
    return GeneratedBlock("next_steps", "Next Steps", _bullets(tasks[:MAX_NEXT_STEPS], marker="-"))


def generate_metrics_block(kpi: Dict[str, float]) -> GeneratedBlock:
    """Metrics block from submitted KPI values, with derived CPL, ROAS and conversion rate."""
    leads = int(kpi.get("leads") or 0)
    spend = float(kpi.get("spend") or 0)
    revenue = float(kpi.get("revenue") or 0)
    conversions = int(kpi.get("conversions") or 0)
    traffic = int(kpi.get("website_traffic") or 0)

    cpl: Optional[float] = round(spend / leads, 2) if leads > 0 else None
    roas: Optional[float] = round(revenue / spend, 2) if spend > 0 else None
    conversion_rate: Optional[float] = round(conversions / traffic * 100, 2) if traffic > 0 else None

    lines = []
    if leads > 0:
        lines.append(f"Leads/Bookings: {leads:,}")
    if spend > 0:
        lines.append(f"Spend: ${spend:,.2f}")
    if revenue > 0:
        lines.append(f"Revenue: ${revenue:,.2f}")
    if cpl is not None:
        lines.append(f"CPL/CPA: ${cpl:,.2f}")
    if roas is not None:
        lines.append(f"ROAS: {roas:g}x")
    if conversions > 0:
        lines.append(f"Conversions: {conversions:,}")
    if traffic > 0:
        lines.append(f"Website Traffic: {traffic:,}")
    if conversion_rate is not None:
        lines.append(f"Conversion Rate: {conversion_rate:g}%")

    if not lines:
        return GeneratedBlock("metrics", "Key Metrics", "No metrics data available for this period.")
    return GeneratedBlock("metrics", "Key Metrics", _bullets(lines))


def generate_blocks(
    db: Session,
    org_id: UUID,
    period_start: date,
    period_end: date,
    kpi: Optional[Dict[str, float]] = None,
) -> List[GeneratedBlock]:
    """All blocks of a report in display order. The metrics block is only present with KPI data."""
    start, end = period_bounds(period_start, period_end)
    blocks = [generate_summary_block(db, org_id, start, end)]
    if kpi is not None:
        blocks.append(generate_metrics_block(kpi))
    blocks.append(generate_work_block(db, org_id, start, end))
    blocks.append(generate_insights_block(db, org_id, start, end))
    blocks.append(generate_next_steps_block(db, org_id, start, end))
    return blocks
