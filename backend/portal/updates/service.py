"""Weekly updates and roadmap items, both scoped to one org."""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import TenantQuery
from ..deliverables.service import get_deliverable
from ..errors import ValidationFailed
from ..models.updates import ROADMAP_TIMEFRAMES, RoadmapItem, WeeklyUpdate
from ..observability import get_logger

logger = get_logger(__name__)

RECENT_UPDATES_LIMIT = 5


def create_update(
    db: Session,
    org_id: UUID,
    actor_id: str,
    title: str,
    what_we_did: str,
    results: Optional[str] = None,
    next_steps: Optional[str] = None,
    deliverable_id: Optional[UUID] = None,
) -> WeeklyUpdate:
    """Create and immediately publish a client-visible update.

    Raises:
        NotFound: If deliverable_id is given but not in this org
    """
    if deliverable_id is not None:
        get_deliverable(db, org_id, deliverable_id)

    update = WeeklyUpdate(
        org_id=org_id,
        title=title,
        what_we_did=what_we_did,
        results=results,
        next_steps=next_steps,
        deliverable_id=deliverable_id,
        created_by=actor_id,
        published_at=datetime.now(timezone.utc),
        client_visible=True,
    )
    db.add(update)
    db.commit()
    db.refresh(update)

    logger.info(f"Published update '{title}'", extra={"org_id": org_id, "user_id": actor_id})
    return update


def list_recent_updates(db: Session, org_id: UUID, limit: int = RECENT_UPDATES_LIMIT) -> List[WeeklyUpdate]:
    return TenantQuery.scoped_query(db, WeeklyUpdate, org_id).filter(
        WeeklyUpdate.client_visible.is_(True),
        WeeklyUpdate.published_at.isnot(None),
    ).order_by(WeeklyUpdate.published_at.desc()).limit(limit).all()


def create_roadmap_item(
    db: Session,
    org_id: UUID,
    actor_id: str,
    title: str,
    timeframe: str,
    description: Optional[str] = None,
) -> RoadmapItem:
    """Append a roadmap item at the end of its timeframe.

    Raises:
        ValidationFailed: If timeframe is not one of this_week, next_week, blocker
    """
    if timeframe not in ROADMAP_TIMEFRAMES:
        raise ValidationFailed("Invalid timeframe")

    max_index = db.query(func.max(RoadmapItem.order_index)).filter(
        RoadmapItem.org_id == org_id,
        RoadmapItem.timeframe == timeframe,
    ).scalar()

    item = RoadmapItem(
        org_id=org_id,
        title=title,
        description=description,
        timeframe=timeframe,
        order_index=(max_index + 1) if max_index is not None else 0,
        created_by=actor_id,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def list_roadmap(db: Session, org_id: UUID) -> List[RoadmapItem]:
    return TenantQuery.scoped_query(db, RoadmapItem, org_id).order_by(
        RoadmapItem.order_index, RoadmapItem.created_at
    ).all()
