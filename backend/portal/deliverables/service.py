"""Deliverable workflow service.

All functions take the verified org id from the caller's WorkspaceContext
and scope every query by it. Status changes only go through
``change_status``, which applies the state machine.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import TenantQuery
from ..errors import NotFound, ValidationFailed
from ..models.deliverable import ChecklistItem, Deliverable, DeliverableActivity, DeliverableAsset
from ..observability import deliverable_transitions_total, get_logger
from .progress import calculate_progress
from .status import DeliverableStatus, check_transition

logger = get_logger(__name__)


def _record_activity(
    db: Session,
    deliverable: Deliverable,
    action_type: str,
    actor_id: Optional[str],
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    note: Optional[str] = None,
) -> DeliverableActivity:
    activity = DeliverableActivity(
        deliverable_id=deliverable.id,
        org_id=deliverable.org_id,
        actor_id=actor_id,
        action_type=action_type,
        old_value=old_value,
        new_value=new_value,
        note=note,
    )
    db.add(activity)
    return activity


def list_deliverables(db: Session, org_id: UUID, include_hidden: bool = False) -> List[Deliverable]:
    """Non-archived deliverables of an org, newest first.

    Members only see client-visible deliverables; admins pass include_hidden.
    """
    query = TenantQuery.scoped_query(db, Deliverable, org_id).filter(Deliverable.archived.is_(False))
    if not include_hidden:
        query = query.filter(Deliverable.client_visible.is_(True))
    return query.order_by(Deliverable.created_at.desc()).all()


def get_deliverable(
    db: Session,
    org_id: UUID,
    deliverable_id: UUID,
    include_hidden: bool = True,
) -> Deliverable:
    """Fetch one deliverable of the org.

    Raises:
        NotFound: If absent, owned by another org, or hidden from the caller
    """
    deliverable = TenantQuery.get_or_404(db, Deliverable, deliverable_id, org_id, label="Deliverable")
    if not include_hidden and not deliverable.client_visible:
        raise NotFound("Deliverable not found")
    return deliverable


def create_deliverable(
    db: Session,
    org_id: UUID,
    actor_id: str,
    title: str,
    type: str = "general",
    description: Optional[str] = None,
    due_date=None,
    client_visible: bool = True,
) -> Deliverable:
    deliverable = Deliverable(
        org_id=org_id,
        title=title,
        type=type,
        description=description,
        due_date=due_date,
        client_visible=client_visible,
        status=DeliverableStatus.PLANNED.value,
        progress=0,
        created_by=actor_id,
    )
    db.add(deliverable)
    db.flush()

    _record_activity(db, deliverable, "created", actor_id, new_value=deliverable.status)
    db.commit()
    db.refresh(deliverable)

    logger.info(
        f"Created deliverable '{title}'",
        extra={"org_id": org_id, "user_id": actor_id, "deliverable_id": deliverable.id},
    )
    return deliverable


def change_status(
    db: Session,
    org_id: UUID,
    deliverable_id: UUID,
    new_status: DeliverableStatus,
    actor_id: str,
    note: Optional[str] = None,
) -> Deliverable:
    """Apply a status transition after the table and preconditions allow it.

    Concurrent transitions on the same row are last-write-wins.

    Raises:
        NotFound: If the deliverable is not in this org
        ValidationFailed: If the transition is illegal or a precondition fails
    """
    deliverable = get_deliverable(db, org_id, deliverable_id)
    old_status = deliverable.status

    check = check_transition(new_status, deliverable)
    if not check.allowed:
        deliverable_transitions_total.labels(
            from_status=old_status, to_status=new_status.value, result="rejected"
        ).inc()
        logger.info(
            f"Rejected transition {old_status} -> {new_status.value}: {check.reason}",
            extra={"org_id": org_id, "user_id": actor_id, "deliverable_id": deliverable.id},
        )
        raise ValidationFailed(check.reason)

    deliverable.status = new_status.value
    if new_status == DeliverableStatus.COMPLETE:
        deliverable.completed_at = datetime.now(timezone.utc)

    _record_activity(
        db, deliverable, "status_change", actor_id,
        old_value=old_status, new_value=new_status.value, note=note,
    )
    db.commit()
    db.refresh(deliverable)

    deliverable_transitions_total.labels(
        from_status=old_status, to_status=new_status.value, result="applied"
    ).inc()
    logger.info(
        f"Deliverable status {old_status} -> {new_status.value}",
        extra={"org_id": org_id, "user_id": actor_id, "deliverable_id": deliverable.id},
    )
    return deliverable


def recompute_progress(deliverable: Deliverable) -> int:
    deliverable.progress = calculate_progress(deliverable.checklist_items)
    return deliverable.progress


def add_checklist_item(db: Session, org_id: UUID, deliverable_id: UUID, title: str) -> ChecklistItem:
    deliverable = get_deliverable(db, org_id, deliverable_id)

    max_index = db.query(func.max(ChecklistItem.order_index)).filter(
        ChecklistItem.deliverable_id == deliverable.id,
        ChecklistItem.org_id == org_id,
    ).scalar()

    item = ChecklistItem(
        deliverable_id=deliverable.id,
        org_id=org_id,
        title=title,
        is_done=False,
        order_index=(max_index + 1) if max_index is not None else 0,
    )
    deliverable.checklist_items.append(item)
    recompute_progress(deliverable)
    db.commit()
    db.refresh(item)
    return item


def set_checklist_item_done(
    db: Session,
    org_id: UUID,
    deliverable_id: UUID,
    item_id: UUID,
    is_done: bool,
) -> Deliverable:
    """Toggle a checklist item and store the recomputed progress."""
    deliverable = get_deliverable(db, org_id, deliverable_id)

    item = next((i for i in deliverable.checklist_items if i.id == item_id), None)
    if item is None:
        raise NotFound("Checklist item not found")

    item.is_done = is_done
    recompute_progress(deliverable)
    db.commit()
    db.refresh(deliverable)
    return deliverable


def add_asset(
    db: Session,
    deliverable: Deliverable,
    url: str,
    actor_id: str,
    name: Optional[str] = None,
    kind: str = "file",
    is_required_proof: bool = False,
    proof_type: Optional[str] = None,
) -> DeliverableAsset:
    asset = DeliverableAsset(
        deliverable_id=deliverable.id,
        org_id=deliverable.org_id,
        kind=kind,
        url=url,
        name=name,
        is_required_proof=is_required_proof,
        proof_type=proof_type,
    )
    deliverable.assets.append(asset)
    _record_activity(db, deliverable, "asset_added", actor_id, new_value=name or url)
    db.commit()
    db.refresh(asset)
    return asset


def list_activity(db: Session, org_id: UUID, deliverable_id: UUID) -> List[DeliverableActivity]:
    get_deliverable(db, org_id, deliverable_id)
    return TenantQuery.scoped_query(db, DeliverableActivity, org_id).filter(
        DeliverableActivity.deliverable_id == deliverable_id
    ).order_by(DeliverableActivity.created_at.desc()).all()
