"""Deliverable models: deliverables, proof assets, checklist items, activity log"""

from uuid import uuid4

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, Text, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Deliverable(Base):
    """A trackable unit of client-facing work.

    `status` only changes through the transition rules in
    deliverables.status; `progress` is derived from the checklist.
    """
    __tablename__ = "deliverables"
    __table_args__ = (
        Index("ix_deliverables_org_id", "org_id"),
        Index("ix_deliverables_org_id_status", "org_id", "status"),
        CheckConstraint(
            "status IN ('planned', 'in_progress', 'in_review', 'approved', "
            "'complete', 'blocked', 'revisions_requested')",
            name='ck_deliverables_status'
        ),
        CheckConstraint("progress >= 0 AND progress <= 100", name='ck_deliverables_progress'),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    type = Column(Text, nullable=False, default="general")
    description = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="planned")
    progress = Column(Integer, nullable=False, default=0)
    client_visible = Column(Boolean, nullable=False, default=True)
    archived = Column(Boolean, nullable=False, default=False)
    due_date = Column(Date, nullable=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    assets = relationship(
        "DeliverableAsset",
        back_populates="deliverable",
        order_by="DeliverableAsset.created_at",
        cascade="all, delete-orphan",
    )
    checklist_items = relationship(
        "ChecklistItem",
        back_populates="deliverable",
        order_by="ChecklistItem.order_index",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Deliverable(id={self.id}, status='{self.status}', progress={self.progress})>"


class DeliverableAsset(Base):
    """A file or link attached to a deliverable, optionally flagged as required proof."""
    __tablename__ = "deliverable_assets"
    __table_args__ = (
        Index("ix_deliverable_assets_deliverable_id", "deliverable_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    deliverable_id = Column(Uuid, ForeignKey("deliverables.id", ondelete="CASCADE"), nullable=False)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    kind = Column(Text, nullable=False, default="file")
    url = Column(Text, nullable=False)
    name = Column(Text, nullable=True)
    is_required_proof = Column(Boolean, nullable=False, default=False)
    proof_type = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    deliverable = relationship("Deliverable", back_populates="assets")


class ChecklistItem(Base):
    """Checklist entry of a deliverable; the done ratio drives progress."""
    __tablename__ = "deliverable_checklist_items"

    id = Column(Uuid, primary_key=True, default=uuid4)
    deliverable_id = Column(Uuid, ForeignKey("deliverables.id", ondelete="CASCADE"), nullable=False)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    is_done = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    deliverable = relationship("Deliverable", back_populates="checklist_items")


class DeliverableActivity(Base):
    """Append-only history of deliverable changes (status changes, uploads)."""
    __tablename__ = "deliverable_activity_log"
    __table_args__ = (
        Index("ix_deliverable_activity_org_id_created_at", "org_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    deliverable_id = Column(Uuid, ForeignKey("deliverables.id", ondelete="CASCADE"), nullable=False)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    actor_id = Column(Text, nullable=True)
    action_type = Column(Text, nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
