"""Client-facing weekly updates and roadmap items"""

from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text, Uuid

from .base import Base, utcnow


ROADMAP_TIMEFRAMES = ("this_week", "next_week", "blocker")


class WeeklyUpdate(Base):
    __tablename__ = "weekly_updates"
    __table_args__ = (
        Index("ix_weekly_updates_org_id_published_at", "org_id", "published_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    what_we_did = Column(Text, nullable=False)
    results = Column(Text, nullable=True)
    next_steps = Column(Text, nullable=True)
    deliverable_id = Column(Uuid, ForeignKey("deliverables.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Text, nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    client_visible = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class RoadmapItem(Base):
    __tablename__ = "roadmap_items"
    __table_args__ = (
        CheckConstraint(
            "timeframe IN ('this_week', 'next_week', 'blocker')",
            name='ck_roadmap_items_timeframe'
        ),
        Index("ix_roadmap_items_org_id_timeframe", "org_id", "timeframe"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    timeframe = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    created_by = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
