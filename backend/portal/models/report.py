"""Report models. Blocks are generated from org data and kept in display order."""

from uuid import uuid4

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, Text, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        CheckConstraint("tier IN ('auto', 'kpi')", name='ck_reports_tier'),
        CheckConstraint("status IN ('draft', 'published')", name='ck_reports_status'),
        Index("ix_reports_org_id_created_at", "org_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    tier = Column(Text, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="draft")
    client_visible = Column(Boolean, nullable=False, default=True)
    kpi_data = Column(PortableJSONB, nullable=True)
    created_by = Column(Text, nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    blocks = relationship(
        "ReportBlock",
        back_populates="report",
        order_by="ReportBlock.order_index",
        cascade="all, delete-orphan",
    )


class ReportBlock(Base):
    __tablename__ = "report_blocks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    report_id = Column(Uuid, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    block_type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False, default=0)

    report = relationship("Report", back_populates="blocks")
