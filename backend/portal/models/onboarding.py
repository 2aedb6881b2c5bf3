"""Onboarding models: flows, nodes, per-user progress and contract signatures"""

from uuid import uuid4

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class OnboardingFlow(Base):
    """Onboarding flow of an org. Only a published flow gates client access."""
    __tablename__ = "onboarding_flows"
    __table_args__ = (
        CheckConstraint("status IN ('draft', 'published')", name='ck_onboarding_flows_status'),
        Index("ix_onboarding_flows_org_id", "org_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="draft")
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    nodes = relationship(
        "OnboardingNode",
        back_populates="flow",
        order_by="OnboardingNode.order_index",
        cascade="all, delete-orphan",
    )


class OnboardingNode(Base):
    """One step of an onboarding flow (welcome, contract, form, ...)."""
    __tablename__ = "onboarding_nodes"

    id = Column(Uuid, primary_key=True, default=uuid4)
    flow_id = Column(Uuid, ForeignKey("onboarding_flows.id", ondelete="CASCADE"), nullable=False)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    required = Column(Boolean, nullable=False, default=True)
    order_index = Column(Integer, nullable=False, default=0)
    config = Column(PortableJSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    flow = relationship("OnboardingFlow", back_populates="nodes")


class OnboardingProgress(Base):
    """Completion state of one node for one user in one org."""
    __tablename__ = "onboarding_progress"
    __table_args__ = (
        UniqueConstraint('org_id', 'user_id', 'node_id', name='uq_onboarding_progress_org_user_node'),
        CheckConstraint("status IN ('pending', 'completed')", name='ck_onboarding_progress_status'),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Text, nullable=False)
    node_id = Column(Uuid, ForeignKey("onboarding_nodes.id", ondelete="CASCADE"), nullable=False)
    status = Column(Text, nullable=False, default="pending")
    completed_at = Column(DateTime(timezone=True), nullable=True)
    metadata_json = Column("metadata", PortableJSONB, nullable=False, default=dict)

    def to_dict(self):
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "user_id": self.user_id,
            "node_id": str(self.node_id),
            "status": self.status,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "metadata": self.metadata_json or {},
        }


class ContractSignature(Base):
    """Signed contract evidence captured during onboarding. Never updated."""
    __tablename__ = "contract_signatures"

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Text, nullable=False)
    node_id = Column(Uuid, ForeignKey("onboarding_nodes.id", ondelete="CASCADE"), nullable=False)
    signed_name = Column(Text, nullable=False)
    signature_image_url = Column(Text, nullable=False)
    contract_sha256 = Column(Text, nullable=True)
    terms_version = Column(Text, nullable=True)
    privacy_version = Column(Text, nullable=True)
    ip = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
