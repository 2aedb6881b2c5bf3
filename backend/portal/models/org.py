"""Org and membership models - root entities for multi-tenant isolation"""

from uuid import uuid4

from sqlalchemy import (
    Column, Text, ForeignKey, CheckConstraint, UniqueConstraint, Index, Uuid, DateTime,
)
from sqlalchemy.orm import validates, relationship

from .base import Base, utcnow


class Org(Base):
    """
    Organization model - a tenant, either an agency or one of its clients.

    `external_ref` is the identity provider's organization id. It stays NULL
    for orgs created directly by an agency until they are synced. `kind` is
    fixed at creation time.
    """
    __tablename__ = "orgs"

    id = Column(Uuid, primary_key=True, default=uuid4)
    external_ref = Column(Text, nullable=True, unique=True)
    name = Column(Text, nullable=False)
    kind = Column(Text, nullable=False, default="client")
    parent_org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    members = relationship("OrgMember", back_populates="org", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("kind IN ('agency', 'client')", name='ck_orgs_kind'),
    )

    @validates('name')
    def validate_name(self, key, value):
        """
        Ensure organization name is not empty and within length limits.

        Raises:
            ValueError: If name is empty/whitespace or exceeds 200 characters
        """
        if not value or len(value.strip()) == 0:
            raise ValueError("Organization name cannot be empty")
        if len(value) > 200:
            raise ValueError("Organization name cannot exceed 200 characters")
        return value.strip()

    @validates('kind')
    def validate_kind(self, key, value):
        if value not in ("agency", "client"):
            raise ValueError(f"Invalid org kind: {value}")
        if self.kind is not None and self.kind != value:
            raise ValueError("Org kind cannot change after creation")
        return value

    def to_dict(self):
        return {
            "id": str(self.id),
            "external_ref": self.external_ref,
            "name": self.name,
            "kind": self.kind,
            "parent_org_id": str(self.parent_org_id) if self.parent_org_id else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Org(id={self.id}, name='{self.name}', kind='{self.kind}')>"


class OrgMember(Base):
    """Membership of an identity-provider user in an org.

    One row per (org, user). The role is the only mutable field.
    """
    __tablename__ = "org_members"

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="member")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    org = relationship("Org", back_populates="members")

    __table_args__ = (
        UniqueConstraint('org_id', 'user_id', name='uq_org_members_org_user'),
        CheckConstraint("role IN ('owner', 'admin', 'member')", name='ck_org_members_role'),
        Index("ix_org_members_user_id", "user_id"),
    )

    def to_dict(self):
        return {
            "org_id": str(self.org_id),
            "user_id": self.user_id,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
