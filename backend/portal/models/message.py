"""Org-wide conversation, its messages and per-user read markers"""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Conversation(Base):
    """The single agency/client thread of an org."""
    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("org_id", name="uq_conversations_org_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False, default="Client Chat")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="Message.created_at",
        cascade="all, delete-orphan",
    )


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint("author_role IN ('agency', 'client')", name='ck_messages_author_role'),
        Index("ix_messages_conversation_id_created_at", "conversation_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    author_user_id = Column(Text, nullable=False)
    author_role = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")


class MessageRead(Base):
    """How far one user has read a conversation."""
    __tablename__ = "message_reads"
    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_message_reads_conversation_id_user_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Text, nullable=False)
    last_read_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
