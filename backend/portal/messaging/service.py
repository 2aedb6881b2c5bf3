"""Conversation, messages and read markers of an org.

Each org has exactly one conversation shared by the agency and the client.
Unread counts come from a per-user ``last_read_at`` marker: messages from
other people created after it are unread.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.roles import OrgRole, is_admin_role
from ..database import TenantQuery
from ..models.base import utcnow
from ..models.message import Conversation, Message, MessageRead
from ..observability import get_logger, messages_sent_total

logger = get_logger(__name__)

DEFAULT_CONVERSATION_TITLE = "Client Chat"
RECENT_MESSAGES_LIMIT = 3


def author_role_for(role: OrgRole) -> str:
    """Owners and admins post as the agency, members as the client."""
    return "agency" if is_admin_role(role) else "client"


def find_conversation(db: Session, org_id: UUID) -> Optional[Conversation]:
    return TenantQuery.scoped_query(db, Conversation, org_id).first()


def get_or_create_conversation(db: Session, org_id: UUID) -> Conversation:
    conversation = find_conversation(db, org_id)
    if conversation is not None:
        return conversation

    conversation = Conversation(org_id=org_id, title=DEFAULT_CONVERSATION_TITLE)
    db.add(conversation)
    try:
        db.commit()
    except IntegrityError:
        # Created by a concurrent request
        db.rollback()
        return TenantQuery.scoped_query(db, Conversation, org_id).one()

    db.refresh(conversation)
    logger.info("Created conversation", extra={"org_id": org_id, "conversation_id": conversation.id})
    return conversation


def _messages_query(db: Session, org_id: UUID, conversation: Conversation):
    return TenantQuery.scoped_query(db, Message, org_id).filter(Message.conversation_id == conversation.id)


def list_messages(db: Session, org_id: UUID) -> List[Message]:
    """All messages of the org's conversation, oldest first."""
    conversation = find_conversation(db, org_id)
    if conversation is None:
        return []
    return _messages_query(db, org_id, conversation).order_by(Message.created_at).all()


def get_recent_messages(db: Session, org_id: UUID, limit: int = RECENT_MESSAGES_LIMIT) -> List[Message]:
    """The latest ``limit`` messages, returned oldest first."""
    conversation = find_conversation(db, org_id)
    if conversation is None:
        return []
    latest = _messages_query(db, org_id, conversation).order_by(Message.created_at.desc()).limit(limit).all()
    return list(reversed(latest))


def send_message(db: Session, org_id: UUID, author_id: str, role: OrgRole, body: str) -> Message:
    conversation = get_or_create_conversation(db, org_id)
    message = Message(
        conversation_id=conversation.id,
        org_id=org_id,
        author_user_id=author_id,
        author_role=author_role_for(role),
        body=body,
    )
    conversation.updated_at = utcnow()
    db.add(message)
    db.commit()
    db.refresh(message)

    messages_sent_total.labels(author_role=message.author_role).inc()
    logger.info(
        f"Message posted as {message.author_role}",
        extra={"org_id": org_id, "user_id": author_id, "conversation_id": conversation.id},
    )
    return message


def _find_marker(db: Session, org_id: UUID, conversation: Conversation, user_id: str) -> Optional[MessageRead]:
    return TenantQuery.scoped_query(db, MessageRead, org_id).filter(
        MessageRead.conversation_id == conversation.id,
        MessageRead.user_id == user_id,
    ).first()


def mark_messages_as_read(db: Session, org_id: UUID, user_id: str) -> MessageRead:
    """Move the caller's read marker to now."""
    conversation = get_or_create_conversation(db, org_id)
    marker = _find_marker(db, org_id, conversation, user_id)
    if marker is None:
        marker = MessageRead(conversation_id=conversation.id, org_id=org_id, user_id=user_id, last_read_at=utcnow())
        db.add(marker)
        try:
            db.commit()
        except IntegrityError:
            # Another tab marked the conversation first
            db.rollback()
            marker = _find_marker(db, org_id, conversation, user_id)
            marker.last_read_at = utcnow()
            db.commit()
    else:
        marker.last_read_at = utcnow()
        db.commit()

    db.refresh(marker)
    return marker


def get_unread_count(db: Session, org_id: UUID, user_id: str) -> int:
    """Messages from other people newer than the caller's read marker."""
    conversation = find_conversation(db, org_id)
    if conversation is None:
        return 0

    query = _messages_query(db, org_id, conversation).filter(Message.author_user_id != user_id)
    marker = _find_marker(db, org_id, conversation, user_id)
    if marker is not None:
        query = query.filter(Message.created_at > marker.last_read_at)
    return query.count()


def read_receipts(db: Session, org_id: UUID, user_id: str, messages: List[Message]) -> Dict[UUID, datetime]:
    """For the caller's own messages, the earliest read marker of another member covering each one.

    Messages missing from the result have not been read by anyone else.
    """
    own = [m for m in messages if m.author_user_id == user_id]
    if not own:
        return {}

    markers = TenantQuery.scoped_query(db, MessageRead, org_id).filter(
        MessageRead.conversation_id == own[0].conversation_id,
        MessageRead.user_id != user_id,
    ).all()

    receipts = {}
    for message in own:
        covering = [m.last_read_at for m in markers if m.last_read_at >= message.created_at]
        if covering:
            receipts[message.id] = min(covering)
    return receipts
