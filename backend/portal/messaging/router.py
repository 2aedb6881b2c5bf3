"""Messaging API

Endpoints (all any member):
- GET  /orgs/{org_id}/conversation              the org's conversation, created on first use
- GET  /orgs/{org_id}/messages                  all messages, oldest first
- GET  /orgs/{org_id}/messages/recent           latest messages for the overview card
- POST /orgs/{org_id}/messages                  post as agency (owner/admin) or client (member)
- POST /orgs/{org_id}/messages/read             move the caller's read marker to now
- GET  /orgs/{org_id}/messages/unread-count
"""

from datetime import datetime
from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import WorkspaceContext, require_member
from ..database import get_db
from ..models.message import Message
from ..schemas import DataEnvelope
from . import service
from .schemas import (
    ConversationResponse,
    MessageCreate,
    MessageResponse,
    ReadMarkerResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/orgs/{org_id}", tags=["Messaging"])


def _with_receipts(messages: List[Message], receipts: Dict[UUID, datetime], user_id: str) -> List[MessageResponse]:
    result = []
    for message in messages:
        response = MessageResponse.model_validate(message)
        if message.author_user_id == user_id:
            response.is_read = message.id in receipts
            response.read_at = receipts.get(message.id)
        result.append(response)
    return result


@router.get("/conversation", response_model=DataEnvelope[ConversationResponse])
def get_conversation(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": service.get_or_create_conversation(db, ctx.org_id)}


@router.get("/messages", response_model=DataEnvelope[List[MessageResponse]])
def list_messages(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    """Messages with read status attached to the caller's own ones."""
    messages = service.list_messages(db, ctx.org_id)
    receipts = service.read_receipts(db, ctx.org_id, ctx.user_id, messages)
    return {"data": _with_receipts(messages, receipts, ctx.user_id)}


@router.get("/messages/recent", response_model=DataEnvelope[List[MessageResponse]])
def recent_messages(
    limit: int = Query(service.RECENT_MESSAGES_LIMIT, ge=1, le=50),
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": service.get_recent_messages(db, ctx.org_id, limit=limit)}


@router.post("/messages", response_model=DataEnvelope[MessageResponse], status_code=status.HTTP_201_CREATED)
def send_message(
    body: MessageCreate,
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    message = service.send_message(db, ctx.org_id, author_id=ctx.user_id, role=ctx.role, body=body.body)
    return {"data": message}


@router.post("/messages/read", response_model=DataEnvelope[ReadMarkerResponse])
def mark_read(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": service.mark_messages_as_read(db, ctx.org_id, ctx.user_id)}


@router.get("/messages/unread-count", response_model=DataEnvelope[UnreadCountResponse])
def unread_count(
    ctx: WorkspaceContext = Depends(require_member),
    db: Session = Depends(get_db),
):
    return {"data": {"count": service.get_unread_count(db, ctx.org_id, ctx.user_id)}}
