"""Pydantic schemas for org messaging"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import RequiredText


class MessageCreate(BaseModel):
    body: RequiredText = Field(..., max_length=5000)


class ConversationResponse(BaseModel):
    id: UUID
    org_id: UUID
    title: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    org_id: UUID
    author_user_id: str
    author_role: str
    body: str
    created_at: datetime
    # Only set on the caller's own messages
    is_read: Optional[bool] = None
    read_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReadMarkerResponse(BaseModel):
    conversation_id: UUID
    last_read_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnreadCountResponse(BaseModel):
    count: int
