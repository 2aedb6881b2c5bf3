"""Pydantic schemas for weekly updates and roadmap items"""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ..schemas import OptionalText, RequiredText

Timeframe = Literal["this_week", "next_week", "blocker"]


class WeeklyUpdateCreate(BaseModel):
    title: RequiredText
    what_we_did: RequiredText
    results: OptionalText = None
    next_steps: OptionalText = None
    deliverable_id: Optional[UUID] = None


class WeeklyUpdateResponse(BaseModel):
    id: UUID
    org_id: UUID
    title: str
    what_we_did: str
    results: Optional[str] = None
    next_steps: Optional[str] = None
    deliverable_id: Optional[UUID] = None
    created_by: str
    published_at: Optional[datetime] = None
    client_visible: bool

    model_config = ConfigDict(from_attributes=True)


class RoadmapItemCreate(BaseModel):
    title: RequiredText
    description: OptionalText = None
    timeframe: Timeframe


class RoadmapItemResponse(BaseModel):
    id: UUID
    org_id: UUID
    title: str
    description: Optional[str] = None
    timeframe: str
    order_index: int
    created_by: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
