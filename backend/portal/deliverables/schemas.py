"""Pydantic schemas for the Deliverables API"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import OptionalText, RequiredText
from .status import DeliverableStatus


# ============================================================================
# Assets & checklist
# ============================================================================

class AssetResponse(BaseModel):
    id: UUID
    deliverable_id: UUID
    kind: str
    url: str
    name: Optional[str] = None
    is_required_proof: bool
    proof_type: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChecklistItemCreate(BaseModel):
    title: RequiredText


class ChecklistItemUpdate(BaseModel):
    is_done: bool = Field(..., alias="isDone")

    model_config = ConfigDict(populate_by_name=True)


class ChecklistItemResponse(BaseModel):
    id: UUID
    title: str
    is_done: bool
    order_index: int

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Deliverables
# ============================================================================

class DeliverableCreate(BaseModel):
    title: RequiredText
    type: str = "general"
    description: OptionalText = None
    due_date: Optional[date] = Field(None, alias="dueDate")
    client_visible: bool = Field(True, alias="clientVisible")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class StatusChangeRequest(BaseModel):
    """Body of POST /orgs/{org_id}/deliverables/{id}/status"""
    status: DeliverableStatus
    note: Optional[str] = None


class DeliverableResponse(BaseModel):
    id: UUID
    org_id: UUID
    title: str
    type: str
    description: Optional[str] = None
    status: str
    progress: int
    client_visible: bool
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DeliverableDetailResponse(DeliverableResponse):
    assets: List[AssetResponse] = Field(default_factory=list)
    checklist_items: List[ChecklistItemResponse] = Field(default_factory=list)
    allowed_transitions: List[str] = Field(default_factory=list)
    ready_for_finishing_touches: bool = False


class ActivityResponse(BaseModel):
    id: UUID
    deliverable_id: UUID
    actor_id: Optional[str] = None
    action_type: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UploadResponse(BaseModel):
    url: str
    key: str
    asset: AssetResponse
