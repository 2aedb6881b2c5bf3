"""Pydantic schemas for the Onboarding API"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import OptionalText, RequiredText

NodeType = Literal["welcome", "payment", "contract", "consent", "doc", "form", "connect", "call"]


class ProgressComplete(BaseModel):
    """Body of POST /orgs/{org_id}/onboarding/progress"""
    node_id: UUID = Field(..., alias="nodeId")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class ProgressResponse(BaseModel):
    id: UUID
    user_id: str
    node_id: UUID
    status: str
    completed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_json")

    model_config = ConfigDict(from_attributes=True)


class UserProgressResponse(BaseModel):
    user_id: str
    progress: List[ProgressResponse]
    is_complete: bool


class ContractSignRequest(BaseModel):
    """Body of POST /orgs/{org_id}/onboarding/contract"""
    node_id: UUID = Field(..., alias="nodeId")
    signed_name: RequiredText
    signature_data_url: str
    contract_sha256: Optional[str] = None
    terms_version: Optional[str] = None
    privacy_version: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ContractSignatureResponse(BaseModel):
    id: UUID
    node_id: UUID
    user_id: str
    signed_name: str
    signature_image_url: str
    contract_sha256: Optional[str] = None
    terms_version: Optional[str] = None
    privacy_version: Optional[str] = None
    signed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NodeCreate(BaseModel):
    type: NodeType
    title: RequiredText
    required: bool = True
    config: Dict[str, Any] = Field(default_factory=dict)


class NodeResponse(BaseModel):
    id: UUID
    flow_id: UUID
    type: str
    title: str
    required: bool
    order_index: int
    config: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class FlowResponse(BaseModel):
    id: UUID
    name: str
    status: str
    published_at: Optional[datetime] = None
    nodes: List[NodeResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class FlowPublishRequest(BaseModel):
    name: OptionalText = None


class MemberOnboardingStatus(BaseModel):
    user_id: str
    role: str
    completed_nodes: int
    required_nodes: int
    is_complete: bool
