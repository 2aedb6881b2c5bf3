"""Pydantic schemas for org and workspace endpoints"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import RequiredText


class OrgResponse(BaseModel):
    id: UUID
    external_ref: Optional[str] = None
    name: str
    kind: str
    parent_org_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrgSyncRequest(BaseModel):
    """Body of POST /orgs/sync. Defaults to the caller's active org."""
    external_ref: Optional[str] = Field(None, alias="orgId")

    model_config = ConfigDict(populate_by_name=True)


class AgencySetupRequest(BaseModel):
    """Body of POST /orgs/setup. The name defaults to "<caller>'s Agency"."""
    name: Optional[RequiredText] = Field(None, max_length=200)


class OrgSyncResponse(BaseModel):
    org: OrgResponse
    role: str
    created: bool


class ClientOrgCreate(BaseModel):
    name: RequiredText = Field(..., max_length=200)


class MemberResponse(BaseModel):
    user_id: str
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WorkspaceResponse(BaseModel):
    org_id: UUID
    external_ref: Optional[str] = None
    name: str
    kind: str
    role: str
