"""Pydantic schemas for the Reports API"""

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..schemas import RequiredText


class KpiData(BaseModel):
    """Manually entered KPI values for a ``kpi`` tier report."""
    leads: int = Field(..., ge=0)
    spend: float = Field(0, ge=0)
    revenue: float = Field(0, ge=0)
    conversions: int = Field(0, ge=0)
    website_traffic: int = Field(0, ge=0, alias="websiteTraffic")

    model_config = ConfigDict(populate_by_name=True)


class ReportGenerateRequest(BaseModel):
    """Body of POST /orgs/{org_id}/reports/generate"""
    tier: Literal["auto", "kpi"]
    period_start: date = Field(..., alias="periodStart")
    period_end: date = Field(..., alias="periodEnd")
    kpi_data: Optional[KpiData] = Field(None, alias="kpiData")
    title: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_period(self):
        if self.period_end < self.period_start:
            raise ValueError("periodEnd must not be before periodStart")
        return self


class ReportBlockResponse(BaseModel):
    id: UUID
    block_type: str
    title: str
    content: str
    order_index: int

    model_config = ConfigDict(from_attributes=True)


class ReportResponse(BaseModel):
    id: UUID
    org_id: UUID
    title: str
    tier: str
    period_start: date
    period_end: date
    status: str
    client_visible: bool
    created_by: str
    published_at: Optional[datetime] = None
    created_at: datetime
    blocks: List[ReportBlockResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ReportBlockUpdate(BaseModel):
    """Body of PATCH /orgs/{org_id}/reports/{report_id}/blocks/{block_id}"""
    content: RequiredText
    title: Optional[RequiredText] = None
