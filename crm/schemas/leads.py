from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from crm.schemas.common import LeadStatus


class LeadBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    mobile: str = Field(min_length=1, max_length=32)
    email: str | None = None
    dob: date | None = None
    source: str | None = None
    lead_type: str = "Loan"
    sub_type: str | None = None
    gd_status: str = "Pending"
    bank: str | None = None
    branch: str | None = None
    channel_partner: str | None = None
    requirement_amount: Decimal | None = None
    sanctioned_amount: Decimal | None = None
    permanent_address: str | None = None
    current_address: str | None = None
    site_address: str | None = None
    office_address: str | None = None
    pan: str | None = None
    aadhar: str | None = None
    notes: str | None = None


class LeadCreate(LeadBase):
    status: LeadStatus = LeadStatus.FREE_POOL
    assigned_to_id: UUID | None = None


class LeadUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    mobile: str | None = Field(default=None, min_length=1, max_length=32)
    email: str | None = None
    dob: date | None = None
    source: str | None = None
    lead_type: str | None = None
    sub_type: str | None = None
    gd_status: str | None = None
    bank: str | None = None
    branch: str | None = None
    channel_partner: str | None = None
    requirement_amount: Decimal | None = None
    sanctioned_amount: Decimal | None = None
    workflow_status: str | None = None
    status: LeadStatus | None = None
    assigned_to_id: UUID | None = None
    permanent_address: str | None = None
    current_address: str | None = None
    site_address: str | None = None
    office_address: str | None = None
    pan: str | None = None
    aadhar: str | None = None
    notes: str | None = None


class LeadOut(LeadBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lead_id: str
    status: str
    workflow_status: str | None = None
    assigned_to_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
