from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: str
    lead_id: str | None = None
    customer_name: str | None = None
    mobile: str | None = None
    email: str | None = None
    applicant2_name: str | None = None
    applicant2_mobile: str | None = None
    applicant2_email: str | None = None
    lead_type: str | None = None
    sub_type: str | None = None
    loan_type: str
    requirement_amount: Decimal | None = None
    amount: Decimal | None = None
    disbursed_amount: Decimal | None = None
    bank: str | None = None
    branch: str | None = None
    channel_partner: str | None = None
    status: str
    task: str | None = None
    permanent_address: str | None = None
    current_address: str | None = None
    site_address: str | None = None
    office_address: str | None = None
    pan: str | None = None
    aadhar: str | None = None
    notes: str | None = None
    customer_id: UUID | None = None
    assigned_to_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CaseUpdate(BaseModel):
    customer_name: str | None = None
    mobile: str | None = None
    email: str | None = None
    applicant2_name: str | None = None
    applicant2_mobile: str | None = None
    applicant2_email: str | None = None
    loan_type: str | None = None
    requirement_amount: Decimal | None = None
    amount: Decimal | None = None
    disbursed_amount: Decimal | None = None
    bank: str | None = None
    branch: str | None = None
    channel_partner: str | None = None
    status: str | None = None
    task: str | None = None
    permanent_address: str | None = None
    current_address: str | None = None
    site_address: str | None = None
    office_address: str | None = None
    pan: str | None = None
    aadhar: str | None = None
    notes: str | None = None
    assigned_to_id: UUID | None = None


class CaseComment(BaseModel):
    comment: str = Field(min_length=1, max_length=4000)


class CaseAuditOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    actor_id: UUID | None = None
    action: str
    from_status: str | None = None
    to_status: str | None = None
    comment: str | None = None
    created_at: datetime | None = None
