from __future__ import annotations

from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DisbursementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    amount: Decimal
    date: date_type
    notes: str = ""
    created_at: datetime | None = None


class DisbursementCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    date: date_type
    notes: str = ""


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: str
    name: str
    dob: date_type | None = None
    mobile: str | None = None
    email: str | None = None
    channel_partner: str | None = None
    bank_name: str | None = None
    branch: str | None = None
    status: str
    pan: str | None = None
    aadhar: str | None = None
    address: dict[str, Any] | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CustomerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    dob: date_type | None = None
    mobile: str | None = None
    email: str | None = None
    channel_partner: str | None = None
    bank_name: str | None = None
    branch: str | None = None
    status: Literal["open", "close"] | None = None
    pan: str | None = None
    aadhar: str | None = None
    address: dict[str, Any] | None = None
    notes: str | None = None
