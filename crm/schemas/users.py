from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from crm.core.permissions import Role


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: EmailStr
    role: str
    is_active: bool
    created_at: datetime | None = None


class UserCreate(BaseModel):
    """Body for ``POST /users``; ``otp``/``purpose`` are consumed by the owner approval check."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=1)
    role: Role = Role.VIEWER
    otp: str | None = None
    purpose: str | None = None
