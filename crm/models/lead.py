import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from crm.db.base import Base


class Lead(Base):
    __tablename__ = "leads"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    lead_id = Column(String(32), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    mobile = Column(String(32), nullable=False)
    email = Column(String(255), nullable=True)
    dob = Column(Date, nullable=True)
    source = Column(String(100), nullable=True)
    lead_type = Column(String(100), nullable=False)
    sub_type = Column(String(100), nullable=True)
    gd_status = Column(String(32), nullable=False, default="Pending", server_default="Pending")
    bank = Column(String(255), nullable=True)
    branch = Column(String(255), nullable=True)
    channel_partner = Column(String(255), nullable=True)
    requirement_amount = Column(Numeric(14, 2), nullable=True)
    sanctioned_amount = Column(Numeric(14, 2), nullable=True)
    workflow_status = Column(String(32), nullable=False, default="FreePool", server_default="FreePool")
    status = Column(String(32), nullable=False, default="free_pool", server_default="free_pool", index=True)
    assigned_to_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    permanent_address = Column(Text, nullable=True)
    current_address = Column(Text, nullable=True)
    site_address = Column(Text, nullable=True)
    office_address = Column(Text, nullable=True)
    pan = Column(String(20), nullable=True)
    aadhar = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
