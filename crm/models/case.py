import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from crm.db.base import Base


class Case(Base):
    __tablename__ = "cases"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(String(32), nullable=False, unique=True, index=True)
    lead_id = Column(String(32), nullable=True, index=True)

    customer_name = Column(String(255), nullable=True)
    mobile = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    applicant2_name = Column(String(255), nullable=True)
    applicant2_mobile = Column(String(32), nullable=True)
    applicant2_email = Column(String(255), nullable=True)

    lead_type = Column(String(100), nullable=True)
    sub_type = Column(String(100), nullable=True)
    loan_type = Column(String(64), nullable=False, default="Home Loan", server_default="Home Loan")
    requirement_amount = Column(Numeric(14, 2), nullable=True)
    amount = Column(Numeric(14, 2), nullable=True)
    disbursed_amount = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    bank = Column(String(255), nullable=True)
    branch = Column(String(255), nullable=True)
    channel_partner = Column(String(255), nullable=True)
    status = Column(String(64), nullable=False, default="", server_default="")
    task = Column(String(64), nullable=True, index=True)

    permanent_address = Column(Text, nullable=True)
    current_address = Column(Text, nullable=True)
    site_address = Column(Text, nullable=True)
    office_address = Column(Text, nullable=True)
    pan = Column(String(20), nullable=True)
    aadhar = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)

    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    assigned_to_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
