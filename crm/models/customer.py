import uuid

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from crm.db.base import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(String(32), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    dob = Column(Date, nullable=True)
    mobile = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    channel_partner = Column(String(255), nullable=True)
    bank_name = Column(String(255), nullable=True, index=True)
    branch = Column(String(255), nullable=True)
    status = Column(String(16), nullable=False, default="open", server_default="open", index=True)
    pan = Column(String(20), nullable=True)
    aadhar = Column(String(20), nullable=True)
    address = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    disbursements = relationship(
        "Disbursement",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="Disbursement.date",
    )


class Disbursement(Base):
    __tablename__ = "disbursements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    date = Column(Date, nullable=False)
    notes = Column(Text, nullable=False, default="", server_default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = relationship("Customer", back_populates="disbursements")
