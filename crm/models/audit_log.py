import uuid

from sqlalchemy import JSON, Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from crm.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    actor_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    action = Column(String(255), nullable=False, index=True)
    entity_type = Column(String(255), nullable=False, default="", server_default="")
    entity_id = Column(String(255), nullable=False, default="", server_default="")
    meta = Column(JSON, nullable=True)
    ip = Column(String(64), nullable=False, default="", server_default="")
    user_agent = Column(String(512), nullable=False, default="", server_default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
