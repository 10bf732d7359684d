from sqlalchemy import Column, Integer, String

from crm.db.base import Base


class Counter(Base):
    """Named monotonically increasing sequences (e.g. human-readable lead ids)."""

    __tablename__ = "counters"

    name = Column(String(64), primary_key=True)
    seq = Column(Integer, nullable=False, default=0, server_default="0")
