"""
Audit log of pushes to the digital signage provider
"""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from wasteless.database import Base


class SignageEvent(Base):
    __tablename__ = "signage_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String, nullable=False)      # bulk-update
    payload = Column(Text, nullable=True)            # JSON
    response_status = Column(Integer, nullable=True)  # 0 = no response
    response_body = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
