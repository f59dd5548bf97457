"""
Activity log model for audit trail.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base


class ActivityLog(Base):
    """Activity log model for tracking user actions such as reviews."""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action_type = Column(String(50), nullable=False, index=True)  # e.g. "review", "delete"
    target_type = Column(String(50), nullable=True, index=True)  # e.g. "audit", "audit_form"
    target_id = Column(Integer, nullable=True, index=True)

    details = Column(JSON, nullable=True)

    user = relationship("User")
