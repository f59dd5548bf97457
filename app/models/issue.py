"""Issue and corrective action models."""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base


class IssueSeverity(str, enum.Enum):
    """Issue severity levels."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Issue(Base):
    """Deficiency raised against a rejected audit form."""
    __tablename__ = "issue"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(Text, nullable=False)
    severity = Column(String(20), nullable=False)
    due_date = Column(Date, nullable=True)
    audit_form_id = Column(Integer, ForeignKey("audit_form.id", ondelete="CASCADE"), nullable=False, index=True)
    status_id = Column(Integer, ForeignKey("status.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    status = relationship("Status")
    corrective_actions = relationship(
        "CorrectiveAction",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="CorrectiveAction.id",
    )


class CorrectiveAction(Base):
    """Remediation attached to an issue."""
    __tablename__ = "corrective_actions"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(Text, nullable=False)
    completion_date = Column(Date, nullable=True)
    verification_date = Column(Date, nullable=True)
    issue_id = Column(Integer, ForeignKey("issue.id", ondelete="CASCADE"), nullable=False, index=True)
    status_id = Column(Integer, ForeignKey("status.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    issue = relationship("Issue", back_populates="corrective_actions")
    status = relationship("Status")
