"""Status lookup table shared by audits, forms, issues and corrective actions."""
from sqlalchemy import Column, Integer, String, Text

from app.core.database import Base


class Status(Base):
    """Workflow status (draft, pending, approved, rejected, revision requested, ...)."""
    __tablename__ = "status"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
