"""Audit, audit form, join and version-chain models."""
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Date,
    Text,
    JSON,
    ForeignKey,
    PrimaryKeyConstraint,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base


class Audit(Base):
    """One compliance check for one outlet against one requirement."""
    __tablename__ = "audit"

    id = Column(Integer, primary_key=True, index=True)
    outlet_id = Column(Integer, ForeignKey("outlets.id", ondelete="CASCADE"), nullable=False, index=True)
    compliance_id = Column(Integer, ForeignKey("compliance_requirements.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    status_id = Column(Integer, ForeignKey("status.id", ondelete="RESTRICT"), nullable=False, index=True)

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(Date, nullable=True)
    progress = Column(Integer, nullable=False, default=0)  # 0-100
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    outlet = relationship("Outlet")
    user = relationship("User")
    status = relationship("Status")
    compliance_requirement = relationship("ComplianceRequirement")
    forms = relationship(
        "AuditForm",
        secondary="audit_audit_form",
        viewonly=True,
        order_by="AuditForm.id",
    )


class AuditForm(Base):
    """One filled-in instance of a form template, shared across audits via the join table."""
    __tablename__ = "audit_form"

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(Integer, ForeignKey("form_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    value = Column(JSON, nullable=True)  # Answers keyed by field id
    status_id = Column(Integer, ForeignKey("status.id", ondelete="RESTRICT"), nullable=True, index=True)
    ai_analysis = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    template = relationship("FormTemplate")
    status = relationship("Status")
    issues = relationship("Issue", order_by="Issue.id", viewonly=True)


class AuditAuditForm(Base):
    """Join row linking an audit to one of its forms."""
    __tablename__ = "audit_audit_form"

    id = Column(Integer, primary_key=True, index=True)
    audit_id = Column(Integer, ForeignKey("audit.id", ondelete="CASCADE"), nullable=False, index=True)
    audit_form_id = Column(Integer, ForeignKey("audit_form.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class AuditVersion(Base):
    """
    Version-chain row: `audit_id` is version `audit_version` of the chain
    started by `first_audit_id`.

    An audit belongs to at most one chain (unique `audit_id`), and a version
    number appears once per chain (composite primary key).
    """
    __tablename__ = "audit_version"
    __table_args__ = (
        PrimaryKeyConstraint("first_audit_id", "audit_version", name="pk_audit_version"),
        UniqueConstraint("audit_id", name="uq_audit_version_audit_id"),
    )

    audit_id = Column(Integer, ForeignKey("audit.id", ondelete="CASCADE"), nullable=False)
    first_audit_id = Column(Integer, ForeignKey("audit.id", ondelete="CASCADE"), nullable=False, index=True)
    audit_version = Column(Integer, nullable=False)

    audit = relationship("Audit", foreign_keys=[audit_id])
