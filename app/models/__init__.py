"""Database models."""
from app.models.status import Status
from app.models.user import User
from app.models.outlet import Outlet
from app.models.compliance import ComplianceRequirement, FormTemplate
from app.models.audit import Audit, AuditForm, AuditAuditForm, AuditVersion
from app.models.issue import Issue, CorrectiveAction, IssueSeverity
from app.models.activity_log import ActivityLog

__all__ = [
    "Status",
    "User",
    "Outlet",
    "ComplianceRequirement",
    "FormTemplate",
    "Audit",
    "AuditForm",
    "AuditAuditForm",
    "AuditVersion",
    "Issue",
    "CorrectiveAction",
    "IssueSeverity",
    "ActivityLog",
]
