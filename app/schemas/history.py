"""Schemas for the audit version history."""
from datetime import date, datetime
from typing import List, Dict, Any, Optional

from pydantic import BaseModel


class HistoryCorrectiveAction(BaseModel):
    id: int
    description: str
    completion_date: Optional[date] = None
    verification_date: Optional[date] = None
    status_id: Optional[int] = None


class HistoryIssue(BaseModel):
    id: int
    audit_form_id: int
    description: str
    severity: str
    due_date: Optional[date] = None
    status: Optional[str] = None
    corrective_actions: List[HistoryCorrectiveAction] = []


class HistoryForm(BaseModel):
    id: int
    form_id: int
    name: str
    status: Optional[str] = None
    structure: Any = None
    value: Any = None
    fields: List[Dict[str, Any]] = []


class HistoryVersion(BaseModel):
    """One audit inside a version chain."""
    audit_id: int
    audit_version: int
    status_id: Optional[int] = None
    status: Optional[str] = None
    outlet_name: Optional[str] = None
    audit_type: Optional[str] = None
    submitted_by: Optional[str] = None
    submitted_at: Optional[datetime] = None
    last_action_at: Optional[datetime] = None
    reviewer: Optional[str] = None
    rejection_reason: Optional[str] = None
    issues: List[HistoryIssue] = []
    forms: List[HistoryForm] = []


class AuditChain(BaseModel):
    first_audit_id: int
    num_versions: int
    is_standalone: bool = False
    outlet_name: Optional[str] = None
    audit_type: Optional[str] = None
    initiated_by: Optional[str] = None
    initiated_at: Optional[datetime] = None
    current_audit_id: int
    current_status: Optional[str] = None
    last_action_date: Optional[datetime] = None
    versions: List[HistoryVersion]


class AuditHistoryPage(BaseModel):
    items: List[AuditChain]
    total: int
    page: int
    per_page: int
    pages: int
