"""Schemas for audit listings and the status workflow."""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.history import AuditHistoryPage


class AuditCreateRequest(BaseModel):
    """Body of POST /audits."""
    outlet_id: int = Field(..., description="Outlet being audited")
    compliance_id: int = Field(..., description="Compliance requirement checked")


class AuditStatusUpdateRequest(BaseModel):
    """Body of PUT /audits/{id}/status."""
    status_id: Optional[int] = Field(None, description="Target status id")


class AuditStatusUpdateResponse(BaseModel):
    success: bool = True
    message: str
    new_audit_id: Optional[int] = None


class AuditSummary(BaseModel):
    """Audit row in current-state listings."""
    id: int
    outlet_id: int
    outlet_name: Optional[str] = None
    user_name: Optional[str] = None
    audit_type: Optional[str] = None
    status_id: int
    status: Optional[str] = None
    progress: int = 0
    start_time: datetime
    end_time: Optional[datetime] = None
    due_date: Optional[date] = None
    created_at: Optional[datetime] = None
    form_count: int = 0
    is_versioned: bool = False
    version_number: int = 1
    first_audit_id: int


class AuditDetailResponse(AuditSummary):
    notes: Optional[str] = None
    is_latest_version: bool = True


class AuditCreateResponse(BaseModel):
    success: bool = True
    message: str
    audit: AuditDetailResponse


class DateFilterOption(BaseModel):
    value: str
    label: str


class AuditListPage(BaseModel):
    items: List[AuditSummary]
    total: int
    page: int
    per_page: int
    pages: int


class AdminAuditListResponse(BaseModel):
    """Admin dashboard: current audits, version history and filter options."""
    audits: AuditListPage
    history: AuditHistoryPage
    date_filter: str
    status_filter: str
    date_filters: List[DateFilterOption]
    status_filters: List[str]


class RejectedFormsCheckResponse(BaseModel):
    hasRejectedForms: bool


class MessageResponse(BaseModel):
    success: bool = True
    message: str
