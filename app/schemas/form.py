"""Schemas for audit forms."""
from datetime import date, datetime
from typing import List, Dict, Any, Optional

from pydantic import BaseModel, Field

from app.schemas.issue import IssueResponse


class AuditFormSummary(BaseModel):
    """Form row in an audit's form list."""
    id: int
    form_id: int
    name: str
    status_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuditFormDetail(BaseModel):
    id: int
    form_id: int
    name: str
    status_id: Optional[int] = None
    status: Optional[str] = None
    structure: Any = None
    value: Any = None
    fields: List[Dict[str, Any]] = []
    ai_analysis: Optional[Dict[str, Any]] = None
    audit_id: Optional[int] = None
    outlet_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class IssueInput(BaseModel):
    """Issue raised when a form is rejected."""
    description: str = Field(..., min_length=1)
    severity: str = Field(..., description="Low, Medium, High or Critical")
    due_date: date


class FormStatusUpdateRequest(BaseModel):
    status_id: Optional[int] = None
    issue: Optional[IssueInput] = None


class FormStatusUpdateResponse(BaseModel):
    success: bool = True
    message: str
    form: AuditFormSummary
    issue: Optional[IssueResponse] = None


class FormAnalysisResponse(BaseModel):
    success: bool = True
    analysis: Dict[str, Any]
    cached: bool = False
