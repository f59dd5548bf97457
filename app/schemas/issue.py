"""Schemas for issues and corrective actions."""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CorrectiveActionResponse(BaseModel):
    id: int
    description: str
    completion_date: Optional[date] = None
    verification_date: Optional[date] = None
    issue_id: int
    status_id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class IssueResponse(BaseModel):
    id: int
    description: str
    severity: str
    due_date: Optional[date] = None
    audit_form_id: int
    status_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class IssueWithActionsResponse(IssueResponse):
    corrective_actions: List[CorrectiveActionResponse] = []


class IssueUpdateRequest(BaseModel):
    description: str = Field(..., min_length=1)
    severity: str
    due_date: date
