"""
Makeup Request Request/Response Models
"""

from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import date, datetime
from uuid import UUID


class MakeupSubmitRequest(BaseModel):
    """Request to make up a missed session"""
    registration_id: UUID
    missed_session_id: UUID
    requested_session_id: Optional[UUID] = None
    reason: Optional[str] = Field(None, max_length=2000)


class MakeupActionRequest(BaseModel):
    """Review action on a makeup request"""
    action: Literal["approve", "deny", "complete", "cancel", "expire", "update"]
    notes: Optional[str] = None
    denial_reason: Optional[str] = None
    requested_session_id: Optional[UUID] = None

    class Config:
        example = {
            "action": "deny",
            "denial_reason": "Request received after the makeup deadline"
        }


class MakeupResponse(BaseModel):
    """Makeup request with session summaries"""
    id: UUID
    registration_id: UUID
    user_id: UUID
    seminar_id: UUID
    missed_session_id: UUID
    requested_session_id: Optional[UUID] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    status: str
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    denial_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    missed_session_number: Optional[int] = None
    missed_session_date: Optional[date] = None
    missed_session_topic: Optional[str] = None
    requested_session_number: Optional[int] = None
    requested_session_date: Optional[date] = None
    requested_session_topic: Optional[str] = None
    user_email: Optional[str] = None
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None
    seminar_title: Optional[str] = None

    class Config:
        from_attributes = True
