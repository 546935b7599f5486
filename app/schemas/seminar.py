"""
Seminar Request/Response Models
Seminars and their dated sessions
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date, time, datetime
from uuid import UUID

SeminarStatus = Literal["draft", "active", "completed", "archived"]


class SessionInput(BaseModel):
    """Session supplied inline when creating a seminar"""
    session_number: Optional[int] = Field(None, ge=1, description="Defaults to the position in the list")
    session_date: date
    session_time_start: Optional[time] = None
    session_time_end: Optional[time] = None
    topic: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)


class CreateSessionRequest(BaseModel):
    """Request to add a session to a seminar"""
    session_number: int = Field(..., ge=1, description="1-based position within the seminar")
    session_date: date
    session_time_start: Optional[time] = None
    session_time_end: Optional[time] = None
    topic: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)

    class Config:
        example = {
            "session_number": 1,
            "session_date": "2026-01-15",
            "session_time_start": "18:00",
            "session_time_end": "20:00",
            "topic": "Ethics in Practice"
        }


class UpdateSessionRequest(BaseModel):
    """Request to edit a session; only supplied fields change"""
    session_number: Optional[int] = Field(None, ge=1)
    session_date: Optional[date] = None
    session_time_start: Optional[time] = None
    session_time_end: Optional[time] = None
    topic: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)


class SessionResponse(BaseModel):
    """Session details"""
    id: UUID
    seminar_id: UUID
    session_number: int
    session_date: date
    session_time_start: Optional[time] = None
    session_time_end: Optional[time] = None
    topic: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = None
    created_at: Optional[datetime] = None
    attendance_count: Optional[int] = None

    class Config:
        from_attributes = True


class CreateSeminarRequest(BaseModel):
    """Request to create a seminar"""
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255, description="Derived from the title when omitted")
    year: int = Field(..., ge=2000, le=2100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=0)
    venue: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    total_sessions: Optional[int] = Field(None, ge=1)
    credits_per_session: Optional[float] = Field(None, ge=0)
    total_credits: Optional[float] = Field(None, ge=0)
    status: SeminarStatus = "draft"
    sessions: List[SessionInput] = Field(default_factory=list)


class UpdateSeminarRequest(BaseModel):
    """Request to edit a seminar"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    year: Optional[int] = Field(None, ge=2000, le=2100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=0)
    venue: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None
    total_sessions: Optional[int] = Field(None, ge=1)
    credits_per_session: Optional[float] = Field(None, ge=0)
    total_credits: Optional[float] = Field(None, ge=0)
    status: Optional[SeminarStatus] = None


class SeminarResponse(BaseModel):
    """Seminar details"""
    id: UUID
    title: str
    slug: str
    year: int
    description: Optional[str] = None
    price: Optional[float] = None
    capacity: Optional[int] = None
    venue: Optional[str] = None
    address: Optional[str] = None
    total_sessions: int
    credits_per_session: float
    total_credits: float
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sessions_count: Optional[int] = None
    registrations_count: Optional[int] = None

    class Config:
        from_attributes = True


class SeminarDetailResponse(SeminarResponse):
    """Seminar with its session catalog"""
    sessions: List[SessionResponse] = []


class SeminarStatsResponse(BaseModel):
    """Registration, attendance and makeup figures for one seminar"""
    seminar_id: UUID
    registrations: dict
    total_registrations: int
    attendance_count: int
    makeup_attendance_count: int
    credits_awarded: float
    makeup_requests: dict
