"""
Certificate Request/Response Models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
from uuid import UUID

Period = Literal["first_half", "second_half"]


class GenerateCertificatesRequest(BaseModel):
    """Issue period certificates for a seminar"""
    seminar_id: UUID
    period: Period
    year: int = Field(..., ge=2000, le=2100)
    registration_ids: Optional[List[UUID]] = None


class SendCertificatesRequest(BaseModel):
    certificate_ids: List[UUID] = Field(..., min_length=1)


class CertificateResponse(BaseModel):
    id: UUID
    certificate_code: str
    user_id: UUID
    seminar_id: Optional[UUID] = None
    period: Optional[str] = None
    year: Optional[int] = None
    sessions_attended: Optional[int] = None
    event_id: Optional[UUID] = None
    attendee_name: str
    program_title: Optional[str] = None
    ce_credits: Optional[float] = None
    pdf_url: Optional[str] = None
    generated_at: datetime
    sent_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EligibleRegistrationResponse(BaseModel):
    registration_id: UUID
    user_id: UUID
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    registration_status: str
    sessions_completed: int
    sessions_remaining: int
    credits_earned: float
    sessions_in_period: int


class EligibleListResponse(BaseModel):
    seminar_id: UUID
    period: Period
    year: int
    period_display: str
    eligible: List[EligibleRegistrationResponse]


class IssueError(BaseModel):
    registration_id: str
    error: str


class IssueSkip(BaseModel):
    registration_id: str
    reason: str


class IssueResultResponse(BaseModel):
    """Per-item outcome of a certificate batch"""
    seminar_id: UUID
    period: Period
    year: int
    period_display: str
    generated: List[CertificateResponse]
    skipped: List[IssueSkip]
    errors: List[IssueError]


class SendResultResponse(BaseModel):
    sent: List[str]
    errors: List[dict]
