"""
Registration and Attendance Request/Response Models
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from datetime import date, datetime
from uuid import UUID


class RegisterRequest(BaseModel):
    """Request to enroll the current user in a seminar"""
    seminar_id: UUID
    order_id: Optional[str] = Field(None, max_length=255, description="Payment order reference")


class RegistrationStatusRequest(BaseModel):
    """Admin hold / resume"""
    status: Literal["active", "on_hold"]


class RegistrationResponse(BaseModel):
    """Registration with progress counters"""
    id: UUID
    user_id: UUID
    seminar_id: UUID
    order_id: Optional[str] = None
    registration_date: Optional[date] = None
    start_session_date: Optional[date] = None
    sessions_completed: int
    sessions_remaining: int
    makeup_used: bool
    status: str
    qr_code: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_email: Optional[str] = None
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None
    seminar_title: Optional[str] = None

    class Config:
        from_attributes = True


class CheckInRequest(BaseModel):
    """Check a registration in to a session, by QR token or registration ID"""
    session_id: UUID
    qr_code: Optional[str] = Field(None, max_length=100)
    registration_id: Optional[UUID] = None
    is_makeup: bool = False
    credits: Optional[float] = Field(None, ge=0, description="Defaults to the seminar's credits per session")
    notes: Optional[str] = None

    @model_validator(mode="after")
    def require_registration(self):
        if not self.qr_code and not self.registration_id:
            raise ValueError("Either qr_code or registration_id is required")
        return self

    class Config:
        example = {
            "qr_code": "SEM-M1ABCD2E-1A2B3C4D",
            "session_id": "7d4a1d0e-9b0c-4d8a-a3f7-0d7e6f1d2c3b",
            "is_makeup": False
        }


class AttendanceResponse(BaseModel):
    """Attendance record"""
    id: UUID
    registration_id: UUID
    session_id: UUID
    user_id: UUID
    seminar_id: UUID
    is_makeup: bool
    credits_awarded: float
    check_in_method: str
    checked_in_at: datetime
    checked_in_by: Optional[UUID] = None
    notes: Optional[str] = None
    user_email: Optional[str] = None
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None
    session_number: Optional[int] = None
    session_date: Optional[date] = None
    topic: Optional[str] = None

    class Config:
        from_attributes = True


class CheckInResponse(AttendanceResponse):
    """Attendance plus the registration's new counters"""
    registration: RegistrationResponse


class AttendanceDeleteResponse(BaseModel):
    attendance_id: UUID
    credits_revoked: float
    registration: Optional[RegistrationResponse] = None


class RegistrationDetailResponse(RegistrationResponse):
    """Registration with its attendance history"""
    attendance: List[AttendanceResponse] = []
