"""
Pydantic schemas for request/response validation
"""

from app.schemas.seminar import (
    CreateSeminarRequest,
    UpdateSeminarRequest,
    SeminarResponse,
    SeminarDetailResponse,
    SessionResponse
)
from app.schemas.registration import (
    RegisterRequest,
    RegistrationResponse,
    CheckInRequest,
    CheckInResponse
)
from app.schemas.makeup import MakeupSubmitRequest, MakeupActionRequest, MakeupResponse
from app.schemas.certificate import CertificateResponse, IssueResultResponse

__all__ = [
    "CreateSeminarRequest",
    "UpdateSeminarRequest",
    "SeminarResponse",
    "SeminarDetailResponse",
    "SessionResponse",
    "RegisterRequest",
    "RegistrationResponse",
    "CheckInRequest",
    "CheckInResponse",
    "MakeupSubmitRequest",
    "MakeupActionRequest",
    "MakeupResponse",
    "CertificateResponse",
    "IssueResultResponse",
]
