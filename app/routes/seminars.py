"""
Seminar Routes
Public seminar listings and the signed-in attendee's registrations, makeups and credits
"""

from typing import List
from fastapi import APIRouter, Depends, status
import structlog
from app.auth import get_current_user
from app.exceptions import NotFound
from app.database import as_date
from app.services.seminar_service import seminar_service
from app.services.registration_service import registration_service
from app.services.makeup_service import makeup_service
from app.services.credit_service import credit_service
from app.services.certificate_service import certificate_service
from app.services.email_service import email_service
from app.schemas.seminar import SeminarResponse, SeminarDetailResponse, SessionResponse
from app.schemas.registration import RegisterRequest, RegistrationResponse
from app.schemas.makeup import MakeupSubmitRequest, MakeupResponse
from app.schemas.credit import CreditSummaryResponse
from app.schemas.certificate import CertificateResponse

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _own_registration(registration_id: str, current_user: dict) -> dict:
    """A user only sees their own registrations"""
    registration = await registration_service.get_registration(registration_id)
    if str(registration["user_id"]) != current_user["user_id"]:
        raise NotFound("Registration", str(registration_id))
    return registration


@router.get("", response_model=List[SeminarResponse])
async def list_open_seminars():
    """List seminars open for registration"""
    return await seminar_service.list_seminars(status="active")


@router.get("/me/registrations", response_model=List[RegistrationResponse])
async def my_registrations(current_user: dict = Depends(get_current_user)):
    """Registrations of the signed-in user"""
    return await registration_service.list_user_registrations(current_user["user_id"])


@router.get("/me/makeup-requests", response_model=List[MakeupResponse])
async def my_makeup_requests(current_user: dict = Depends(get_current_user)):
    return await makeup_service.list_requests(user_id=current_user["user_id"])


@router.get("/me/credits", response_model=CreditSummaryResponse)
async def my_credits(current_user: dict = Depends(get_current_user)):
    """Net CE credits and the ledger behind them"""
    user_id = current_user["user_id"]
    return {
        "user_id": user_id,
        "total_credits": await credit_service.get_total_credits(user_id),
        "entries": await credit_service.get_ledger(user_id),
    }


@router.get("/me/certificates", response_model=List[CertificateResponse])
async def my_certificates(current_user: dict = Depends(get_current_user)):
    return await certificate_service.list_user_certificates(current_user["user_id"])


@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_for_seminar(
    request: RegisterRequest,
    current_user: dict = Depends(get_current_user)
):
    """
    Register the signed-in user for a seminar

    - **seminar_id**: Active seminar to join
    - **order_id**: Payment order reference, if any
    """
    registration = await registration_service.register(
        current_user["user_id"],
        str(request.seminar_id),
        order_id=request.order_id,
    )
    seminar = await seminar_service.get_seminar(str(request.seminar_id))

    result = await email_service.send(
        "registration_confirmation",
        current_user["email"],
        {
            "first_name": current_user["first_name"],
            "seminar_title": seminar["title"],
            "total_sessions": seminar["total_sessions"],
            "start_session_date": as_date(registration["start_session_date"]),
            "qr_code": registration["qr_code"],
        },
    )
    if not result.success:
        logger.warning("registration_email_failed", registration_id=str(registration["id"]), error=result.error)

    return registration


@router.get("/registrations/{registration_id}/missed-sessions", response_model=List[SessionResponse])
async def my_missed_sessions(
    registration_id: str,
    current_user: dict = Depends(get_current_user)
):
    """Past sessions without attendance, most recent first"""
    await _own_registration(registration_id, current_user)
    return await registration_service.list_missed_sessions(registration_id)


@router.post("/makeup-requests", response_model=MakeupResponse, status_code=status.HTTP_201_CREATED)
async def submit_makeup_request(
    request: MakeupSubmitRequest,
    current_user: dict = Depends(get_current_user)
):
    """
    Request a makeup for a missed session

    Only one pending or approved request may exist per registration.
    """
    await _own_registration(str(request.registration_id), current_user)
    return await makeup_service.submit(
        str(request.registration_id),
        str(request.missed_session_id),
        requested_session_id=str(request.requested_session_id) if request.requested_session_id else None,
        reason=request.reason,
    )


@router.get("/{slug}", response_model=SeminarDetailResponse)
async def get_seminar_detail(slug: str):
    """Seminar with its session schedule"""
    seminar = await seminar_service.get_seminar_by_slug(slug)
    seminar["sessions"] = await seminar_service.list_sessions(str(seminar["id"]))
    return seminar
