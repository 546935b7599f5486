"""
Admin Routes
Endpoints for staff to manage seminars, sessions, check-ins, makeups, credits and certificates
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status
from app.auth import get_admin_user
from app.services.seminar_service import seminar_service
from app.services.registration_service import registration_service
from app.services.attendance_service import attendance_service
from app.services.makeup_service import makeup_service
from app.services.credit_service import credit_service
from app.services.certificate_service import certificate_service
from app.services.activity_log_service import ActivityLogService
from app.services.periods import period_display
from app.schemas.seminar import (
    CreateSeminarRequest, UpdateSeminarRequest, CreateSessionRequest, UpdateSessionRequest,
    SeminarResponse, SeminarDetailResponse, SeminarStatsResponse, SessionResponse
)
from app.schemas.registration import (
    RegistrationResponse, RegistrationDetailResponse, RegistrationStatusRequest,
    CheckInRequest, CheckInResponse, AttendanceResponse, AttendanceDeleteResponse
)
from app.schemas.makeup import MakeupActionRequest, MakeupResponse
from app.schemas.credit import CreditAdjustmentRequest, CreditSummaryResponse, LedgerEntryResponse
from app.schemas.certificate import (
    Period, GenerateCertificatesRequest, SendCertificatesRequest,
    EligibleListResponse, IssueResultResponse, SendResultResponse
)
from app.schemas.activity_log import ActivityLogResponse

router = APIRouter()


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# ----------------------------------------------------------------------
# Seminars
# ----------------------------------------------------------------------

@router.get("/seminars", response_model=List[SeminarResponse])
async def list_seminars(
    status_filter: Optional[str] = Query(None, alias="status"),
    year: Optional[int] = Query(None),
    current_admin: dict = Depends(get_admin_user)
):
    """List all seminars with session and registration counts"""
    return await seminar_service.list_seminars(status=status_filter, year=year)


@router.post("/seminars", response_model=SeminarDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_seminar(
    data: CreateSeminarRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    """
    Create a seminar

    - **slug**: Derived from the title when omitted
    - **total_credits**: Defaults to total_sessions x credits_per_session
    - **status**: 'active' demotes any other active seminar to completed
    - **sessions**: Optional inline session schedule
    """
    seminar = await seminar_service.create_seminar(data)
    await ActivityLogService.record(
        current_admin["user_id"], "create_seminar",
        resource_type="seminar", resource_id=seminar["id"],
        details={"title": data.title, "status": data.status}, ip_address=_client_ip(request),
    )
    return seminar


@router.get("/seminars/{seminar_id}", response_model=SeminarDetailResponse)
async def get_seminar(seminar_id: str, current_admin: dict = Depends(get_admin_user)):
    seminar = await seminar_service.get_seminar(seminar_id)
    seminar["sessions"] = await seminar_service.list_sessions(seminar_id)
    return seminar


@router.patch("/seminars/{seminar_id}", response_model=SeminarResponse)
async def update_seminar(
    seminar_id: str,
    data: UpdateSeminarRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    seminar = await seminar_service.update_seminar(seminar_id, data)
    await ActivityLogService.record(
        current_admin["user_id"], "update_seminar",
        resource_type="seminar", resource_id=seminar_id,
        details=data.model_dump(exclude_unset=True), ip_address=_client_ip(request),
    )
    return seminar


@router.get("/seminars/{seminar_id}/stats", response_model=SeminarStatsResponse)
async def get_seminar_stats(seminar_id: str, current_admin: dict = Depends(get_admin_user)):
    return await seminar_service.get_seminar_stats(seminar_id)


# ----------------------------------------------------------------------
# Sessions
# ----------------------------------------------------------------------

@router.get("/seminars/{seminar_id}/sessions", response_model=List[SessionResponse])
async def list_sessions(seminar_id: str, current_admin: dict = Depends(get_admin_user)):
    await seminar_service.get_seminar(seminar_id)
    return await seminar_service.list_sessions(seminar_id)


@router.post("/seminars/{seminar_id}/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    seminar_id: str,
    data: CreateSessionRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    session = await seminar_service.create_session(seminar_id, data)
    await ActivityLogService.record(
        current_admin["user_id"], "create_session",
        resource_type="session", resource_id=session["id"],
        details={"seminar_id": seminar_id, "session_number": data.session_number},
        ip_address=_client_ip(request),
    )
    return session


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, current_admin: dict = Depends(get_admin_user)):
    return await seminar_service.get_session(session_id)


@router.patch("/sessions/{session_id}", response_model=SessionResponse)
async def update_session(
    session_id: str,
    data: UpdateSessionRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    session = await seminar_service.update_session(session_id, data)
    await ActivityLogService.record(
        current_admin["user_id"], "update_session",
        resource_type="session", resource_id=session_id,
        details=data.model_dump(exclude_unset=True), ip_address=_client_ip(request),
    )
    return session


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    """Delete a session; refused while attendance references it"""
    await seminar_service.delete_session(session_id)
    await ActivityLogService.record(
        current_admin["user_id"], "delete_session",
        resource_type="session", resource_id=session_id, ip_address=_client_ip(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/sessions/{session_id}/attendance", response_model=List[AttendanceResponse])
async def list_session_attendance(session_id: str, current_admin: dict = Depends(get_admin_user)):
    await seminar_service.get_session(session_id)
    return await attendance_service.list_session_attendance(session_id)


# ----------------------------------------------------------------------
# Registrations and attendance
# ----------------------------------------------------------------------

@router.get("/seminars/{seminar_id}/registrations", response_model=List[RegistrationResponse])
async def list_registrations(
    seminar_id: str,
    status_filter: Optional[str] = Query(None, alias="status"),
    current_admin: dict = Depends(get_admin_user)
):
    return await registration_service.list_registrations(seminar_id, status=status_filter)


@router.get("/registrations/{registration_id}", response_model=RegistrationDetailResponse)
async def get_registration(registration_id: str, current_admin: dict = Depends(get_admin_user)):
    registration = await registration_service.get_registration(registration_id)
    registration["attendance"] = await attendance_service.list_registration_attendance(registration_id)
    return registration


@router.post("/registrations/{registration_id}/cancel", response_model=RegistrationResponse)
async def cancel_registration(
    registration_id: str,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    registration = await registration_service.cancel(registration_id)
    await ActivityLogService.record(
        current_admin["user_id"], "cancel_registration",
        resource_type="registration", resource_id=registration_id, ip_address=_client_ip(request),
    )
    return registration


@router.patch("/registrations/{registration_id}/status", response_model=RegistrationResponse)
async def set_registration_status(
    registration_id: str,
    data: RegistrationStatusRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    registration = await registration_service.set_status(registration_id, data.status)
    await ActivityLogService.record(
        current_admin["user_id"], "set_registration_status",
        resource_type="registration", resource_id=registration_id,
        details={"status": data.status}, ip_address=_client_ip(request),
    )
    return registration


@router.post("/check-in", response_model=CheckInResponse, status_code=status.HTTP_201_CREATED)
async def check_in(
    data: CheckInRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    """
    Check an attendee in to a session

    - **qr_code** or **registration_id**: Who is checking in
    - **session_id**: Session attended
    - **is_makeup**: Attendance satisfies the approved makeup request
    """
    if data.qr_code:
        attendance = await attendance_service.check_in_by_qr(
            data.qr_code,
            str(data.session_id),
            is_makeup=data.is_makeup,
            checked_in_by=current_admin["user_id"],
            notes=data.notes,
        )
    else:
        attendance = await attendance_service.record_attendance(
            str(data.registration_id),
            str(data.session_id),
            method="manual",
            is_makeup=data.is_makeup,
            checked_in_by=current_admin["user_id"],
            credits=data.credits,
            notes=data.notes,
        )

    await ActivityLogService.record(
        current_admin["user_id"], "record_attendance",
        resource_type="attendance", resource_id=attendance["id"],
        details={
            "registration_id": str(attendance["registration_id"]),
            "session_id": str(data.session_id),
            "is_makeup": data.is_makeup,
        },
        ip_address=_client_ip(request),
    )
    return attendance


@router.delete("/attendance/{attendance_id}", response_model=AttendanceDeleteResponse)
async def delete_attendance(
    attendance_id: str,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    """Remove a check-in; credits are revoked and the session is given back"""
    result = await attendance_service.delete_attendance(attendance_id, revoked_by=current_admin["user_id"])
    await ActivityLogService.record(
        current_admin["user_id"], "delete_attendance",
        resource_type="attendance", resource_id=attendance_id,
        details={"credits_revoked": result["credits_revoked"]}, ip_address=_client_ip(request),
    )
    return result


# ----------------------------------------------------------------------
# Makeup requests
# ----------------------------------------------------------------------

@router.get("/makeup-requests", response_model=List[MakeupResponse])
async def list_makeup_requests(
    seminar_id: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    registration_id: Optional[str] = Query(None),
    current_admin: dict = Depends(get_admin_user)
):
    return await makeup_service.list_requests(
        seminar_id=seminar_id, status=status_filter, registration_id=registration_id
    )


@router.get("/makeup-requests/{request_id}", response_model=MakeupResponse)
async def get_makeup_request(request_id: str, current_admin: dict = Depends(get_admin_user)):
    return await makeup_service.get_request(request_id)


@router.patch("/makeup-requests/{request_id}", response_model=MakeupResponse)
async def act_on_makeup_request(
    request_id: str,
    data: MakeupActionRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    """
    Review a makeup request

    - **action**: approve, deny, complete, cancel, expire or update
    - **denial_reason**: Required for deny
    - **requested_session_id**: Set the makeup session on approve or update
    """
    updated = await makeup_service.act(
        request_id,
        data.action,
        actor_id=current_admin["user_id"],
        notes=data.notes,
        denial_reason=data.denial_reason,
        requested_session_id=str(data.requested_session_id) if data.requested_session_id else None,
    )
    await ActivityLogService.record(
        current_admin["user_id"], f"{data.action}_makeup",
        resource_type="makeup_request", resource_id=request_id,
        details={"status": updated["status"]}, ip_address=_client_ip(request),
    )
    return updated


@router.delete("/makeup-requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_makeup_request(
    request_id: str,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    await makeup_service.delete_request(request_id)
    await ActivityLogService.record(
        current_admin["user_id"], "delete_makeup",
        resource_type="makeup_request", resource_id=request_id, ip_address=_client_ip(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------------
# Certificates and credits
# ----------------------------------------------------------------------

@router.get("/certificates/eligible", response_model=EligibleListResponse)
async def list_eligible(
    seminar_id: str = Query(...),
    period: Period = Query(...),
    year: int = Query(..., ge=2000, le=2100),
    current_admin: dict = Depends(get_admin_user)
):
    """Registrations that qualify for a period certificate"""
    await seminar_service.get_seminar(seminar_id)
    return {
        "seminar_id": seminar_id,
        "period": period,
        "year": year,
        "period_display": period_display(period, year),
        "eligible": await certificate_service.get_eligible(seminar_id, period, year),
    }


@router.post("/certificates/generate", response_model=IssueResultResponse)
async def generate_certificates(
    data: GenerateCertificatesRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    """Issue period certificates; per-registration failures are listed, not raised"""
    result = await certificate_service.issue_certificates(
        str(data.seminar_id),
        data.period,
        data.year,
        registration_ids=[str(rid) for rid in data.registration_ids] if data.registration_ids is not None else None,
    )
    await ActivityLogService.record(
        current_admin["user_id"], "generate_certificates",
        resource_type="seminar", resource_id=str(data.seminar_id),
        details={
            "period": data.period,
            "year": data.year,
            "generated": len(result["generated"]),
            "errors": len(result["errors"]),
        },
        ip_address=_client_ip(request),
    )
    return result


@router.post("/certificates/send", response_model=SendResultResponse)
async def send_certificates(
    data: SendCertificatesRequest,
    current_admin: dict = Depends(get_admin_user)
):
    return await certificate_service.send_certificates([str(cid) for cid in data.certificate_ids])


@router.post("/credits/adjust", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def adjust_credits(
    data: CreditAdjustmentRequest,
    request: Request,
    current_admin: dict = Depends(get_admin_user)
):
    entry = await credit_service.adjust_credits(
        str(data.user_id),
        data.credits,
        notes=data.notes,
        seminar_id=str(data.seminar_id) if data.seminar_id else None,
        created_by=current_admin["user_id"],
    )
    await ActivityLogService.record(
        current_admin["user_id"], "adjust_credits",
        resource_type="user", resource_id=str(data.user_id),
        details={"credits": data.credits, "notes": data.notes}, ip_address=_client_ip(request),
    )
    return entry


@router.get("/users/{user_id}/credits", response_model=CreditSummaryResponse)
async def get_user_credits(user_id: str, current_admin: dict = Depends(get_admin_user)):
    return {
        "user_id": user_id,
        "total_credits": await credit_service.get_total_credits(user_id),
        "entries": await credit_service.get_ledger(user_id),
    }


@router.get("/activity-logs", response_model=ActivityLogResponse)
async def get_activity_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: Optional[str] = Query(None),
    days: int = Query(30, ge=1, le=365),
    current_admin: dict = Depends(get_admin_user)
):
    logs, total = await ActivityLogService.get_activity_logs(
        limit=limit, offset=offset, action_filter=action, days=days
    )
    return {
        "logs": logs,
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + len(logs) < total,
    }
