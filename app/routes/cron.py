"""
Cron Routes
Scheduled sweeps, triggered by an external scheduler with CRON_SECRET
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
import structlog
from app.auth import verify_cron_secret
from app.services.makeup_service import makeup_service
from app.services.certificate_service import certificate_service
from app.services.reminder_service import reminder_service
from app.schemas.certificate import Period

router = APIRouter(dependencies=[Depends(verify_cron_secret)])
logger = structlog.get_logger(__name__)


@router.api_route("/makeup-expiry", methods=["GET", "POST"])
async def expire_makeup_requests():
    """Expire approved makeup requests that can no longer be attended"""
    result = await makeup_service.expire_overdue()
    return {"success": True, **result}


@router.api_route("/seminar-certificates", methods=["GET", "POST"])
async def issue_seminar_certificates(
    period: Optional[Period] = Query(None),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    dry_run: bool = Query(False)
):
    """
    Issue bi-annual certificates for every active seminar

    - **period**: first_half or second_half; defaults to the period containing today
    - **year**: Defaults to the current year
    - **dry_run**: Report eligibility without issuing anything
    """
    result = await certificate_service.run_biannual(period=period, year=year, dry_run=dry_run)
    logger.info(
        "biannual_certificates_run",
        period=result["period"],
        year=result["year"],
        dry_run=dry_run,
        generated=result["total_generated"],
    )
    return {"success": True, **result}


@router.api_route("/session-reminders", methods=["GET", "POST"])
async def send_session_reminders():
    """Email reminders for tomorrow's sessions"""
    result = await reminder_service.send_session_reminders()
    return {"success": True, **result}
