"""
Certificate Service
Bi-annual seminar eligibility, certificate issuance, PDFs and delivery
"""

import secrets
from datetime import date
from typing import List, Optional
from uuid import uuid4

import structlog

from app.config import settings
from app.database import database, utcnow, as_datetime
from app.exceptions import NotFound, ServiceError, ValidationError
from app.services import certificate_renderer
from app.services.email_service import EmailService
from app.services.periods import (
    PERIOD_CODES, period_bounds, period_display, period_for_date, validate_period
)
from app.services.seminar_service import SeminarService
from app.services.storage_service import StorageService

logger = structlog.get_logger(__name__)


def generate_certificate_code(period: Optional[str] = None, year: Optional[int] = None) -> str:
    """CE-SEM-2026-H1-XXXXXXXX for seminar periods, CE-CRS-XXXXXXXX for courses"""
    token = secrets.token_hex(4).upper()
    prefix = settings.CERTIFICATE_CODE_PREFIX
    if period:
        return f"{prefix}-SEM-{year}-{PERIOD_CODES[period]}-{token}"
    return f"{prefix}-CRS-{token}"


def attendee_display_name(first_name: Optional[str], last_name: Optional[str], email: Optional[str] = None) -> str:
    name = f"{first_name or ''} {last_name or ''}".strip()
    return name or email or "Unknown"


class CertificateService:
    """Service for CE certificate operations"""

    @staticmethod
    async def get_eligible(seminar_id: str, period: str, year: int) -> List[dict]:
        """
        Registrations that earned a certificate for a half-year period

        Credits are the earned ledger entries awarded inside the window for
        check-ins that still stand; an entry whose attendance was deleted has
        been revoked and drops out, whenever the revocation was written.
        Sessions are check-ins inside the window. At least
        MIN_SESSIONS_FOR_CERTIFICATE sessions are required. An empty list is
        a normal result.
        """
        validate_period(period)
        start, end = period_bounds(period, year)

        rows = await database.fetch_all(
            """
            SELECT
                r.id AS registration_id,
                r.user_id,
                r.status AS registration_status,
                r.sessions_completed,
                r.sessions_remaining,
                u.id AS found_user_id,
                u.email,
                u.first_name,
                u.last_name,
                (
                    SELECT COALESCE(SUM(l.credits), 0)
                    FROM ce_ledger l
                    WHERE l.user_id = r.user_id
                      AND l.seminar_id = r.seminar_id
                      AND l.transaction_type = 'earned'
                      AND l.awarded_at >= :start
                      AND l.awarded_at < :end
                      AND EXISTS (
                          SELECT 1 FROM seminar_attendance a
                          WHERE a.registration_id = r.id
                            AND a.session_id = l.session_id
                            AND a.checked_in_at = l.awarded_at
                      )
                ) AS credits_earned,
                (
                    SELECT COUNT(*)
                    FROM seminar_attendance a
                    WHERE a.registration_id = r.id
                      AND a.checked_in_at >= :start
                      AND a.checked_in_at < :end
                ) AS sessions_in_period
            FROM seminar_registrations r
            LEFT JOIN users u ON u.id = r.user_id
            WHERE r.seminar_id = :seminar_id AND r.status != 'cancelled'
            ORDER BY u.last_name, u.first_name
            """,
            {"seminar_id": str(seminar_id), "start": start, "end": end}
        )

        eligible = []
        for row in rows:
            item = dict(row)
            item["credits_earned"] = float(item["credits_earned"] or 0)
            item["sessions_in_period"] = int(item["sessions_in_period"] or 0)
            if item["sessions_in_period"] >= settings.MIN_SESSIONS_FOR_CERTIFICATE:
                eligible.append(item)
        return eligible

    @staticmethod
    async def _create_seminar_certificate(item: dict, seminar: dict, period: str, year: int) -> Optional[dict]:
        """Insert one period certificate; None when it was already issued"""
        certificate = await database.fetch_one(
            """
            INSERT INTO certificates (
                id, certificate_code, user_id, seminar_id, period, year, sessions_attended,
                attendee_name, program_title, ce_credits, generated_at
            )
            VALUES (
                :id, :certificate_code, :user_id, :seminar_id, :period, :year, :sessions_attended,
                :attendee_name, :program_title, :ce_credits, :generated_at
            )
            ON CONFLICT (user_id, seminar_id, period, year) DO NOTHING
            RETURNING *
            """,
            {
                "id": str(uuid4()),
                "certificate_code": generate_certificate_code(period, year),
                "user_id": str(item["user_id"]),
                "seminar_id": str(seminar["id"]),
                "period": period,
                "year": year,
                "sessions_attended": item["sessions_in_period"],
                "attendee_name": attendee_display_name(item["first_name"], item["last_name"], item["email"]),
                "program_title": seminar["title"],
                "ce_credits": item["credits_earned"],
                "generated_at": utcnow(),
            }
        )
        return dict(certificate) if certificate else None

    @staticmethod
    async def issue_certificates(
        seminar_id: str,
        period: str,
        year: int,
        registration_ids: Optional[List[str]] = None
    ) -> dict:
        """
        Issue period certificates for every eligible registration

        Already-issued certificates are skipped. Failures are collected per
        registration and never abort the batch.

        Returns:
            {generated, skipped, errors} plus period details
        """
        validate_period(period)
        seminar = await SeminarService.get_seminar(seminar_id)
        eligible = await CertificateService.get_eligible(seminar_id, period, year)

        generated, skipped, errors = [], [], []

        if registration_ids is not None:
            wanted = {str(rid) for rid in registration_ids}
            eligible_ids = {str(item["registration_id"]) for item in eligible}
            for rid in sorted(wanted - eligible_ids):
                skipped.append({"registration_id": rid, "reason": "not_eligible"})
            eligible = [item for item in eligible if str(item["registration_id"]) in wanted]

        for item in eligible:
            registration_id = str(item["registration_id"])
            if item["found_user_id"] is None:
                errors.append({"registration_id": registration_id, "error": "User record not found"})
                continue
            try:
                certificate = await CertificateService._create_seminar_certificate(item, seminar, period, year)
            except Exception as e:
                logger.exception("certificate_issue_failed", registration_id=registration_id)
                errors.append({"registration_id": registration_id, "error": str(e)})
                continue

            if certificate is None:
                skipped.append({"registration_id": registration_id, "reason": "already_issued"})
            else:
                certificate["registration_id"] = registration_id
                generated.append(certificate)

        logger.info(
            "certificates_issued",
            seminar_id=str(seminar_id),
            period=period,
            year=year,
            generated=len(generated),
            skipped=len(skipped),
            errors=len(errors),
        )
        return {
            "seminar_id": str(seminar_id),
            "period": period,
            "year": year,
            "period_display": period_display(period, year),
            "generated": generated,
            "skipped": skipped,
            "errors": errors,
        }

    @staticmethod
    async def run_biannual(
        period: Optional[str] = None,
        year: Optional[int] = None,
        dry_run: bool = False,
        today: Optional[date] = None
    ) -> dict:
        """Issue period certificates for every active seminar"""
        today = today or utcnow().date()
        if period:
            validate_period(period)
            year = year or today.year
        else:
            period, detected_year = period_for_date(today)
            year = year or detected_year

        seminars = await SeminarService.list_seminars(status="active")
        results = {
            "period": period,
            "year": year,
            "period_display": period_display(period, year),
            "dry_run": dry_run,
            "seminars_processed": 0,
            "total_generated": 0,
            "details": [],
        }

        for seminar in seminars:
            seminar_id = str(seminar["id"])
            try:
                eligible = await CertificateService.get_eligible(seminar_id, period, year)
                detail = {
                    "seminar_id": seminar_id,
                    "seminar_title": seminar["title"],
                    "eligible_count": len(eligible),
                    "generated_count": 0,
                }
                if eligible:
                    results["seminars_processed"] += 1
                    if dry_run:
                        detail["generated_count"] = len(eligible)
                    else:
                        issued = await CertificateService.issue_certificates(seminar_id, period, year)
                        detail["generated_count"] = len(issued["generated"])
                        detail["skipped_count"] = len(issued["skipped"])
                        detail["errors"] = issued["errors"]
                    results["total_generated"] += detail["generated_count"]
            except ServiceError as e:
                logger.warning("biannual_seminar_failed", seminar_id=seminar_id, error=e.message)
                detail = {"seminar_id": seminar_id, "seminar_title": seminar["title"], "error": e.message}
            results["details"].append(detail)

        logger.info(
            "biannual_certificates_run",
            period=period,
            year=year,
            dry_run=dry_run,
            total_generated=results["total_generated"],
        )
        return results

    @staticmethod
    async def issue_course_certificate(
        user_id: str,
        event_id: str,
        attendee_name: str,
        credits: float,
        program_title: Optional[str] = None
    ) -> dict:
        """Single-event certificate; issuing twice returns the existing one"""
        if credits is not None and credits < 0:
            raise ValidationError("Credits cannot be negative", credits=credits)

        user = await database.fetch_one("SELECT id FROM users WHERE id = :id", {"id": str(user_id)})
        if not user:
            raise NotFound("User", str(user_id))

        certificate = await database.fetch_one(
            """
            INSERT INTO certificates (
                id, certificate_code, user_id, event_id, attendee_name, program_title,
                ce_credits, generated_at
            )
            VALUES (
                :id, :certificate_code, :user_id, :event_id, :attendee_name, :program_title,
                :ce_credits, :generated_at
            )
            ON CONFLICT (user_id, event_id) DO NOTHING
            RETURNING *
            """,
            {
                "id": str(uuid4()),
                "certificate_code": generate_certificate_code(),
                "user_id": str(user_id),
                "event_id": str(event_id),
                "attendee_name": attendee_name,
                "program_title": program_title,
                "ce_credits": float(credits) if credits is not None else None,
                "generated_at": utcnow(),
            }
        )
        if certificate:
            logger.info("course_certificate_issued", user_id=str(user_id), event_id=str(event_id))
            return dict(certificate)

        existing = await database.fetch_one(
            "SELECT * FROM certificates WHERE user_id = :user_id AND event_id = :event_id",
            {"user_id": str(user_id), "event_id": str(event_id)}
        )
        return dict(existing)

    @staticmethod
    async def get_certificate(certificate_id: str) -> dict:
        certificate = await database.fetch_one(
            "SELECT * FROM certificates WHERE id = :id",
            {"id": str(certificate_id)}
        )
        if not certificate:
            raise NotFound("Certificate", str(certificate_id))
        return dict(certificate)

    @staticmethod
    async def get_certificate_by_code(code: str) -> dict:
        """Get certificate by its public code"""
        certificate = await database.fetch_one(
            "SELECT * FROM certificates WHERE certificate_code = :code",
            {"code": code.strip().upper()}
        )
        if not certificate:
            raise NotFound("Certificate", code)
        return dict(certificate)

    @staticmethod
    async def list_user_certificates(user_id: str) -> List[dict]:
        rows = await database.fetch_all(
            """
            SELECT * FROM certificates
            WHERE user_id = :user_id
            ORDER BY generated_at DESC
            """,
            {"user_id": str(user_id)}
        )
        return [dict(row) for row in rows]

    @staticmethod
    def _render_data(certificate: dict) -> dict:
        data = {
            "attendee_name": certificate["attendee_name"],
            "program": certificate.get("program_title") or "Continuing Education",
            "ce_credits": certificate.get("ce_credits"),
            "sessions_attended": certificate.get("sessions_attended"),
            "certificate_code": certificate["certificate_code"],
            "generated_at": as_datetime(certificate.get("generated_at")),
        }
        if certificate.get("period"):
            data["period_display"] = period_display(certificate["period"], certificate["year"])
        return data

    @staticmethod
    async def get_certificate_pdf_url(code: str) -> str:
        """
        URL of the certificate PDF

        Rendered and stored on first request; the stored URL is reused after.
        """
        certificate = await CertificateService.get_certificate_by_code(code)
        if certificate["pdf_url"]:
            return certificate["pdf_url"]

        template = "seminar" if certificate["seminar_id"] else "course"
        pdf_bytes = certificate_renderer.render(CertificateService._render_data(certificate), template)
        url = await StorageService.put(pdf_bytes, prefix=f"certificates/{certificate['certificate_code']}")

        row = await database.fetch_one(
            """
            UPDATE certificates SET pdf_url = :url
            WHERE id = :id AND pdf_url IS NULL
            RETURNING pdf_url
            """,
            {"url": url, "id": str(certificate["id"])}
        )
        if row:
            logger.info("certificate_pdf_stored", certificate_code=certificate["certificate_code"])
            return row["pdf_url"]

        # A concurrent request stored its PDF first
        latest = await CertificateService.get_certificate(str(certificate["id"]))
        return latest["pdf_url"]

    @staticmethod
    async def send_certificate(certificate_id: str) -> dict:
        """Email the download link and stamp sent_at"""
        certificate = await CertificateService.get_certificate(certificate_id)
        user = await database.fetch_one(
            "SELECT email, first_name FROM users WHERE id = :id",
            {"id": str(certificate["user_id"])}
        )
        if not user:
            raise NotFound("User", str(certificate["user_id"]))

        code = certificate["certificate_code"]
        result = await EmailService.send(
            "certificate_ready",
            user["email"],
            {
                "attendee_name": certificate["attendee_name"],
                "certificate_code": code,
                "ce_credits": float(certificate["ce_credits"]) if certificate["ce_credits"] is not None else None,
                "period_display": (
                    period_display(certificate["period"], certificate["year"]) if certificate["period"] else None
                ),
                "download_url": f"{settings.APP_URL.rstrip('/')}/certificates/{code}/download",
            },
        )
        if not result.success:
            logger.warning("certificate_send_failed", certificate_id=str(certificate_id), error=result.error)
            return {"certificate_id": str(certificate_id), "sent": False, "error": result.error}

        await database.execute(
            "UPDATE certificates SET sent_at = :now WHERE id = :id",
            {"now": utcnow(), "id": str(certificate_id)}
        )
        logger.info("certificate_sent", certificate_id=str(certificate_id), to=user["email"])
        return {"certificate_id": str(certificate_id), "sent": True, "error": None}

    @staticmethod
    async def send_certificates(certificate_ids: List[str]) -> dict:
        """Send several certificates; failures are reported per item"""
        sent, errors = [], []
        for certificate_id in certificate_ids:
            try:
                result = await CertificateService.send_certificate(str(certificate_id))
            except NotFound as e:
                errors.append({"certificate_id": str(certificate_id), "error": e.message})
                continue
            if result["sent"]:
                sent.append(result["certificate_id"])
            else:
                errors.append({"certificate_id": result["certificate_id"], "error": result["error"]})
        return {"sent": sent, "errors": errors}


# Create singleton instance
certificate_service = CertificateService()
