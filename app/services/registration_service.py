"""
Registration Service
Seminar enrollments and their progress counters
"""

import secrets
import time
from datetime import date
from typing import List, Optional
from uuid import uuid4

import structlog

from app.database import database, utcnow, as_date
from app.exceptions import (
    NotFound, AlreadyRegistered, InvalidStateTransition, PreconditionFailed, ValidationError
)
from app.services.seminar_service import SeminarService

logger = structlog.get_logger(__name__)

REGISTRATION_STATUSES = ("active", "completed", "cancelled", "on_hold")

# Admin hold/resume: target status -> status it must currently have
HOLD_TRANSITIONS = {
    "on_hold": "active",
    "active": "on_hold",
}

BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    digits = ""
    while number:
        number, remainder = divmod(number, 36)
        digits = BASE36[remainder] + digits
    return digits or "0"


def generate_qr_code() -> str:
    """Check-in token of the form SEM-<base36 millis>-<hex>"""
    millis = int(time.time() * 1000)
    return f"SEM-{_base36(millis)}-{secrets.token_hex(4)}".upper()


REGISTRATION_SELECT = """
    SELECT
        r.*,
        u.email AS user_email,
        u.first_name AS user_first_name,
        u.last_name AS user_last_name,
        s.title AS seminar_title,
        s.total_sessions AS seminar_total_sessions
    FROM seminar_registrations r
    LEFT JOIN users u ON u.id = r.user_id
    LEFT JOIN seminars s ON s.id = r.seminar_id
"""


class RegistrationService:
    """Service for seminar registration operations"""

    @staticmethod
    async def _find_open_registration(user_id: str, seminar_id: str) -> Optional[dict]:
        row = await database.fetch_one(
            """
            SELECT id, status FROM seminar_registrations
            WHERE user_id = :user_id AND seminar_id = :seminar_id AND status != 'cancelled'
            """,
            {"user_id": user_id, "seminar_id": seminar_id}
        )
        return dict(row) if row else None

    @staticmethod
    async def register(
        user_id: str,
        seminar_id: str,
        order_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> dict:
        """
        Enroll a user in a seminar

        Args:
            user_id: Internal user ID
            seminar_id: Seminar to join
            order_id: Payment order that paid for the seat
            today: Reference date for the first upcoming session

        Returns:
            Created registration

        Raises:
            NotFound: If the user or seminar does not exist
            PreconditionFailed: If the seminar is not open
            AlreadyRegistered: If a non-cancelled registration exists
        """
        user_id, seminar_id = str(user_id), str(seminar_id)
        today = today or utcnow().date()

        user = await database.fetch_one("SELECT id FROM users WHERE id = :id", {"id": user_id})
        if not user:
            raise NotFound("User", user_id)

        seminar = await SeminarService.get_seminar(seminar_id)
        if seminar["status"] != "active":
            raise PreconditionFailed(
                "Seminar is not open for registration",
                seminar_id=seminar_id,
                seminar_status=seminar["status"],
            )

        existing = await RegistrationService._find_open_registration(user_id, seminar_id)
        if existing:
            raise AlreadyRegistered(str(existing["id"]), existing["status"])

        upcoming = await SeminarService.list_upcoming_sessions(seminar_id, today, limit=1)
        start_session_date = as_date(upcoming[0]["session_date"]) if upcoming else None

        now = utcnow()
        registration = await database.fetch_one(
            """
            INSERT INTO seminar_registrations (
                id, user_id, seminar_id, order_id, registration_date, start_session_date,
                sessions_completed, sessions_remaining, makeup_used, status, qr_code,
                created_at, updated_at
            )
            VALUES (
                :id, :user_id, :seminar_id, :order_id, :registration_date, :start_session_date,
                0, :sessions_remaining, FALSE, 'active', :qr_code,
                :now, :now
            )
            ON CONFLICT (user_id, seminar_id) WHERE status != 'cancelled' DO NOTHING
            RETURNING *
            """,
            {
                "id": str(uuid4()),
                "user_id": user_id,
                "seminar_id": seminar_id,
                "order_id": order_id,
                "registration_date": today,
                "start_session_date": start_session_date,
                "sessions_remaining": seminar["total_sessions"],
                "qr_code": generate_qr_code(),
                "now": now,
            }
        )

        if not registration:
            # Lost a race with a concurrent registration for the same pair
            existing = await RegistrationService._find_open_registration(user_id, seminar_id)
            raise AlreadyRegistered(str(existing["id"]) if existing else "", existing["status"] if existing else "")

        logger.info("registration_created", registration_id=str(registration["id"]), seminar_id=seminar_id, user_id=user_id)
        return dict(registration)

    @staticmethod
    async def get_registration(registration_id: str) -> dict:
        """Get registration by ID, with user and seminar summary fields"""
        registration = await database.fetch_one(
            REGISTRATION_SELECT + " WHERE r.id = :id",
            {"id": str(registration_id)}
        )
        if not registration:
            raise NotFound("Registration", str(registration_id))
        return dict(registration)

    @staticmethod
    async def get_by_qr_code(qr_code: str) -> dict:
        registration = await database.fetch_one(
            REGISTRATION_SELECT + " WHERE r.qr_code = :qr_code",
            {"qr_code": qr_code.strip().upper()}
        )
        if not registration:
            raise NotFound("Registration", qr_code)
        return dict(registration)

    @staticmethod
    async def list_registrations(seminar_id: str, status: Optional[str] = None) -> List[dict]:
        """Registrations of a seminar, newest first"""
        query = REGISTRATION_SELECT + " WHERE r.seminar_id = :seminar_id"
        params = {"seminar_id": str(seminar_id)}
        if status:
            query += " AND r.status = :status"
            params["status"] = status
        query += " ORDER BY r.created_at DESC"

        rows = await database.fetch_all(query, params)
        return [dict(row) for row in rows]

    @staticmethod
    async def list_user_registrations(user_id: str) -> List[dict]:
        rows = await database.fetch_all(
            REGISTRATION_SELECT + " WHERE r.user_id = :user_id ORDER BY r.created_at DESC",
            {"user_id": str(user_id)}
        )
        return [dict(row) for row in rows]

    @staticmethod
    async def cancel(registration_id: str) -> dict:
        """
        Cancel a registration

        Counters are left as they are. Any outstanding makeup request is
        cancelled with it.
        """
        registration_id = str(registration_id)
        now = utcnow()

        async with database.transaction():
            registration = await database.fetch_one(
                """
                UPDATE seminar_registrations
                SET status = 'cancelled', updated_at = :now
                WHERE id = :id AND status != 'cancelled'
                RETURNING *
                """,
                {"id": registration_id, "now": now}
            )
            if not registration:
                current = await RegistrationService.get_registration(registration_id)
                raise InvalidStateTransition("cancel", current["status"], resource="Registration")

            await database.execute(
                """
                UPDATE seminar_makeup_requests
                SET status = 'cancelled', updated_at = :now
                WHERE registration_id = :registration_id AND status IN ('pending', 'approved')
                """,
                {"registration_id": registration_id, "now": now}
            )

        logger.info("registration_cancelled", registration_id=registration_id)
        return dict(registration)

    @staticmethod
    async def set_status(registration_id: str, status: str) -> dict:
        """Put an active registration on hold, or resume a held one"""
        if status not in HOLD_TRANSITIONS:
            raise ValidationError(
                f"Status must be one of: {', '.join(sorted(HOLD_TRANSITIONS))}",
                status=status,
            )

        registration = await database.fetch_one(
            """
            UPDATE seminar_registrations
            SET status = :status, updated_at = :now
            WHERE id = :id AND status = :expected
            RETURNING *
            """,
            {"id": str(registration_id), "status": status, "expected": HOLD_TRANSITIONS[status], "now": utcnow()}
        )
        if not registration:
            current = await RegistrationService.get_registration(registration_id)
            action = "hold" if status == "on_hold" else "resume"
            raise InvalidStateTransition(action, current["status"], resource="Registration")

        logger.info("registration_status_changed", registration_id=str(registration_id), status=status)
        return dict(registration)

    @staticmethod
    async def list_missed_sessions(registration_id: str, today: Optional[date] = None) -> List[dict]:
        """
        Past sessions the registration did not attend

        Only sessions on or after the registration's start date count.
        Ordered most recent first by session number.
        """
        registration = await RegistrationService.get_registration(registration_id)
        today = today or utcnow().date()

        query = """
            SELECT ss.*
            FROM seminar_sessions ss
            WHERE ss.seminar_id = :seminar_id
              AND ss.session_date < :today
              AND NOT EXISTS (
                  SELECT 1 FROM seminar_attendance a
                  WHERE a.registration_id = :registration_id AND a.session_id = ss.id
              )
        """
        params = {
            "seminar_id": str(registration["seminar_id"]),
            "registration_id": str(registration_id),
            "today": today,
        }
        if registration["start_session_date"]:
            query += " AND ss.session_date >= :start_date"
            params["start_date"] = as_date(registration["start_session_date"])
        query += " ORDER BY ss.session_number DESC"

        rows = await database.fetch_all(query, params)
        return [dict(row) for row in rows]


# Create singleton instance
registration_service = RegistrationService()
