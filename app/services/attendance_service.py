"""
Attendance Service
Session check-ins, their credit entries and registration counters
"""

from datetime import datetime
from typing import List, Optional
from uuid import uuid4

import structlog

from app.database import database, utcnow, as_date, as_datetime
from app.exceptions import NotFound, DuplicateAttendance, PreconditionFailed, ValidationError
from app.services.credit_service import CreditService
from app.services.registration_service import RegistrationService
from app.services.seminar_service import SeminarService

logger = structlog.get_logger(__name__)

CHECK_IN_METHODS = ("qr", "manual")


def _as_bool(value) -> bool:
    return bool(value) if value is not None else False


class AttendanceService:
    """Service for recording and reverting seminar attendance"""

    @staticmethod
    async def _approved_makeup(registration: dict, session: dict) -> dict:
        """
        The approved makeup request this session may satisfy

        A makeup session is the requested session when one was named.
        Otherwise any other session of the same seminar dated on or after
        the day the request was approved.
        """
        if _as_bool(registration["makeup_used"]):
            raise PreconditionFailed(
                "Makeup session has already been used for this registration",
                registration_id=str(registration["id"]),
            )

        request = await database.fetch_one(
            """
            SELECT * FROM seminar_makeup_requests
            WHERE registration_id = :registration_id AND status = 'approved'
            """,
            {"registration_id": str(registration["id"])}
        )
        if not request:
            raise PreconditionFailed(
                "No approved makeup request for this registration",
                registration_id=str(registration["id"]),
            )

        session_id = str(session["id"])
        if request["requested_session_id"]:
            if str(request["requested_session_id"]) != session_id:
                raise PreconditionFailed(
                    "Session is not the approved makeup session",
                    makeup_request_id=str(request["id"]),
                    requested_session_id=str(request["requested_session_id"]),
                )
            return dict(request)

        if str(request["missed_session_id"]) == session_id:
            raise PreconditionFailed(
                "A makeup cannot be the missed session itself",
                makeup_request_id=str(request["id"]),
            )

        approved_on = as_datetime(request["reviewed_at"] or request["updated_at"]).date()
        if as_date(session["session_date"]) < approved_on:
            raise PreconditionFailed(
                "Makeup session must be on or after the approval date",
                makeup_request_id=str(request["id"]),
                approved_on=approved_on.isoformat(),
            )
        return dict(request)

    @staticmethod
    async def record_attendance(
        registration_id: str,
        session_id: str,
        method: str = "manual",
        is_makeup: bool = False,
        checked_in_by: Optional[str] = None,
        credits: Optional[float] = None,
        checked_in_at: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> dict:
        """
        Record that a registration attended a session

        Inserts the attendance row, appends the matching earned ledger entry
        and advances the registration counters in one transaction.

        Args:
            registration_id: Registration checking in
            session_id: Session attended
            method: 'qr' or 'manual'
            is_makeup: Attendance satisfies the approved makeup request
            checked_in_by: Staff user recording the check-in
            credits: Credits to award; defaults to the seminar's per-session value
            checked_in_at: Check-in time; defaults to now
            notes: Free text

        Returns:
            Attendance record plus the updated registration

        Raises:
            NotFound: Unknown registration or session
            PreconditionFailed: Registration not active, session mismatch or makeup rules
            DuplicateAttendance: Already recorded for this session
        """
        if method not in CHECK_IN_METHODS:
            raise ValidationError(f"Check-in method must be one of: {', '.join(CHECK_IN_METHODS)}", method=method)
        if credits is not None and credits < 0:
            raise ValidationError("Credits awarded cannot be negative", credits=credits)

        registration = await RegistrationService.get_registration(registration_id)
        registration_id = str(registration["id"])
        if registration["status"] != "active":
            raise PreconditionFailed(
                f"Registration is {registration['status']}, cannot check in",
                registration_id=registration_id,
                registration_status=registration["status"],
            )
        if registration["sessions_remaining"] <= 0:
            raise PreconditionFailed(
                "No sessions remaining in this registration",
                registration_id=registration_id,
            )

        session = await SeminarService.get_session(session_id)
        session_id = str(session["id"])
        if str(session["seminar_id"]) != str(registration["seminar_id"]):
            raise PreconditionFailed(
                "This session is for a different seminar",
                session_id=session_id,
                registration_id=registration_id,
            )

        makeup_request = None
        if is_makeup:
            makeup_request = await AttendanceService._approved_makeup(registration, session)

        seminar = await SeminarService.get_seminar(str(registration["seminar_id"]))
        credits_awarded = float(credits) if credits is not None else float(seminar["credits_per_session"])
        checked_in_at = checked_in_at or utcnow()

        async with database.transaction():
            attendance = await database.fetch_one(
                """
                INSERT INTO seminar_attendance (
                    id, registration_id, session_id, user_id, seminar_id, is_makeup,
                    credits_awarded, check_in_method, checked_in_at, checked_in_by, notes
                )
                VALUES (
                    :id, :registration_id, :session_id, :user_id, :seminar_id, :is_makeup,
                    :credits_awarded, :check_in_method, :checked_in_at, :checked_in_by, :notes
                )
                ON CONFLICT (registration_id, session_id) DO NOTHING
                RETURNING *
                """,
                {
                    "id": str(uuid4()),
                    "registration_id": registration_id,
                    "session_id": session_id,
                    "user_id": str(registration["user_id"]),
                    "seminar_id": str(registration["seminar_id"]),
                    "is_makeup": bool(is_makeup),
                    "credits_awarded": credits_awarded,
                    "check_in_method": method,
                    "checked_in_at": checked_in_at,
                    "checked_in_by": str(checked_in_by) if checked_in_by else None,
                    "notes": notes,
                }
            )
            if not attendance:
                raise DuplicateAttendance(registration_id, session_id)

            ledger_entry = await CreditService.award_credits(
                registration["user_id"],
                credits_awarded,
                "seminar_session",
                seminar_id=registration["seminar_id"],
                session_id=session_id,
                notes=f"Session {session['session_number']}" + (" (makeup)" if is_makeup else ""),
                created_by=checked_in_by,
                awarded_at=checked_in_at,
            )

            # Counters stay within [0, total_sessions]
            updated = await database.fetch_one(
                """
                UPDATE seminar_registrations
                SET sessions_completed = CASE
                        WHEN sessions_completed + 1 > :total THEN :total
                        ELSE sessions_completed + 1
                    END,
                    sessions_remaining = CASE
                        WHEN sessions_remaining - 1 < 0 THEN 0
                        ELSE sessions_remaining - 1
                    END,
                    status = CASE
                        WHEN sessions_remaining - 1 <= 0 THEN 'completed'
                        ELSE status
                    END,
                    updated_at = :now
                WHERE id = :id AND status = 'active'
                RETURNING *
                """,
                {"id": registration_id, "total": seminar["total_sessions"], "now": utcnow()}
            )
            if not updated:
                # Status changed underneath us; roll the insert back
                current = await RegistrationService.get_registration(registration_id)
                raise PreconditionFailed(
                    f"Registration is {current['status']}, cannot check in",
                    registration_id=registration_id,
                    registration_status=current["status"],
                )

        logger.info(
            "attendance_recorded",
            registration_id=registration_id,
            session_id=session_id,
            is_makeup=bool(is_makeup),
            credits=credits_awarded,
            method=method,
            makeup_request_id=str(makeup_request["id"]) if makeup_request else None,
        )

        result = dict(attendance)
        result["registration"] = dict(updated)
        result["ledger_entry_id"] = ledger_entry["id"]
        return result

    @staticmethod
    async def check_in_by_qr(
        qr_code: str,
        session_id: str,
        is_makeup: bool = False,
        checked_in_by: Optional[str] = None,
        notes: Optional[str] = None
    ) -> dict:
        """Resolve the registration from its QR token and record attendance"""
        registration = await RegistrationService.get_by_qr_code(qr_code)
        return await AttendanceService.record_attendance(
            str(registration["id"]),
            session_id,
            method="qr",
            is_makeup=is_makeup,
            checked_in_by=checked_in_by,
            notes=notes,
        )

    @staticmethod
    async def get_attendance(attendance_id: str) -> dict:
        attendance = await database.fetch_one(
            "SELECT * FROM seminar_attendance WHERE id = :id",
            {"id": str(attendance_id)}
        )
        if not attendance:
            raise NotFound("Attendance record", str(attendance_id))
        return dict(attendance)

    @staticmethod
    async def delete_attendance(attendance_id: str, revoked_by: Optional[str] = None) -> dict:
        """
        Undo a check-in

        Removes the attendance row, appends a revoked ledger entry of the
        same magnitude and gives the session back to the registration.
        """
        attendance = await AttendanceService.get_attendance(attendance_id)
        registration_id = str(attendance["registration_id"])
        seminar = await SeminarService.get_seminar(str(attendance["seminar_id"]))
        credits_awarded = float(attendance["credits_awarded"] or 0)

        async with database.transaction():
            deleted = await database.fetch_one(
                "DELETE FROM seminar_attendance WHERE id = :id RETURNING id",
                {"id": str(attendance_id)}
            )
            if not deleted:
                raise NotFound("Attendance record", str(attendance_id))

            ledger_entry = await CreditService.revoke_credits(
                attendance["user_id"],
                credits_awarded,
                "seminar_session",
                seminar_id=attendance["seminar_id"],
                session_id=attendance["session_id"],
                notes="Attendance removed",
                created_by=revoked_by,
            )

            registration = await database.fetch_one(
                """
                UPDATE seminar_registrations
                SET sessions_completed = CASE
                        WHEN sessions_completed - 1 < 0 THEN 0
                        ELSE sessions_completed - 1
                    END,
                    sessions_remaining = CASE
                        WHEN sessions_remaining + 1 > :total THEN :total
                        ELSE sessions_remaining + 1
                    END,
                    status = CASE
                        WHEN status = 'completed' THEN 'active'
                        ELSE status
                    END,
                    updated_at = :now
                WHERE id = :id
                RETURNING *
                """,
                {"id": registration_id, "total": seminar["total_sessions"], "now": utcnow()}
            )

        logger.info(
            "attendance_deleted",
            attendance_id=str(attendance_id),
            registration_id=registration_id,
            credits_revoked=credits_awarded,
        )
        return {
            "attendance_id": str(attendance_id),
            "registration": dict(registration) if registration else None,
            "ledger_entry_id": ledger_entry["id"],
            "credits_revoked": credits_awarded,
        }

    @staticmethod
    async def list_session_attendance(session_id: str) -> List[dict]:
        """Attendance for one session with attendee names"""
        rows = await database.fetch_all(
            """
            SELECT a.*, u.email AS user_email, u.first_name AS user_first_name, u.last_name AS user_last_name
            FROM seminar_attendance a
            LEFT JOIN users u ON u.id = a.user_id
            WHERE a.session_id = :session_id
            ORDER BY a.checked_in_at
            """,
            {"session_id": str(session_id)}
        )
        return [dict(row) for row in rows]

    @staticmethod
    async def list_registration_attendance(registration_id: str) -> List[dict]:
        rows = await database.fetch_all(
            """
            SELECT a.*, ss.session_number, ss.session_date, ss.topic
            FROM seminar_attendance a
            JOIN seminar_sessions ss ON ss.id = a.session_id
            WHERE a.registration_id = :registration_id
            ORDER BY ss.session_number
            """,
            {"registration_id": str(registration_id)}
        )
        return [dict(row) for row in rows]


# Create singleton instance
attendance_service = AttendanceService()
