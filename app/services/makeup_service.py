"""
Makeup Request Service
Submission, review and expiry of single-use makeup requests
"""

from datetime import date, timedelta
from typing import List, Optional
from uuid import uuid4

import structlog

from app.config import settings
from app.database import database, utcnow, as_date, as_datetime
from app.exceptions import (
    NotFound, DuplicateRequest, InvalidStateTransition, PreconditionFailed, ValidationError
)
from app.services.email_service import EmailService
from app.services.makeup_states import (
    MakeupAction, MakeupStatus, DELETABLE_STATUSES, validate_transition
)
from app.services.registration_service import RegistrationService
from app.services.seminar_service import SeminarService

logger = structlog.get_logger(__name__)

MAKEUP_SELECT = """
    SELECT
        m.*,
        ms.session_number AS missed_session_number,
        ms.session_date AS missed_session_date,
        ms.topic AS missed_session_topic,
        rs.session_number AS requested_session_number,
        rs.session_date AS requested_session_date,
        rs.topic AS requested_session_topic,
        u.email AS user_email,
        u.first_name AS user_first_name,
        u.last_name AS user_last_name,
        s.title AS seminar_title
    FROM seminar_makeup_requests m
    LEFT JOIN seminar_sessions ms ON ms.id = m.missed_session_id
    LEFT JOIN seminar_sessions rs ON rs.id = m.requested_session_id
    LEFT JOIN users u ON u.id = m.user_id
    LEFT JOIN seminars s ON s.id = m.seminar_id
"""


class MakeupService:
    """Service for the makeup request workflow"""

    @staticmethod
    async def _outstanding_for(registration_id: str) -> Optional[dict]:
        row = await database.fetch_one(
            """
            SELECT id, status FROM seminar_makeup_requests
            WHERE registration_id = :registration_id AND status IN ('pending', 'approved')
            """,
            {"registration_id": registration_id}
        )
        return dict(row) if row else None

    @staticmethod
    async def _check_requested_session(session_id: str, seminar_id: str, today: date) -> dict:
        """A requested makeup session must be in the same seminar and dated after today"""
        session = await SeminarService.get_session(session_id)
        if str(session["seminar_id"]) != str(seminar_id):
            raise PreconditionFailed(
                "Requested session is for a different seminar",
                requested_session_id=str(session_id),
            )
        if as_date(session["session_date"]) <= today:
            raise PreconditionFailed(
                "Requested session must be in the future",
                requested_session_id=str(session_id),
            )
        return session

    @staticmethod
    async def submit(
        registration_id: str,
        missed_session_id: str,
        requested_session_id: Optional[str] = None,
        reason: Optional[str] = None,
        today: Optional[date] = None
    ) -> dict:
        """
        Submit a makeup request for a missed session

        Returns:
            Created request with missed/requested session summaries

        Raises:
            NotFound: Unknown registration or session
            PreconditionFailed: Registration inactive, makeup used, session checks
            DuplicateRequest: A pending or approved request already exists
        """
        today = today or utcnow().date()
        registration = await RegistrationService.get_registration(registration_id)
        registration_id = str(registration["id"])
        seminar_id = str(registration["seminar_id"])

        if registration["status"] != "active":
            raise PreconditionFailed(
                f"Registration is {registration['status']}, makeup requests are closed",
                registration_id=registration_id,
                registration_status=registration["status"],
            )
        if registration["makeup_used"]:
            raise PreconditionFailed(
                "Makeup session has already been used for this registration",
                registration_id=registration_id,
            )

        existing = await MakeupService._outstanding_for(registration_id)
        if existing:
            raise DuplicateRequest(str(existing["id"]), existing["status"])

        missed = await SeminarService.get_session(missed_session_id)
        if str(missed["seminar_id"]) != seminar_id:
            raise PreconditionFailed(
                "Missed session is for a different seminar",
                missed_session_id=str(missed_session_id),
            )

        attended = await database.fetch_one(
            """
            SELECT id FROM seminar_attendance
            WHERE registration_id = :registration_id AND session_id = :session_id
            """,
            {"registration_id": registration_id, "session_id": str(missed["id"])}
        )
        if attended:
            raise PreconditionFailed(
                "Attendance is already recorded for the missed session",
                missed_session_id=str(missed["id"]),
            )

        if requested_session_id:
            await MakeupService._check_requested_session(str(requested_session_id), seminar_id, today)

        now = utcnow()
        request = await database.fetch_one(
            """
            INSERT INTO seminar_makeup_requests (
                id, registration_id, user_id, seminar_id, missed_session_id, requested_session_id,
                reason, status, created_at, updated_at
            )
            VALUES (
                :id, :registration_id, :user_id, :seminar_id, :missed_session_id, :requested_session_id,
                :reason, 'pending', :now, :now
            )
            ON CONFLICT (registration_id) WHERE status IN ('pending', 'approved') DO NOTHING
            RETURNING id
            """,
            {
                "id": str(uuid4()),
                "registration_id": registration_id,
                "user_id": str(registration["user_id"]),
                "seminar_id": seminar_id,
                "missed_session_id": str(missed["id"]),
                "requested_session_id": str(requested_session_id) if requested_session_id else None,
                "reason": reason,
                "now": now,
            }
        )
        if not request:
            existing = await MakeupService._outstanding_for(registration_id)
            raise DuplicateRequest(
                str(existing["id"]) if existing else "",
                existing["status"] if existing else MakeupStatus.PENDING.value,
            )

        logger.info(
            "makeup_request_submitted",
            request_id=str(request["id"]),
            registration_id=registration_id,
            missed_session_id=str(missed["id"]),
        )
        return await MakeupService.get_request(str(request["id"]))

    @staticmethod
    async def get_request(request_id: str) -> dict:
        """Get a makeup request with session, user and seminar summaries"""
        request = await database.fetch_one(
            MAKEUP_SELECT + " WHERE m.id = :id",
            {"id": str(request_id)}
        )
        if not request:
            raise NotFound("Makeup request", str(request_id))
        return dict(request)

    @staticmethod
    async def list_requests(
        seminar_id: Optional[str] = None,
        status: Optional[str] = None,
        registration_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> List[dict]:
        """Makeup requests, newest first"""
        where_clause = "1 = 1"
        params = {}

        if seminar_id:
            where_clause += " AND m.seminar_id = :seminar_id"
            params["seminar_id"] = str(seminar_id)
        if status:
            where_clause += " AND m.status = :status"
            params["status"] = status
        if registration_id:
            where_clause += " AND m.registration_id = :registration_id"
            params["registration_id"] = str(registration_id)
        if user_id:
            where_clause += " AND m.user_id = :user_id"
            params["user_id"] = str(user_id)

        rows = await database.fetch_all(
            MAKEUP_SELECT + f" WHERE {where_clause} ORDER BY m.created_at DESC",
            params
        )
        return [dict(row) for row in rows]

    @staticmethod
    async def _compare_and_set(request_id: str, action: str, expected: str, target: str, fields: dict) -> dict:
        """
        Apply a transition only if the request still has the expected status

        A lost race surfaces as InvalidStateTransition with the winner's status.
        """
        assignments = "".join(f", {column} = :{column}" for column in fields)
        params = dict(fields)
        params.update({"id": request_id, "expected": expected, "target": target, "now": utcnow()})

        row = await database.fetch_one(
            f"""
            UPDATE seminar_makeup_requests
            SET status = :target, updated_at = :now{assignments}
            WHERE id = :id AND status = :expected
            RETURNING *
            """,
            params
        )
        if not row:
            latest = await MakeupService.get_request(request_id)
            raise InvalidStateTransition(action, latest["status"])
        return dict(row)

    @staticmethod
    async def act(
        request_id: str,
        action: str,
        actor_id: Optional[str] = None,
        notes: Optional[str] = None,
        denial_reason: Optional[str] = None,
        requested_session_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> dict:
        """
        Apply a review action to a makeup request

        Args:
            request_id: Makeup request
            action: approve, deny, complete, cancel, expire or update
            actor_id: Staff user acting
            notes: Admin notes
            denial_reason: Required for deny
            requested_session_id: Set or change the makeup session (approve, update)
            today: Reference date for session checks

        Returns:
            Updated request with summaries

        Raises:
            InvalidStateTransition: Action not allowed from the current status
            ValidationError: Unknown action or missing denial reason
        """
        try:
            action = MakeupAction(action)
        except ValueError:
            raise ValidationError(
                f"Invalid action: {action}. Valid actions: {', '.join(a.value for a in MakeupAction)}",
                action=action,
            )

        today = today or utcnow().date()
        current = await MakeupService.get_request(request_id)
        request_id = str(current["id"])
        expected = current["status"]
        target = validate_transition(expected, action)

        fields = {}
        if action == MakeupAction.APPROVE:
            fields.update({"reviewed_at": utcnow(), "reviewed_by": str(actor_id) if actor_id else None})
            if notes:
                fields["notes"] = notes
            if requested_session_id:
                await MakeupService._check_requested_session(
                    str(requested_session_id), str(current["seminar_id"]), today
                )
                fields["requested_session_id"] = str(requested_session_id)
        elif action == MakeupAction.DENY:
            if not denial_reason or not denial_reason.strip():
                raise ValidationError("A denial reason is required to deny a makeup request")
            fields.update({
                "reviewed_at": utcnow(),
                "reviewed_by": str(actor_id) if actor_id else None,
                "denial_reason": denial_reason.strip(),
            })
            if notes:
                fields["notes"] = notes
        elif action == MakeupAction.COMPLETE:
            fields["completed_at"] = utcnow()
        elif action == MakeupAction.UPDATE:
            if notes is None and requested_session_id is None:
                raise ValidationError("Nothing to update")
            if notes is not None:
                fields["notes"] = notes
            if requested_session_id is not None:
                await MakeupService._check_requested_session(
                    str(requested_session_id), str(current["seminar_id"]), today
                )
                fields["requested_session_id"] = str(requested_session_id)

        async with database.transaction():
            await MakeupService._compare_and_set(request_id, action.value, expected, target.value, fields)
            if action == MakeupAction.COMPLETE:
                await database.execute(
                    """
                    UPDATE seminar_registrations
                    SET makeup_used = TRUE, updated_at = :now
                    WHERE id = :id
                    """,
                    {"id": str(current["registration_id"]), "now": utcnow()}
                )

        logger.info(
            "makeup_request_transitioned",
            request_id=request_id,
            action=action.value,
            from_status=expected,
            to_status=target.value,
            actor_id=str(actor_id) if actor_id else None,
        )

        updated = await MakeupService.get_request(request_id)
        if action == MakeupAction.APPROVE:
            await MakeupService._notify(updated, "makeup_approved")
        elif action == MakeupAction.DENY:
            await MakeupService._notify(updated, "makeup_denied")
        return updated

    @staticmethod
    async def _notify(request: dict, template: str) -> None:
        """Decision emails never undo the transition they report"""
        result = await EmailService.send(
            template,
            request.get("user_email"),
            {
                "first_name": request.get("user_first_name"),
                "seminar_title": request.get("seminar_title"),
                "missed_session_number": request.get("missed_session_number"),
                "requested_session_number": request.get("requested_session_number"),
                "requested_session_date": as_date(request.get("requested_session_date")),
                "notes": request.get("notes"),
                "denial_reason": request.get("denial_reason"),
            },
        )
        if not result.success:
            logger.warning(
                "makeup_notification_failed",
                request_id=str(request["id"]),
                template=template,
                error=result.error,
            )

    @staticmethod
    async def delete_request(request_id: str) -> None:
        """Remove a pending, cancelled or expired request"""
        current = await MakeupService.get_request(request_id)
        deletable = tuple(status.value for status in DELETABLE_STATUSES)
        if current["status"] not in deletable:
            raise InvalidStateTransition("delete", current["status"])

        deleted = await database.fetch_one(
            """
            DELETE FROM seminar_makeup_requests
            WHERE id = :id AND status IN ('pending', 'cancelled', 'expired')
            RETURNING id
            """,
            {"id": str(request_id)}
        )
        if not deleted:
            latest = await MakeupService.get_request(request_id)
            raise InvalidStateTransition("delete", latest["status"])

        logger.info("makeup_request_deleted", request_id=str(request_id), status=current["status"])

    @staticmethod
    async def expire_overdue(today: Optional[date] = None) -> dict:
        """
        Expire approved requests that can no longer be used

        An approved request is overdue when its requested session date has
        passed, or when it names no session and was approved more than
        MAKEUP_APPROVAL_TTL_DAYS ago. Safe to re-run.
        """
        today = today or utcnow().date()
        cutoff = today - timedelta(days=settings.MAKEUP_APPROVAL_TTL_DAYS)

        rows = await database.fetch_all(
            """
            SELECT m.id, m.requested_session_id, m.reviewed_at, m.updated_at,
                   rs.session_date AS requested_session_date
            FROM seminar_makeup_requests m
            LEFT JOIN seminar_sessions rs ON rs.id = m.requested_session_id
            WHERE m.status = 'approved'
            """
        )

        expired_ids = []
        for row in rows:
            if row["requested_session_id"]:
                overdue = (
                    row["requested_session_date"] is not None
                    and as_date(row["requested_session_date"]) < today
                )
            else:
                approved_at = as_datetime(row["reviewed_at"] or row["updated_at"])
                overdue = approved_at is not None and approved_at.date() < cutoff
            if not overdue:
                continue

            try:
                await MakeupService._compare_and_set(
                    str(row["id"]),
                    MakeupAction.EXPIRE.value,
                    MakeupStatus.APPROVED.value,
                    MakeupStatus.EXPIRED.value,
                    {},
                )
            except InvalidStateTransition:
                # Already moved on by someone else
                continue
            expired_ids.append(str(row["id"]))

        logger.info("makeup_expiry_sweep", checked=len(rows), expired=len(expired_ids))
        return {"checked": len(rows), "expired": len(expired_ids), "expired_ids": expired_ids}


# Create singleton instance
makeup_service = MakeupService()
