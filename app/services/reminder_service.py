"""
Reminder Service
Day-before session reminders, sent at most once per registration
"""

from datetime import date, timedelta
from typing import Optional
from uuid import uuid4

import structlog

from app.database import database, utcnow, as_date
from app.services.email_service import EmailService

logger = structlog.get_logger(__name__)


class ReminderService:
    """Service for session reminder emails"""

    @staticmethod
    async def _claim(session_id: str, registration_id: str) -> bool:
        """Reserve the (session, registration) reminder; False if already taken"""
        row = await database.fetch_one(
            """
            INSERT INTO session_reminders (id, session_id, registration_id, sent_at)
            VALUES (:id, :session_id, :registration_id, :now)
            ON CONFLICT (session_id, registration_id) DO NOTHING
            RETURNING id
            """,
            {"id": str(uuid4()), "session_id": session_id, "registration_id": registration_id, "now": utcnow()}
        )
        return row is not None

    @staticmethod
    async def _release(session_id: str, registration_id: str) -> None:
        await database.execute(
            """
            DELETE FROM session_reminders
            WHERE session_id = :session_id AND registration_id = :registration_id
            """,
            {"session_id": session_id, "registration_id": registration_id}
        )

    @staticmethod
    async def send_session_reminders(today: Optional[date] = None) -> dict:
        """
        Email active registrations about sessions happening tomorrow

        Each reminder is claimed before sending, so a re-run never sends twice.
        A failed send releases its claim for the next run.
        """
        today = today or utcnow().date()
        tomorrow = today + timedelta(days=1)

        rows = await database.fetch_all(
            """
            SELECT
                ss.id AS session_id,
                ss.session_number,
                ss.session_date,
                ss.session_time_start,
                ss.topic,
                s.title AS seminar_title,
                s.venue,
                s.address,
                r.id AS registration_id,
                r.qr_code,
                u.email,
                u.first_name
            FROM seminar_sessions ss
            JOIN seminars s ON s.id = ss.seminar_id
            JOIN seminar_registrations r ON r.seminar_id = ss.seminar_id AND r.status = 'active'
            JOIN users u ON u.id = r.user_id
            WHERE ss.session_date = :tomorrow
              AND NOT EXISTS (
                  SELECT 1 FROM seminar_attendance a
                  WHERE a.registration_id = r.id AND a.session_id = ss.id
              )
            ORDER BY ss.session_number
            """,
            {"tomorrow": tomorrow}
        )

        sent = skipped = failed = 0
        for row in rows:
            session_id, registration_id = str(row["session_id"]), str(row["registration_id"])
            if not await ReminderService._claim(session_id, registration_id):
                skipped += 1
                continue

            result = await EmailService.send(
                "session_reminder",
                row["email"],
                {
                    "first_name": row["first_name"],
                    "seminar_title": row["seminar_title"],
                    "session_number": row["session_number"],
                    "session_date": as_date(row["session_date"]),
                    "session_time_start": row["session_time_start"],
                    "topic": row["topic"],
                    "venue": row["venue"],
                    "address": row["address"],
                    "qr_code": row["qr_code"],
                },
            )
            if result.success:
                sent += 1
            else:
                failed += 1
                await ReminderService._release(session_id, registration_id)
                logger.warning(
                    "session_reminder_failed",
                    session_id=session_id,
                    registration_id=registration_id,
                    error=result.error,
                )

        logger.info("session_reminder_sweep", date=tomorrow.isoformat(), sent=sent, skipped=skipped, failed=failed)
        return {"date": tomorrow.isoformat(), "sent": sent, "skipped": skipped, "failed": failed}


# Create singleton instance
reminder_service = ReminderService()
