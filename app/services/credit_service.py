"""
CE Credit Service
Append-only credit ledger and the one canonical total
"""

from datetime import datetime
from typing import List, Optional
from uuid import uuid4

import structlog

from app.database import database, utcnow
from app.exceptions import NotFound, ValidationError

logger = structlog.get_logger(__name__)

SOURCES = ("course_attendance", "seminar_session", "manual", "adjustment")
TRANSACTION_TYPES = ("earned", "adjustment", "revoked")

# Signed contribution of one ledger row; every total goes through this
SIGNED_CREDITS_SQL = """
    CASE
        WHEN transaction_type = 'revoked' THEN -credits
        ELSE credits
    END
"""


class CreditService:
    """Service for CE credit ledger operations"""

    @staticmethod
    async def _append(
        user_id: str,
        credits: float,
        source: str,
        transaction_type: str,
        seminar_id: Optional[str] = None,
        session_id: Optional[str] = None,
        event_id: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        awarded_at: Optional[datetime] = None
    ) -> dict:
        if source not in SOURCES:
            raise ValidationError(f"Unknown credit source: {source}", source=source)

        entry = await database.fetch_one(
            """
            INSERT INTO ce_ledger (
                id, user_id, event_id, seminar_id, session_id, credits, source,
                transaction_type, notes, awarded_at, created_by
            )
            VALUES (
                :id, :user_id, :event_id, :seminar_id, :session_id, :credits, :source,
                :transaction_type, :notes, :awarded_at, :created_by
            )
            RETURNING *
            """,
            {
                "id": str(uuid4()),
                "user_id": str(user_id),
                "event_id": str(event_id) if event_id else None,
                "seminar_id": str(seminar_id) if seminar_id else None,
                "session_id": str(session_id) if session_id else None,
                "credits": float(credits),
                "source": source,
                "transaction_type": transaction_type,
                "notes": notes,
                "awarded_at": awarded_at or utcnow(),
                "created_by": str(created_by) if created_by else None,
            }
        )
        logger.info(
            "credits_recorded",
            user_id=str(user_id),
            transaction_type=transaction_type,
            credits=float(credits),
            source=source,
        )
        return dict(entry)

    @staticmethod
    async def award_credits(
        user_id: str,
        credits: float,
        source: str,
        seminar_id: Optional[str] = None,
        session_id: Optional[str] = None,
        event_id: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        awarded_at: Optional[datetime] = None
    ) -> dict:
        """Append an earned entry; the amount is a non-negative magnitude"""
        if credits < 0:
            raise ValidationError("Earned credits cannot be negative", credits=credits)
        return await CreditService._append(
            user_id, credits, source, "earned",
            seminar_id=seminar_id, session_id=session_id, event_id=event_id,
            notes=notes, created_by=created_by, awarded_at=awarded_at,
        )

    @staticmethod
    async def revoke_credits(
        user_id: str,
        credits: float,
        source: str,
        seminar_id: Optional[str] = None,
        session_id: Optional[str] = None,
        event_id: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> dict:
        """Append a revoked entry of the given magnitude"""
        if credits < 0:
            raise ValidationError("Revoked credits must be given as a magnitude", credits=credits)
        return await CreditService._append(
            user_id, credits, source, "revoked",
            seminar_id=seminar_id, session_id=session_id, event_id=event_id,
            notes=notes, created_by=created_by,
        )

    @staticmethod
    async def adjust_credits(
        user_id: str,
        credits: float,
        notes: Optional[str] = None,
        seminar_id: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> dict:
        """Manual signed correction"""
        if not credits:
            raise ValidationError("Adjustment must be non-zero", credits=credits)

        user = await database.fetch_one("SELECT id FROM users WHERE id = :id", {"id": str(user_id)})
        if not user:
            raise NotFound("User", str(user_id))

        return await CreditService._append(
            user_id, credits, "adjustment", "adjustment",
            seminar_id=seminar_id, notes=notes, created_by=created_by,
        )

    @staticmethod
    async def get_total_credits(
        user_id: str,
        seminar_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> float:
        """
        Net credits for a user: earned plus adjustments minus revocations

        Args:
            user_id: User whose ledger is summed
            seminar_id: Restrict to entries tied to this seminar
            start: Inclusive lower bound on awarded_at
            end: Exclusive upper bound on awarded_at
        """
        where_clause = "user_id = :user_id"
        params = {"user_id": str(user_id)}

        if seminar_id:
            where_clause += " AND seminar_id = :seminar_id"
            params["seminar_id"] = str(seminar_id)
        if start:
            where_clause += " AND awarded_at >= :start"
            params["start"] = start
        if end:
            where_clause += " AND awarded_at < :end"
            params["end"] = end

        total = await database.fetch_val(
            f"SELECT COALESCE(SUM({SIGNED_CREDITS_SQL}), 0) FROM ce_ledger WHERE {where_clause}",
            params
        )
        return float(total or 0)

    @staticmethod
    async def get_ledger(user_id: str, limit: int = 100, offset: int = 0) -> List[dict]:
        """Ledger entries for a user, newest first"""
        rows = await database.fetch_all(
            """
            SELECT l.*, s.title AS seminar_title
            FROM ce_ledger l
            LEFT JOIN seminars s ON s.id = l.seminar_id
            WHERE l.user_id = :user_id
            ORDER BY l.awarded_at DESC
            LIMIT :limit OFFSET :offset
            """,
            {"user_id": str(user_id), "limit": limit, "offset": offset}
        )
        return [dict(row) for row in rows]


# Create singleton instance
credit_service = CreditService()
