"""
Seminar Service
Seminar records and the session catalog they own
"""

import re
from datetime import date
from typing import List, Optional
from uuid import uuid4

import structlog

from app.config import settings
from app.database import database, utcnow
from app.exceptions import (
    NotFound, DuplicateError, DuplicateSession, HasDependentAttendance, HasDependentMakeupRequests,
    PreconditionFailed, ValidationError
)
from app.schemas.seminar import (
    CreateSeminarRequest, UpdateSeminarRequest, CreateSessionRequest, UpdateSessionRequest
)

logger = structlog.get_logger(__name__)

SEMINAR_COLUMNS = (
    "title", "slug", "year", "description", "price", "capacity", "venue", "address",
    "total_sessions", "credits_per_session", "total_credits", "status",
)
SESSION_COLUMNS = (
    "session_number", "session_date", "session_time_start", "session_time_end",
    "topic", "description", "capacity",
)


def slugify(title: str) -> str:
    """Lowercase, hyphen-separated slug built from a title"""
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


class SeminarService:
    """Service for seminars and their sessions"""

    # ------------------------------------------------------------------
    # Seminars
    # ------------------------------------------------------------------

    @staticmethod
    async def _demote_active(keep_id: str) -> int:
        """Only one seminar is active at a time; the others become completed"""
        rows = await database.fetch_all(
            """
            UPDATE seminars
            SET status = 'completed', updated_at = :now
            WHERE status = 'active' AND id != :keep_id
            RETURNING id
            """,
            {"keep_id": keep_id, "now": utcnow()}
        )
        if rows:
            logger.info("seminars_demoted", kept=keep_id, demoted=len(rows))
        return len(rows)

    @staticmethod
    async def create_seminar(data: CreateSeminarRequest) -> dict:
        """
        Create a seminar, optionally with its sessions

        Args:
            data: Seminar fields plus inline sessions

        Returns:
            Created seminar with its sessions

        Raises:
            DuplicateError: If the slug is taken
            DuplicateSession: If two inline sessions share a number
        """
        slug = (data.slug or slugify(data.title)).lower()
        if not slug:
            raise ValidationError("A slug could not be derived from the title")

        total_sessions = data.total_sessions or settings.DEFAULT_TOTAL_SESSIONS
        credits_per_session = (
            data.credits_per_session if data.credits_per_session is not None
            else settings.DEFAULT_CREDITS_PER_SESSION
        )
        total_credits = (
            data.total_credits if data.total_credits is not None
            else total_sessions * credits_per_session
        )

        seminar_id = str(uuid4())
        now = utcnow()

        async with database.transaction():
            seminar = await database.fetch_one(
                """
                INSERT INTO seminars (
                    id, title, slug, year, description, price, capacity, venue, address,
                    total_sessions, credits_per_session, total_credits, status, created_at, updated_at
                )
                VALUES (
                    :id, :title, :slug, :year, :description, :price, :capacity, :venue, :address,
                    :total_sessions, :credits_per_session, :total_credits, :status, :now, :now
                )
                ON CONFLICT (slug) DO NOTHING
                RETURNING *
                """,
                {
                    "id": seminar_id,
                    "title": data.title,
                    "slug": slug,
                    "year": data.year,
                    "description": data.description,
                    "price": data.price,
                    "capacity": data.capacity,
                    "venue": data.venue,
                    "address": data.address,
                    "total_sessions": total_sessions,
                    "credits_per_session": float(credits_per_session),
                    "total_credits": float(total_credits),
                    "status": data.status,
                    "now": now,
                }
            )
            if not seminar:
                raise DuplicateError("A seminar with this slug already exists", slug=slug)

            if data.status == "active":
                await SeminarService._demote_active(seminar_id)

            sessions = []
            for index, item in enumerate(data.sessions):
                session = CreateSessionRequest(
                    session_number=item.session_number or index + 1,
                    session_date=item.session_date,
                    session_time_start=item.session_time_start,
                    session_time_end=item.session_time_end,
                    topic=item.topic,
                    description=item.description,
                    capacity=item.capacity if item.capacity is not None else data.capacity,
                )
                sessions.append(await SeminarService._insert_session(seminar_id, session))

        logger.info("seminar_created", seminar_id=seminar_id, slug=slug, sessions=len(sessions))
        result = dict(seminar)
        result["sessions"] = sessions
        return result

    @staticmethod
    async def update_seminar(seminar_id: str, data: UpdateSeminarRequest) -> dict:
        """Edit a seminar; activating it demotes any other active seminar"""
        current = await SeminarService.get_seminar(seminar_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        if "slug" in changes and changes["slug"]:
            changes["slug"] = changes["slug"].lower()
            clash = await database.fetch_one(
                "SELECT id FROM seminars WHERE slug = :slug AND id != :id",
                {"slug": changes["slug"], "id": seminar_id}
            )
            if clash:
                raise DuplicateError("A seminar with this slug already exists", slug=changes["slug"])

        # Keep total_credits in step unless it was given explicitly
        if "total_credits" not in changes and (
            "total_sessions" in changes or "credits_per_session" in changes
        ):
            sessions = changes.get("total_sessions") or current["total_sessions"]
            per_session = changes.get("credits_per_session")
            if per_session is None:
                per_session = current["credits_per_session"]
            changes["total_credits"] = float(sessions) * float(per_session)

        for key in ("price", "credits_per_session", "total_credits"):
            if changes.get(key) is not None:
                changes[key] = float(changes[key])

        assignments = ", ".join(f"{column} = :{column}" for column in changes if column in SEMINAR_COLUMNS)
        params = {column: value for column, value in changes.items() if column in SEMINAR_COLUMNS}
        params.update({"id": seminar_id, "now": utcnow()})

        async with database.transaction():
            seminar = await database.fetch_one(
                f"UPDATE seminars SET {assignments}, updated_at = :now WHERE id = :id RETURNING *",
                params
            )
            if changes.get("status") == "active":
                await SeminarService._demote_active(seminar_id)

        logger.info("seminar_updated", seminar_id=seminar_id, fields=sorted(params.keys() - {"id", "now"}))
        return dict(seminar)

    @staticmethod
    async def get_seminar(seminar_id: str) -> dict:
        """Get seminar by ID"""
        seminar = await database.fetch_one(
            "SELECT * FROM seminars WHERE id = :id",
            {"id": str(seminar_id)}
        )
        if not seminar:
            raise NotFound("Seminar", str(seminar_id))
        return dict(seminar)

    @staticmethod
    async def get_seminar_by_slug(slug: str) -> dict:
        """Get seminar by slug"""
        seminar = await database.fetch_one(
            "SELECT * FROM seminars WHERE slug = :slug",
            {"slug": slug.lower()}
        )
        if not seminar:
            raise NotFound("Seminar", slug)
        return dict(seminar)

    @staticmethod
    async def get_active_seminar() -> Optional[dict]:
        seminar = await database.fetch_one(
            "SELECT * FROM seminars WHERE status = 'active' ORDER BY created_at DESC LIMIT 1"
        )
        return dict(seminar) if seminar else None

    @staticmethod
    async def list_seminars(status: Optional[str] = None, year: Optional[int] = None) -> List[dict]:
        """List seminars, newest year first, with session and registration counts"""
        where_clause = "1 = 1"
        params = {}

        if status:
            where_clause += " AND s.status = :status"
            params["status"] = status
        if year:
            where_clause += " AND s.year = :year"
            params["year"] = year

        rows = await database.fetch_all(
            f"""
            SELECT
                s.*,
                (SELECT COUNT(*) FROM seminar_sessions ss WHERE ss.seminar_id = s.id) AS sessions_count,
                (SELECT COUNT(*) FROM seminar_registrations r WHERE r.seminar_id = s.id) AS registrations_count
            FROM seminars s
            WHERE {where_clause}
            ORDER BY s.year DESC, s.created_at DESC
            """,
            params
        )
        return [dict(row) for row in rows]

    @staticmethod
    async def get_seminar_stats(seminar_id: str) -> dict:
        """Registrations, attendance, credits and makeup requests for one seminar"""
        await SeminarService.get_seminar(seminar_id)
        params = {"seminar_id": str(seminar_id)}

        registrations = await database.fetch_all(
            """
            SELECT status, COUNT(*) AS count
            FROM seminar_registrations
            WHERE seminar_id = :seminar_id
            GROUP BY status
            """,
            params
        )
        attendance = await database.fetch_one(
            """
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(CASE WHEN is_makeup THEN 1 ELSE 0 END), 0) AS makeups,
                COALESCE(SUM(credits_awarded), 0) AS credits
            FROM seminar_attendance
            WHERE seminar_id = :seminar_id
            """,
            params
        )
        makeups = await database.fetch_all(
            """
            SELECT status, COUNT(*) AS count
            FROM seminar_makeup_requests
            WHERE seminar_id = :seminar_id
            GROUP BY status
            """,
            params
        )

        by_status = {row["status"]: row["count"] for row in registrations}
        return {
            "seminar_id": str(seminar_id),
            "registrations": by_status,
            "total_registrations": sum(by_status.values()),
            "attendance_count": attendance["total"] if attendance else 0,
            "makeup_attendance_count": int(attendance["makeups"] or 0) if attendance else 0,
            "credits_awarded": float(attendance["credits"] or 0) if attendance else 0.0,
            "makeup_requests": {row["status"]: row["count"] for row in makeups},
        }

    # ------------------------------------------------------------------
    # Session catalog
    # ------------------------------------------------------------------

    @staticmethod
    async def list_sessions(seminar_id: str) -> List[dict]:
        """Sessions of a seminar ordered by session number"""
        rows = await database.fetch_all(
            """
            SELECT * FROM seminar_sessions
            WHERE seminar_id = :seminar_id
            ORDER BY session_number
            """,
            {"seminar_id": str(seminar_id)}
        )
        return [dict(row) for row in rows]

    @staticmethod
    async def list_upcoming_sessions(seminar_id: str, today: date, limit: Optional[int] = None) -> List[dict]:
        query = """
            SELECT * FROM seminar_sessions
            WHERE seminar_id = :seminar_id AND session_date >= :today
            ORDER BY session_date, session_number
        """
        params = {"seminar_id": str(seminar_id), "today": today}
        if limit:
            query += " LIMIT :limit"
            params["limit"] = limit
        rows = await database.fetch_all(query, params)
        return [dict(row) for row in rows]

    @staticmethod
    async def get_session(session_id: str) -> dict:
        """Get a session with its attendance count"""
        session = await database.fetch_one(
            """
            SELECT
                ss.*,
                (SELECT COUNT(*) FROM seminar_attendance a WHERE a.session_id = ss.id) AS attendance_count
            FROM seminar_sessions ss
            WHERE ss.id = :id
            """,
            {"id": str(session_id)}
        )
        if not session:
            raise NotFound("Session", str(session_id))
        return dict(session)

    @staticmethod
    async def _insert_session(seminar_id: str, data: CreateSessionRequest) -> dict:
        session = await database.fetch_one(
            """
            INSERT INTO seminar_sessions (
                id, seminar_id, session_number, session_date, session_time_start, session_time_end,
                topic, description, capacity, created_at
            )
            VALUES (
                :id, :seminar_id, :session_number, :session_date, :session_time_start, :session_time_end,
                :topic, :description, :capacity, :now
            )
            ON CONFLICT (seminar_id, session_number) DO NOTHING
            RETURNING *
            """,
            {
                "id": str(uuid4()),
                "seminar_id": seminar_id,
                "session_number": data.session_number,
                "session_date": data.session_date,
                "session_time_start": data.session_time_start,
                "session_time_end": data.session_time_end,
                "topic": data.topic,
                "description": data.description,
                "capacity": data.capacity,
                "now": utcnow(),
            }
        )
        if not session:
            raise DuplicateSession(
                f"Session {data.session_number} already exists for this seminar",
                session_number=data.session_number,
            )
        return dict(session)

    @staticmethod
    async def create_session(seminar_id: str, data: CreateSessionRequest) -> dict:
        """
        Add a session to a seminar

        Raises:
            NotFound: If the seminar does not exist
            DuplicateSession: If the session number is taken
        """
        await SeminarService.get_seminar(seminar_id)
        session = await SeminarService._insert_session(str(seminar_id), data)
        logger.info("session_created", seminar_id=str(seminar_id), session_number=data.session_number)
        return session

    @staticmethod
    async def update_session(session_id: str, data: UpdateSessionRequest) -> dict:
        """
        Edit a session

        A session is frozen once attendance references it.
        """
        current = await SeminarService.get_session(session_id)
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if k in SESSION_COLUMNS}
        if not changes:
            raise ValidationError("No fields to update")
        if current["attendance_count"]:
            raise PreconditionFailed(
                "Cannot edit a session with attendance records",
                session_id=str(session_id),
                attendance_count=current["attendance_count"],
                fields=sorted(changes),
            )

        new_number = changes.get("session_number")
        if new_number is not None and new_number != current["session_number"]:
            clash = await database.fetch_one(
                """
                SELECT id FROM seminar_sessions
                WHERE seminar_id = :seminar_id AND session_number = :session_number AND id != :id
                """,
                {"seminar_id": str(current["seminar_id"]), "session_number": new_number, "id": str(session_id)}
            )
            if clash:
                raise DuplicateSession(
                    f"Session {new_number} already exists for this seminar",
                    session_number=new_number,
                )

        assignments = ", ".join(f"{column} = :{column}" for column in changes)
        params = dict(changes)
        params["id"] = str(session_id)

        session = await database.fetch_one(
            f"UPDATE seminar_sessions SET {assignments} WHERE id = :id RETURNING *",
            params
        )
        logger.info("session_updated", session_id=str(session_id), fields=sorted(changes))
        return dict(session)

    @staticmethod
    async def delete_session(session_id: str) -> None:
        """
        Delete a session that nothing references

        Raises:
            HasDependentAttendance: If attendance was recorded for it
            HasDependentMakeupRequests: If a makeup request names it as missed,
                or an outstanding one names it as the makeup session
        """
        session = await SeminarService.get_session(session_id)

        async with database.transaction():
            attendance_count = await database.fetch_val(
                "SELECT COUNT(*) FROM seminar_attendance WHERE session_id = :id",
                {"id": str(session_id)}
            )
            if attendance_count:
                raise HasDependentAttendance(str(session_id), attendance_count)

            request_count = await database.fetch_val(
                """
                SELECT COUNT(*) FROM seminar_makeup_requests
                WHERE missed_session_id = :id
                   OR (requested_session_id = :id AND status IN ('pending', 'approved'))
                """,
                {"id": str(session_id)}
            )
            if request_count:
                raise HasDependentMakeupRequests(str(session_id), request_count)

            await database.execute(
                "DELETE FROM seminar_sessions WHERE id = :id",
                {"id": str(session_id)}
            )
        logger.info("session_deleted", session_id=str(session_id), seminar_id=str(session["seminar_id"]))


# Create singleton instance
seminar_service = SeminarService()
