"""Shared test fixtures."""

import os
import tempfile
from datetime import timedelta
from uuid import uuid4

# Point the app at a throwaway SQLite file before anything imports settings
_DB_DIR = tempfile.mkdtemp(prefix="ce_seminars_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["CRON_SECRET"] = ""
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_KEY"] = ""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.auth import create_access_token
from app.database import Base, database, engine, utcnow
import app.models  # noqa: F401
from app.schemas.seminar import CreateSeminarRequest
from app.services.registration_service import RegistrationService
from app.services.seminar_service import SeminarService


@pytest.fixture
def today():
    return utcnow().date()


@pytest_asyncio.fixture
async def db():
    """Fresh schema per test, with the async client connected."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    await database.connect()
    try:
        yield database
    finally:
        await database.disconnect()


@pytest.fixture
def make_user(db):
    """Insert a user row and return its id."""

    async def _make_user(role="customer", email=None, first_name="Ada", last_name="Lovelace", external_id=None):
        user_id = str(uuid4())
        await database.execute(
            """
            INSERT INTO users (id, external_id, email, first_name, last_name, role, created_at, updated_at)
            VALUES (:id, :external_id, :email, :first_name, :last_name, :role, :now, :now)
            """,
            {
                "id": user_id,
                "external_id": external_id,
                "email": email or f"{user_id[:8]}@seminars.test",
                "first_name": first_name,
                "last_name": last_name,
                "role": role,
                "now": utcnow(),
            },
        )
        return user_id

    return _make_user


@pytest.fixture
def make_seminar(db, today):
    """
    Create a seminar with weekly sessions.

    By default sessions 1-3 are in the past and the rest are upcoming.
    """

    async def _make_seminar(
        title="Ethics Seminar",
        status="active",
        total_sessions=10,
        credits_per_session=2.0,
        first_session_offset=-21,
        year=None,
    ):
        first = today + timedelta(days=first_session_offset)
        return await SeminarService.create_seminar(
            CreateSeminarRequest(
                title=title,
                year=year or today.year,
                status=status,
                total_sessions=total_sessions,
                credits_per_session=credits_per_session,
                sessions=[
                    {"session_number": n, "session_date": first + timedelta(days=7 * (n - 1))}
                    for n in range(1, total_sessions + 1)
                ],
            )
        )

    return _make_seminar


@pytest.fixture
def make_registration(make_user, make_seminar, today):
    """Register a new user; registration_date is set before the first session."""

    async def _make_registration(seminar=None, user_id=None):
        seminar = seminar or await make_seminar()
        user_id = user_id or await make_user()
        return await RegistrationService.register(
            user_id, str(seminar["id"]), today=today - timedelta(days=60)
        )

    return _make_registration


def session_by_number(seminar, number):
    return next(s for s in seminar["sessions"] if s["session_number"] == number)


def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token({'user_id': user_id})}"}


@pytest_asyncio.fixture
async def client(db):
    """HTTP client against the app; the db fixture owns the connection."""
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
