"""Tests for seminars and the session catalog."""

from datetime import timedelta

import pytest

from app.exceptions import (
    DuplicateError, DuplicateSession, HasDependentAttendance, HasDependentMakeupRequests, NotFound,
    PreconditionFailed, ValidationError
)
from app.schemas.seminar import CreateSeminarRequest, CreateSessionRequest, UpdateSeminarRequest, UpdateSessionRequest
from app.services.attendance_service import AttendanceService
from app.services.makeup_service import MakeupService
from app.services.seminar_service import SeminarService, slugify

from conftest import session_by_number


class TestSeminars:
    async def test_create_derives_slug_and_credits(self, make_seminar):
        seminar = await make_seminar(title="Ethics & Law: 2026!", total_sessions=4, credits_per_session=1.5)

        assert seminar["slug"] == "ethics-law-2026"
        assert float(seminar["total_credits"]) == 6.0
        assert [s["session_number"] for s in seminar["sessions"]] == [1, 2, 3, 4]

    async def test_defaults_from_settings(self, db, today):
        seminar = await SeminarService.create_seminar(CreateSeminarRequest(title="Defaults", year=today.year))

        assert seminar["total_sessions"] == 10
        assert float(seminar["credits_per_session"]) == 2.0
        assert float(seminar["total_credits"]) == 20.0
        assert seminar["status"] == "draft"

    async def test_duplicate_slug(self, make_seminar):
        await make_seminar(title="Same Title")
        with pytest.raises(DuplicateError):
            await make_seminar(title="Same Title")

    async def test_activating_demotes_previous_active(self, make_seminar):
        first = await make_seminar(title="Spring")
        second = await make_seminar(title="Fall", status="draft")

        await SeminarService.update_seminar(str(second["id"]), UpdateSeminarRequest(status="active"))

        assert (await SeminarService.get_seminar(str(first["id"])))["status"] == "completed"
        active = await SeminarService.get_active_seminar()
        assert str(active["id"]) == str(second["id"])

    async def test_update_recomputes_total_credits(self, make_seminar):
        seminar = await make_seminar(total_sessions=10, credits_per_session=2.0)

        updated = await SeminarService.update_seminar(
            str(seminar["id"]), UpdateSeminarRequest(credits_per_session=3.0)
        )

        assert float(updated["total_credits"]) == 30.0

    async def test_update_with_no_fields(self, make_seminar):
        seminar = await make_seminar()
        with pytest.raises(ValidationError):
            await SeminarService.update_seminar(str(seminar["id"]), UpdateSeminarRequest())

    async def test_list_with_counts(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=3)
        await make_registration(seminar=seminar)

        [listed] = await SeminarService.list_seminars(status="active")
        assert listed["sessions_count"] == 3
        assert listed["registrations_count"] == 1

    async def test_missing_seminar(self, db):
        with pytest.raises(NotFound):
            await SeminarService.get_seminar("00000000-0000-0000-0000-000000000000")

    def test_slugify(self):
        assert slugify("  CE: Clinical Update  ") == "ce-clinical-update"


class TestSessions:
    async def test_duplicate_session_number(self, make_seminar, today):
        seminar = await make_seminar(total_sessions=2)

        with pytest.raises(DuplicateSession):
            await SeminarService.create_session(
                str(seminar["id"]), CreateSessionRequest(session_number=2, session_date=today)
            )

    async def test_upcoming_sessions(self, make_seminar, today):
        seminar = await make_seminar(total_sessions=6, first_session_offset=-14)

        upcoming = await SeminarService.list_upcoming_sessions(str(seminar["id"]), today)

        assert [s["session_number"] for s in upcoming] == [3, 4, 5, 6]

    async def test_session_frozen_once_attended(self, make_seminar, make_registration, today):
        seminar = await make_seminar(total_sessions=4)
        registration = await make_registration(seminar=seminar)
        session = session_by_number(seminar, 2)
        untouched = session_by_number(seminar, 3)
        await AttendanceService.record_attendance(str(registration["id"]), str(session["id"]))

        for change in (
            UpdateSessionRequest(session_number=9),
            UpdateSessionRequest(session_date=today + timedelta(days=400)),
            UpdateSessionRequest(topic="Ethics"),
        ):
            with pytest.raises(PreconditionFailed):
                await SeminarService.update_session(str(session["id"]), change)

        current = await SeminarService.get_session(str(session["id"]))
        assert str(current["session_date"]) == str(session["session_date"])

        # Sessions nobody attended stay editable
        updated = await SeminarService.update_session(str(untouched["id"]), UpdateSessionRequest(topic="Ethics"))
        assert updated["topic"] == "Ethics"

    async def test_renumber_clash(self, make_seminar):
        seminar = await make_seminar(total_sessions=3)
        with pytest.raises(DuplicateSession):
            await SeminarService.update_session(
                str(session_by_number(seminar, 1)["id"]), UpdateSessionRequest(session_number=3)
            )

    async def test_delete_with_attendance_refused(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=3)
        registration = await make_registration(seminar=seminar)
        session = session_by_number(seminar, 1)
        await AttendanceService.record_attendance(str(registration["id"]), str(session["id"]))

        with pytest.raises(HasDependentAttendance) as exc_info:
            await SeminarService.delete_session(str(session["id"]))
        assert exc_info.value.extra["attendance_count"] == 1

    async def test_delete_session_named_by_makeup_refused(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=6)
        registration = await make_registration(seminar=seminar)
        missed = session_by_number(seminar, 1)
        requested = session_by_number(seminar, 5)
        request = await MakeupService.submit(
            str(registration["id"]), str(missed["id"]), requested_session_id=str(requested["id"])
        )

        for session in (missed, requested):
            with pytest.raises(HasDependentMakeupRequests) as exc_info:
                await SeminarService.delete_session(str(session["id"]))
            assert exc_info.value.extra["request_count"] == 1

        current = await MakeupService.get_request(str(request["id"]))
        assert current["missed_session_number"] == 1
        assert current["requested_session_number"] == 5

    async def test_delete_session_after_makeup_request_closed(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=6)
        registration = await make_registration(seminar=seminar)
        requested = session_by_number(seminar, 5)
        request = await MakeupService.submit(
            str(registration["id"]), str(session_by_number(seminar, 1)["id"]),
            requested_session_id=str(requested["id"]),
        )
        await MakeupService.act(str(request["id"]), "cancel")

        await SeminarService.delete_session(str(requested["id"]))

        with pytest.raises(NotFound):
            await SeminarService.get_session(str(requested["id"]))

    async def test_delete_unattended_session(self, make_seminar, today):
        seminar = await make_seminar(total_sessions=2)
        session = session_by_number(seminar, 2)

        await SeminarService.delete_session(str(session["id"]))

        with pytest.raises(NotFound):
            await SeminarService.get_session(str(session["id"]))
        assert len(await SeminarService.list_sessions(str(seminar["id"]))) == 1

    async def test_stats(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=3)
        registration = await make_registration(seminar=seminar)
        await AttendanceService.record_attendance(
            str(registration["id"]), str(session_by_number(seminar, 1)["id"])
        )

        stats = await SeminarService.get_seminar_stats(str(seminar["id"]))

        assert stats["registrations"] == {"active": 1}
        assert stats["attendance_count"] == 1
        assert stats["credits_awarded"] == 2.0
