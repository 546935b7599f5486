"""Tests for check-ins, their ledger entries and registration counters."""

import pytest

from app.database import database
from app.exceptions import DuplicateAttendance, NotFound, PreconditionFailed, ValidationError
from app.services.attendance_service import AttendanceService
from app.services.credit_service import CreditService
from app.services.registration_service import RegistrationService

from conftest import session_by_number


async def ledger_rows(registration):
    rows = await database.fetch_all(
        "SELECT * FROM ce_ledger WHERE user_id = :user_id ORDER BY awarded_at, transaction_type",
        {"user_id": str(registration["user_id"])},
    )
    return [dict(row) for row in rows]


class TestRecordAttendance:
    async def test_counters_and_ledger(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=10, credits_per_session=2.0)
        registration = await make_registration(seminar=seminar)

        result = await AttendanceService.record_attendance(
            str(registration["id"]), str(session_by_number(seminar, 3)["id"])
        )

        assert result["registration"]["sessions_completed"] == 1
        assert result["registration"]["sessions_remaining"] == 9
        [entry] = await ledger_rows(registration)
        assert entry["transaction_type"] == "earned"
        assert entry["source"] == "seminar_session"
        assert float(entry["credits"]) == 2.0
        assert str(entry["id"]) == str(result["ledger_entry_id"])

    async def test_duplicate_does_not_double_count(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        session_id = str(session_by_number(seminar, 1)["id"])
        await AttendanceService.record_attendance(str(registration["id"]), session_id)

        with pytest.raises(DuplicateAttendance):
            await AttendanceService.record_attendance(str(registration["id"]), session_id)

        current = await RegistrationService.get_registration(str(registration["id"]))
        assert current["sessions_completed"] == 1
        assert current["sessions_remaining"] == 9
        assert len(await ledger_rows(registration)) == 1

    async def test_last_session_completes_registration(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=2)
        registration = await make_registration(seminar=seminar)

        for number in (1, 2):
            result = await AttendanceService.record_attendance(
                str(registration["id"]), str(session_by_number(seminar, number)["id"])
            )

        assert result["registration"]["sessions_remaining"] == 0
        assert result["registration"]["status"] == "completed"

    async def test_counters_sum_to_total(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=5)
        registration = await make_registration(seminar=seminar)

        for number in (1, 2, 4):
            result = await AttendanceService.record_attendance(
                str(registration["id"]), str(session_by_number(seminar, number)["id"])
            )
            counters = result["registration"]
            assert counters["sessions_completed"] + counters["sessions_remaining"] == 5

    async def test_session_from_other_seminar(self, make_seminar, make_registration):
        seminar = await make_seminar(title="Seminar A")
        other = await make_seminar(title="Seminar B", status="draft")
        registration = await make_registration(seminar=seminar)

        with pytest.raises(PreconditionFailed):
            await AttendanceService.record_attendance(
                str(registration["id"]), str(session_by_number(other, 1)["id"])
            )

    async def test_registration_on_hold(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        await RegistrationService.set_status(str(registration["id"]), "on_hold")

        with pytest.raises(PreconditionFailed) as exc_info:
            await AttendanceService.record_attendance(
                str(registration["id"]), str(session_by_number(seminar, 1)["id"])
            )
        assert exc_info.value.extra["registration_status"] == "on_hold"

    async def test_makeup_without_approved_request(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)

        with pytest.raises(PreconditionFailed):
            await AttendanceService.record_attendance(
                str(registration["id"]), str(session_by_number(seminar, 5)["id"]), is_makeup=True
            )

    async def test_explicit_credits_and_validation(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        session_id = str(session_by_number(seminar, 1)["id"])

        with pytest.raises(ValidationError):
            await AttendanceService.record_attendance(str(registration["id"]), session_id, method="fax")
        with pytest.raises(ValidationError):
            await AttendanceService.record_attendance(str(registration["id"]), session_id, credits=-1)

        result = await AttendanceService.record_attendance(str(registration["id"]), session_id, credits=3.5)
        assert float(result["credits_awarded"]) == 3.5

    async def test_check_in_by_qr(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)

        result = await AttendanceService.check_in_by_qr(
            registration["qr_code"], str(session_by_number(seminar, 1)["id"])
        )

        assert result["check_in_method"] == "qr"
        assert str(result["registration_id"]) == str(registration["id"])

    async def test_unknown_qr_code(self, make_seminar):
        seminar = await make_seminar()
        with pytest.raises(NotFound):
            await AttendanceService.check_in_by_qr("SEM-NOPE-00000000", str(session_by_number(seminar, 1)["id"]))


class TestDeleteAttendance:
    async def test_revokes_credits(self, make_seminar, make_registration):
        seminar = await make_seminar(credits_per_session=2.0)
        registration = await make_registration(seminar=seminar)
        attendance = await AttendanceService.record_attendance(
            str(registration["id"]), str(session_by_number(seminar, 1)["id"])
        )

        result = await AttendanceService.delete_attendance(str(attendance["id"]))

        assert result["credits_revoked"] == 2.0
        earned, revoked = await ledger_rows(registration)
        assert revoked["transaction_type"] == "revoked"
        assert float(revoked["credits"]) == float(earned["credits"])
        assert await CreditService.get_total_credits(str(registration["user_id"])) == 0.0

    async def test_round_trip_restores_counters(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=10)
        registration = await make_registration(seminar=seminar)
        registration_id = str(registration["id"])
        first = str(session_by_number(seminar, 1)["id"])
        second = str(session_by_number(seminar, 2)["id"])
        await AttendanceService.record_attendance(registration_id, first)
        attendance = await AttendanceService.record_attendance(registration_id, second)
        before = attendance["registration"]

        await AttendanceService.delete_attendance(str(attendance["id"]))
        after = (await AttendanceService.record_attendance(registration_id, second))["registration"]

        assert after["sessions_completed"] == before["sessions_completed"] == 2
        assert after["sessions_remaining"] == before["sessions_remaining"] == 8

    async def test_delete_reopens_completed_registration(self, make_seminar, make_registration):
        seminar = await make_seminar(total_sessions=1)
        registration = await make_registration(seminar=seminar)
        attendance = await AttendanceService.record_attendance(
            str(registration["id"]), str(session_by_number(seminar, 1)["id"])
        )
        assert attendance["registration"]["status"] == "completed"

        result = await AttendanceService.delete_attendance(str(attendance["id"]))

        assert result["registration"]["status"] == "active"
        assert result["registration"]["sessions_remaining"] == 1

    async def test_delete_unknown(self, db):
        with pytest.raises(NotFound):
            await AttendanceService.delete_attendance("00000000-0000-0000-0000-000000000000")
