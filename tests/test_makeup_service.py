"""Tests for the makeup request workflow."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from app.config import settings
from app.exceptions import DuplicateRequest, InvalidStateTransition, PreconditionFailed, ValidationError
from app.services.attendance_service import AttendanceService
from app.services.credit_service import CreditService
from app.services.email_service import EmailResult, EmailService
from app.services.makeup_service import MakeupService
from app.services.registration_service import RegistrationService

from conftest import session_by_number


class TestMakeupScenario:
    async def test_full_makeup_lifecycle(self, make_seminar, make_registration, make_user):
        """Register, attend, miss one, make it up, then no second makeup."""
        seminar = await make_seminar(total_sessions=10, credits_per_session=2.0)
        registration = await make_registration(seminar=seminar)
        registration_id = str(registration["id"])
        staff_id = await make_user(role="staff", email="staff@seminars.test")

        assert registration["sessions_completed"] == 0
        assert registration["sessions_remaining"] == 10

        attended = await AttendanceService.record_attendance(
            registration_id, str(session_by_number(seminar, 3)["id"])
        )
        assert attended["registration"]["sessions_completed"] == 1
        assert attended["registration"]["sessions_remaining"] == 9
        assert await CreditService.get_total_credits(str(registration["user_id"])) == 2.0

        request = await MakeupService.submit(registration_id, str(session_by_number(seminar, 1)["id"]))
        assert request["status"] == "pending"
        assert request["missed_session_number"] == 1

        approved = await MakeupService.act(str(request["id"]), "approve", actor_id=staff_id)
        assert approved["status"] == "approved"
        assert str(approved["reviewed_by"]) == staff_id

        makeup = await AttendanceService.record_attendance(
            registration_id, str(session_by_number(seminar, 5)["id"]), is_makeup=True
        )
        assert makeup["is_makeup"]

        completed = await MakeupService.act(str(request["id"]), "complete", actor_id=staff_id)
        assert completed["status"] == "completed"
        assert completed["completed_at"] is not None

        current = await RegistrationService.get_registration(registration_id)
        assert current["makeup_used"]
        assert current["sessions_completed"] + current["sessions_remaining"] == 10

        with pytest.raises(PreconditionFailed):
            await MakeupService.submit(registration_id, str(session_by_number(seminar, 2)["id"]))

    async def test_makeup_attendance_after_makeup_used(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))
        await MakeupService.act(str(request["id"]), "approve")
        await MakeupService.act(str(request["id"]), "complete")

        with pytest.raises(PreconditionFailed):
            await AttendanceService.record_attendance(
                str(registration["id"]), str(session_by_number(seminar, 6)["id"]), is_makeup=True
            )


class TestSubmit:
    async def test_one_outstanding_request(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        first = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))

        with pytest.raises(DuplicateRequest) as exc_info:
            await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 2)["id"]))
        assert exc_info.value.existing_request_id == str(first["id"])

    async def test_resubmit_after_denial(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        first = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))
        await MakeupService.act(str(first["id"]), "deny", denial_reason="Outside the makeup window")

        second = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 2)["id"]))

        assert second["status"] == "pending"

    async def test_missed_session_already_attended(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        session_id = str(session_by_number(seminar, 1)["id"])
        await AttendanceService.record_attendance(str(registration["id"]), session_id)

        with pytest.raises(PreconditionFailed):
            await MakeupService.submit(str(registration["id"]), session_id)

    async def test_requested_session_must_be_upcoming(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)

        with pytest.raises(PreconditionFailed):
            await MakeupService.submit(
                str(registration["id"]),
                str(session_by_number(seminar, 1)["id"]),
                requested_session_id=str(session_by_number(seminar, 2)["id"]),
            )

    async def test_requested_session_today_is_not_in_the_future(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        # Session 4 falls on today
        with pytest.raises(PreconditionFailed):
            await MakeupService.submit(
                str(registration["id"]),
                str(session_by_number(seminar, 1)["id"]),
                requested_session_id=str(session_by_number(seminar, 4)["id"]),
            )

        request = await MakeupService.submit(
            str(registration["id"]),
            str(session_by_number(seminar, 1)["id"]),
            requested_session_id=str(session_by_number(seminar, 5)["id"]),
        )
        assert request["requested_session_number"] == 5

    async def test_registration_must_be_active(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        await RegistrationService.set_status(str(registration["id"]), "on_hold")

        with pytest.raises(PreconditionFailed):
            await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))


class TestReview:
    async def test_complete_only_from_approved(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))

        with pytest.raises(InvalidStateTransition) as exc_info:
            await MakeupService.act(str(request["id"]), "complete")
        assert exc_info.value.current_status == "pending"

        current = await RegistrationService.get_registration(str(registration["id"]))
        assert not current["makeup_used"]

    async def test_deny_requires_reason(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))

        with pytest.raises(ValidationError):
            await MakeupService.act(str(request["id"]), "deny", denial_reason="   ")

        denied = await MakeupService.act(str(request["id"]), "deny", denial_reason="Too late")
        assert denied["status"] == "denied"
        assert denied["denial_reason"] == "Too late"

    async def test_unknown_action(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))

        with pytest.raises(ValidationError):
            await MakeupService.act(str(request["id"]), "escalate")

    async def test_stale_transition_does_not_overwrite_winner(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))
        stale = await MakeupService.get_request(str(request["id"]))
        assert stale["status"] == "pending"

        # Another staff member cancels first
        await MakeupService.act(str(request["id"]), "cancel")

        with pytest.raises(InvalidStateTransition) as exc_info:
            await MakeupService._compare_and_set(
                str(request["id"]), "approve", stale["status"], "approved", {}
            )
        assert exc_info.value.current_status == "cancelled"
        assert (await MakeupService.get_request(str(request["id"])))["status"] == "cancelled"

        with pytest.raises(InvalidStateTransition) as exc_info:
            await MakeupService.act(str(request["id"]), "approve")
        assert exc_info.value.current_status == "cancelled"

    async def test_approve_with_requested_session(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))
        requested = session_by_number(seminar, 6)

        approved = await MakeupService.act(
            str(request["id"]), "approve", requested_session_id=str(requested["id"]), notes="See you then"
        )
        assert approved["requested_session_number"] == 6
        assert approved["notes"] == "See you then"

        # Only the requested session counts as the makeup
        with pytest.raises(PreconditionFailed):
            await AttendanceService.record_attendance(
                str(registration["id"]), str(session_by_number(seminar, 5)["id"]), is_makeup=True
            )
        result = await AttendanceService.record_attendance(
            str(registration["id"]), str(requested["id"]), is_makeup=True
        )
        assert result["is_makeup"]

    async def test_update_keeps_status(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))

        updated = await MakeupService.act(str(request["id"]), "update", notes="Called the attendee")

        assert updated["status"] == "pending"
        assert updated["notes"] == "Called the attendee"

    async def test_email_failure_keeps_decision(self, make_seminar, make_registration, monkeypatch):
        monkeypatch.setattr(EmailService, "send", AsyncMock(return_value=EmailResult(False, "smtp down")))
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))

        approved = await MakeupService.act(str(request["id"]), "approve")

        assert approved["status"] == "approved"
        EmailService.send.assert_awaited_once()
        assert EmailService.send.await_args.args[0] == "makeup_approved"

    async def test_delete_rules(self, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))
        await MakeupService.act(str(request["id"]), "approve")

        with pytest.raises(InvalidStateTransition):
            await MakeupService.delete_request(str(request["id"]))

        await MakeupService.act(str(request["id"]), "cancel")
        await MakeupService.delete_request(str(request["id"]))
        assert await MakeupService.list_requests(registration_id=str(registration["id"])) == []


class TestExpiry:
    async def test_expires_after_requested_session(self, make_seminar, make_registration, today):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))
        # Session 5 is a week out
        await MakeupService.act(
            str(request["id"]), "approve", requested_session_id=str(session_by_number(seminar, 5)["id"])
        )

        untouched = await MakeupService.expire_overdue(today=today + timedelta(days=7))
        assert untouched["expired"] == 0

        result = await MakeupService.expire_overdue(today=today + timedelta(days=8))
        assert result["expired_ids"] == [str(request["id"])]
        assert (await MakeupService.get_request(str(request["id"])))["status"] == "expired"

        # Safe to re-run
        again = await MakeupService.expire_overdue(today=today + timedelta(days=8))
        assert again["expired"] == 0

    async def test_expires_open_approval_after_ttl(self, make_seminar, make_registration, today):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))
        await MakeupService.act(str(request["id"]), "approve")
        ttl = settings.MAKEUP_APPROVAL_TTL_DAYS

        assert (await MakeupService.expire_overdue(today=today + timedelta(days=ttl)))["expired"] == 0
        assert (await MakeupService.expire_overdue(today=today + timedelta(days=ttl + 1)))["expired"] == 1

    async def test_pending_requests_never_expire(self, make_seminar, make_registration, today):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))

        result = await MakeupService.expire_overdue(today=today + timedelta(days=365))

        assert result == {"checked": 0, "expired": 0, "expired_ids": []}
