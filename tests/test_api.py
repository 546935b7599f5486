"""HTTP tests: routing, auth and error rendering."""

from unittest.mock import AsyncMock

from app.config import settings
from app.services.makeup_service import MakeupService
from app.services.storage_service import StorageService

from conftest import auth_headers, session_by_number


class TestPublicRoutes:
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_list_and_detail(self, client, make_seminar):
        await make_seminar(title="Ethics Seminar", total_sessions=3)
        await make_seminar(title="Draft Seminar", status="draft")

        listed = await client.get("/seminars")
        detail = await client.get("/seminars/ethics-seminar")

        assert [s["slug"] for s in listed.json()] == ["ethics-seminar"]
        assert detail.status_code == 200
        assert [s["session_number"] for s in detail.json()["sessions"]] == [1, 2, 3]

    async def test_not_found_rendering(self, client, db):
        response = await client.get("/seminars/no-such-seminar")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["resource"] == "Seminar"

    async def test_register_and_duplicate(self, client, make_seminar, make_user):
        seminar = await make_seminar()
        headers = auth_headers(await make_user())

        created = await client.post("/seminars/register", json={"seminar_id": str(seminar["id"])}, headers=headers)
        duplicate = await client.post("/seminars/register", json={"seminar_id": str(seminar["id"])}, headers=headers)

        assert created.status_code == 201
        assert created.json()["sessions_remaining"] == 10
        assert duplicate.status_code == 400
        assert duplicate.json()["error"] == "already_registered"
        assert duplicate.json()["registration_id"] == created.json()["id"]

    async def test_requires_token(self, client, db):
        response = await client.get("/seminars/me/registrations")
        assert response.status_code in (401, 403)

    async def test_token_by_external_subject(self, client, make_user):
        from app.auth import create_access_token

        await make_user(external_id="idp|42", email="sub@seminars.test")
        token = create_access_token({"sub": "idp|42"})

        response = await client.get("/seminars/me/credits", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["total_credits"] == 0.0

    async def test_missed_sessions_are_private(self, client, make_seminar, make_registration, make_user):
        registration = await make_registration(seminar=await make_seminar())
        stranger = auth_headers(await make_user())
        owner = auth_headers(str(registration["user_id"]))

        assert (await client.get(
            f"/seminars/registrations/{registration['id']}/missed-sessions", headers=stranger
        )).status_code == 404
        owned = await client.get(f"/seminars/registrations/{registration['id']}/missed-sessions", headers=owner)
        assert owned.status_code == 200
        assert [s["session_number"] for s in owned.json()] == [3, 2, 1]

    async def test_submit_makeup(self, client, make_seminar, make_registration):
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        headers = auth_headers(str(registration["user_id"]))
        payload = {
            "registration_id": str(registration["id"]),
            "missed_session_id": str(session_by_number(seminar, 1)["id"]),
            "reason": "Flu",
        }

        created = await client.post("/seminars/makeup-requests", json=payload, headers=headers)
        duplicate = await client.post("/seminars/makeup-requests", json=payload, headers=headers)
        mine = await client.get("/seminars/me/makeup-requests", headers=headers)

        assert created.status_code == 201
        assert created.json()["status"] == "pending"
        assert duplicate.status_code == 400
        assert duplicate.json()["error"] == "duplicate_request"
        assert len(mine.json()) == 1


class TestAdminRoutes:
    async def test_customers_are_forbidden(self, client, make_user):
        response = await client.get("/admin/seminars", headers=auth_headers(await make_user()))
        assert response.status_code == 403

    async def test_create_seminar_is_logged(self, client, make_user, today):
        headers = auth_headers(await make_user(role="staff"))

        created = await client.post(
            "/admin/seminars",
            json={
                "title": "Pharmacology Update",
                "year": today.year,
                "total_sessions": 2,
                "credits_per_session": 1.5,
                "sessions": [{"session_date": str(today)}, {"session_date": str(today)}],
            },
            headers=headers,
        )
        logs = await client.get("/admin/activity-logs", headers=headers)

        assert created.status_code == 201
        assert created.json()["total_credits"] == 3.0
        assert [s["session_number"] for s in created.json()["sessions"]] == [1, 2]
        assert logs.json()["total"] == 1
        assert logs.json()["logs"][0]["action"] == "create_seminar"

    async def test_check_in_by_qr(self, client, make_user, make_seminar, make_registration):
        headers = auth_headers(await make_user(role="staff"))
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        payload = {"qr_code": registration["qr_code"], "session_id": str(session_by_number(seminar, 1)["id"])}

        first = await client.post("/admin/check-in", json=payload, headers=headers)
        second = await client.post("/admin/check-in", json=payload, headers=headers)

        assert first.status_code == 201
        assert first.json()["check_in_method"] == "qr"
        assert first.json()["registration"]["sessions_remaining"] == 9
        assert second.status_code == 400
        assert second.json()["error"] == "duplicate_attendance"

    async def test_check_in_needs_a_registration(self, client, make_user, make_seminar):
        headers = auth_headers(await make_user(role="staff"))
        seminar = await make_seminar()

        response = await client.post(
            "/admin/check-in", json={"session_id": str(session_by_number(seminar, 1)["id"])}, headers=headers
        )

        assert response.status_code == 422

    async def test_invalid_transition_rendering(self, client, make_user, make_seminar, make_registration):
        headers = auth_headers(await make_user(role="admin"))
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        request = await MakeupService.submit(str(registration["id"]), str(session_by_number(seminar, 1)["id"]))

        response = await client.patch(
            f"/admin/makeup-requests/{request['id']}", json={"action": "complete"}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_state_transition"
        assert response.json()["current_status"] == "pending"

    async def test_delete_session_with_attendance(self, client, make_user, make_seminar, make_registration):
        headers = auth_headers(await make_user(role="staff"))
        seminar = await make_seminar()
        registration = await make_registration(seminar=seminar)
        session_id = str(session_by_number(seminar, 1)["id"])
        await client.post(
            "/admin/check-in", json={"registration_id": str(registration["id"]), "session_id": session_id},
            headers=headers,
        )

        response = await client.delete(f"/admin/sessions/{session_id}", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "has_dependent_attendance"

    async def test_generate_certificates(self, client, make_user, make_seminar):
        headers = auth_headers(await make_user(role="staff"))
        seminar = await make_seminar()

        response = await client.post(
            "/admin/certificates/generate",
            json={"seminar_id": str(seminar["id"]), "period": "first_half", "year": 2026},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["generated"] == []
        assert response.json()["errors"] == []


class TestCertificateAndCronRoutes:
    async def test_download_redirects(self, client, make_user, monkeypatch):
        from app.services.certificate_service import CertificateService

        monkeypatch.setattr(StorageService, "put", AsyncMock(return_value="https://storage.test/c.pdf"))
        user_id = await make_user()
        certificate = await CertificateService.issue_course_certificate(
            user_id, "7d4a1d0e-9b0c-4d8a-a3f7-0d7e6f1d2c3b", "Ada Lovelace", 2, "Wound Care"
        )

        verified = await client.get(f"/certificates/{certificate['certificate_code']}")
        download = await client.get(f"/certificates/{certificate['certificate_code']}/download")

        assert verified.status_code == 200
        assert verified.json()["program_title"] == "Wound Care"
        assert download.status_code == 302
        assert download.headers["location"] == "https://storage.test/c.pdf"

    async def test_cron_secret(self, client, db, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        denied = await client.post("/cron/makeup-expiry")
        by_query = await client.get("/cron/makeup-expiry", params={"key": "s3cret"})
        by_header = await client.post("/cron/session-reminders", headers={"Authorization": "Bearer s3cret"})

        assert denied.status_code == 401
        assert by_query.status_code == 200
        assert by_query.json()["success"] is True
        assert by_header.json()["sent"] == 0

    async def test_cron_certificates_dry_run(self, client, db):
        response = await client.get(
            "/cron/seminar-certificates", params={"period": "second_half", "year": 2026, "dry_run": "true"}
        )

        assert response.status_code == 200
        assert response.json()["dry_run"] is True
        assert response.json()["period_display"] == "July - December 2026"
