"""
HTTP API: auth, owner-scoped data routes, X-Act-As impersonation and the
assistant endpoints.
"""
from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from companion.api.deps import get_repository
from companion.main import app
from companion.repositories.memory import (
    DEMO_ADMIN_EMAIL,
    DEMO_OWNER_EMAIL,
    DEMO_OWNER_ID,
    InMemoryRepository,
    seed_demo_accounts,
    seed_demo_data,
)

pytestmark = pytest.mark.integration

PASSWORD = "demo-pass"


@pytest.fixture
def api_repo(fast_hashing):
    repo = InMemoryRepository()
    seed_demo_data(repo, DEMO_OWNER_ID)
    seed_demo_accounts(repo, f"plain${PASSWORD}")
    return repo


@pytest.fixture
def client(api_repo):
    app.dependency_overrides[get_repository] = lambda: api_repo
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _token(client, email):
    response = client.post("/auth/sign-in", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


@pytest.fixture
def owner_headers(client):
    return {"Authorization": f"Bearer {_token(client, DEMO_OWNER_EMAIL)}"}


@pytest.fixture
def admin_headers(client):
    return {"Authorization": f"Bearer {_token(client, DEMO_ADMIN_EMAIL)}"}


class TestHealth:

    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert "X-Correlation-ID" in response.headers

    def test_readyz_without_database(self, client):
        assert client.get("/readyz").json() == {"db": "memory"}

    def test_startup_creates_tables_when_a_database_is_configured(self, settings_override):
        settings_override(DATABASE_URL="sqlite+aiosqlite:///:memory:")
        with patch("companion.db.base.init_db", new=AsyncMock()) as init_db:
            with TestClient(app):
                pass
        init_db.assert_awaited_once()

    def test_startup_without_database_skips_tables(self):
        with patch("companion.db.base.init_db", new=AsyncMock()) as init_db:
            with TestClient(app):
                pass
        init_db.assert_not_awaited()


class TestAuth:

    def test_sign_up_then_me(self, client):
        response = client.post(
            "/auth/sign-up", json={"email": "new@example.com", "password": "secret1", "full_name": "Dr. New"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["verification_pending"] is False

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['session']['access_token']}"})
        assert me.status_code == 200
        assert me.json()["full_name"] == "Dr. New"
        assert me.json()["role"] == "PSYCHOLOGIST"

    def test_sign_up_with_confirmation_required_has_no_session(self, client, settings_override):
        settings_override(REQUIRE_EMAIL_CONFIRMATION=True)
        response = client.post("/auth/sign-up", json={"email": "new@example.com", "password": "secret1"})
        assert response.status_code == 201
        assert response.json()["session"] is None
        assert response.json()["verification_pending"] is True

    def test_duplicate_sign_up(self, client):
        response = client.post("/auth/sign-up", json={"email": DEMO_OWNER_EMAIL, "password": "secret1"})
        assert response.status_code == 401
        assert response.json()["detail"] == "User already registered"

    def test_bad_credentials_surface_provider_message(self, client):
        response = client.post("/auth/sign-in", json={"email": DEMO_OWNER_EMAIL, "password": "wrong"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid login credentials"

    @pytest.mark.parametrize("header", [None, "Bearer", "Basic abc", "Bearer not-a-jwt"])
    def test_protected_routes_need_a_valid_bearer_token(self, client, header):
        headers = {"Authorization": header} if header else {}
        assert client.get("/patients", headers=headers).status_code == 401


class TestDataRoutes:

    def test_lists_are_sorted(self, client, owner_headers):
        patients = client.get("/patients", headers=owner_headers).json()
        assert [p["name"] for p in patients] == ["John Doe", "Michael Brown", "Sarah Smith"]

        appointments = client.get("/appointments", headers=owner_headers).json()
        assert [a["id"] for a in appointments] == ["apt_1", "apt_2", "apt_3"]
        assert appointments[0]["patient_name"] == "John Doe"

    def test_create_patient_and_appointment(self, client, owner_headers):
        patient = client.post("/patients", json={"name": "Ana Lima", "phone": "+55 11 98765-4321"},
                              headers=owner_headers)
        assert patient.status_code == 201
        patient_id = patient.json()["id"]

        when = (date.today() + timedelta(days=3)).isoformat()
        appointment = client.post(
            "/appointments",
            json={"patient_id": patient_id, "date": when, "time": "15:30", "type": "IN_PERSON"},
            headers=owner_headers,
        )
        assert appointment.status_code == 201
        body = appointment.json()
        assert body["patient_name"] == "Ana Lima"
        assert body["status"] == "SCHEDULED"
        assert body["duration"] == 50

    def test_blank_patient_name_is_rejected(self, client, owner_headers):
        assert client.post("/patients", json={"name": "   "}, headers=owner_headers).status_code == 422

    def test_past_appointment_is_rejected(self, client, owner_headers):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        response = client.post(
            "/appointments", json={"patient_id": "pat_1", "date": yesterday, "time": "10:00"}, headers=owner_headers
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "Sessions cannot be scheduled in the past."

    def test_appointment_for_unknown_patient_is_not_found(self, client, owner_headers):
        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        response = client.post(
            "/appointments", json={"patient_id": "pat_x", "date": tomorrow, "time": "10:00"}, headers=owner_headers
        )
        assert response.status_code == 404

    def test_patch_updates_only_given_fields(self, client, owner_headers):
        response = client.patch("/appointments/apt_1", json={"status": "COMPLETED", "summary": "Good progress."},
                                headers=owner_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "COMPLETED"
        assert body["summary"] == "Good progress."
        assert body["time"] == "10:00:00"

    def test_patch_time_is_truncated_to_the_minute(self, client, owner_headers):
        response = client.patch("/appointments/apt_1", json={"time": "10:00:30"}, headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["time"] == "10:00:00"

        listed = client.get("/appointments", headers=owner_headers).json()
        assert next(a for a in listed if a["id"] == "apt_1")["time"] == "10:00:00"

    def test_patch_can_clear_notes_and_summary(self, client, owner_headers):
        client.patch("/appointments/apt_1", json={"notes": "Bring forms.", "summary": "Draft."}, headers=owner_headers)

        response = client.patch("/appointments/apt_1", json={"notes": None, "summary": None}, headers=owner_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["notes"] is None and body["summary"] is None
        assert body["status"] == "SCHEDULED"

    def test_appointment_for_another_owners_patient_is_not_found(self, client, owner_headers, api_repo):
        api_repo._patients["pat_other"] = ("admin_1", api_repo._patients["pat_1"][1].model_copy(
            update={"id": "pat_other", "name": "Other Clinic Patient"}))
        tomorrow = (date.today() + timedelta(days=1)).isoformat()

        response = client.post(
            "/appointments", json={"patient_id": "pat_other", "date": tomorrow, "time": "10:00"}, headers=owner_headers
        )

        assert response.status_code == 404
        names = {a["patient_name"] for a in client.get("/appointments", headers=owner_headers).json()}
        assert "Other Clinic Patient" not in names

    def test_patch_unknown_appointment(self, client, owner_headers):
        assert client.patch("/appointments/nope", json={"notes": "x"}, headers=owner_headers).status_code == 404


class TestActAs:

    def test_admin_acts_as_owner(self, client, admin_headers):
        own = client.get("/patients", headers=admin_headers).json()
        assert own == []

        acting = client.get("/patients", headers={**admin_headers, "X-Act-As": DEMO_OWNER_ID}).json()
        assert len(acting) == 3

    def test_non_admin_cannot_act_as(self, client, owner_headers):
        response = client.get("/patients", headers={**owner_headers, "X-Act-As": "admin_1"})
        assert response.status_code == 403

    def test_acting_as_unknown_user(self, client, admin_headers):
        response = client.get("/patients", headers={**admin_headers, "X-Act-As": "ghost"})
        assert response.status_code == 404

    def test_profiles_are_admin_only(self, client, admin_headers, owner_headers):
        assert client.get("/profiles", headers=owner_headers).status_code == 403
        names = [p["full_name"] for p in client.get("/profiles", headers=admin_headers).json()]
        assert names == ["Dr. Alice Rivera", "Practice Admin"]


class TestAssistant:

    def test_summary(self, client, owner_headers):
        with patch("companion.services.llm.generate", new=AsyncMock(return_value="Summary.")) as generate:
            response = client.post("/assistant/summary", json={"raw_notes": "notes", "patient_name": "John"},
                                   headers=owner_headers)
        assert response.status_code == 200
        assert response.json() == {"text": "Summary."}
        assert "John" in generate.await_args.args[0]

    def test_reminder_email_formats_date_and_time(self, client, owner_headers):
        with patch("companion.services.llm.generate", new=AsyncMock(return_value="Dear John")) as generate:
            response = client.post("/assistant/reminder-email",
                                   json={"patient_name": "John", "date": "2026-10-22", "time": "11:00:00"},
                                   headers=owner_headers)
        assert response.json() == {"text": "Dear John"}
        prompt = generate.await_args.args[0]
        assert "Date: 2026-10-22" in prompt and "Time: 11:00" in prompt

    def test_questions_without_key_returns_placeholder(self, client, owner_headers, settings_override):
        settings_override(OPENAI_API_KEY=None)
        response = client.post("/assistant/questions", json={"context": "grief"}, headers=owner_headers)
        assert response.json() == {"text": "API Key missing."}

    def test_assistant_requires_auth(self, client):
        assert client.post("/assistant/questions", json={"context": "grief"}).status_code == 401
