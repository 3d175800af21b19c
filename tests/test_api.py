"""
Tests for the onboarding HTTP API.

Sessions get engines wired to the conftest fakes via a dependency override.
"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import (
    VALID_CODE,
    FakeDirectoryService,
    FakeGoalGenerationService,
    FakeRegistryService,
    FakeVerificationService,
)
from onboarding import api as onboarding_api
from onboarding.engine import WizardEngine
from onboarding.services import CompanyLookup
from registrar.web.app import app


@pytest.fixture
def directory():
    return FakeDirectoryService(CompanyLookup(company_name="Acme", services="Consulting. Advisory."))


@pytest.fixture
def client(directory):
    def factory():
        return WizardEngine(
            verification=FakeVerificationService(),
            directory=directory,
            goal_generator=FakeGoalGenerationService(),
            registry=FakeRegistryService(),
        )

    app.dependency_overrides[onboarding_api.get_engine_factory] = lambda: factory
    yield TestClient(app)
    app.dependency_overrides.clear()
    onboarding_api.sessions.clear()


def _start(client) -> str:
    response = client.post("/onboarding/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


class TestSessions:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_new_session_starts_on_sign_up(self, client):
        response = client.post("/onboarding/sessions")
        body = response.json()

        assert body["state"]["step"] == "sign_up"
        assert body["state"]["progress"] == 17
        assert body["state"]["status"]["busy"] is False

    def test_unknown_session(self, client):
        assert client.get("/onboarding/sessions/nope").status_code == 404
        assert client.post("/onboarding/sessions/nope/advance").status_code == 404

    def test_delete_session(self, client):
        session_id = _start(client)
        assert client.delete(f"/onboarding/sessions/{session_id}").status_code == 204
        assert client.get(f"/onboarding/sessions/{session_id}").status_code == 404

    def test_options(self, client):
        body = client.get("/onboarding/options").json()
        assert "Subscription" in body["pricing_models"]
        assert body["code_length"] == 6


class TestWizardFlow:

    def test_validation_errors_returned(self, client):
        session_id = _start(client)
        client.patch(f"/onboarding/sessions/{session_id}/person", json={"email": "ada@gmail.com"})

        body = client.post(f"/onboarding/sessions/{session_id}/advance").json()

        assert body["ok"] is False
        assert set(body["field_errors"]) == {"first_name", "last_name", "email"}
        assert body["state"]["step"] == "sign_up"

    def test_unknown_field_rejected(self, client):
        session_id = _start(client)
        response = client.patch(f"/onboarding/sessions/{session_id}/person", json={"verified": True})
        assert response.status_code == 422

    def test_full_flow(self, client):
        session_id = _start(client)
        base = f"/onboarding/sessions/{session_id}"

        client.patch(f"{base}/person", json={
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@acme.io",
        })
        assert client.post(f"{base}/advance").json()["state"]["step"] == "verify_code"

        client.put(f"{base}/code", json={"code": VALID_CODE})
        body = client.post(f"{base}/advance").json()
        assert body["state"]["step"] == "company_info"
        assert body["state"]["person"]["verified"] is True

        body = client.post(f"{base}/autofill").json()
        assert body["state"]["company"]["services"] == ["Consulting", "Advisory"]
        assert body["state"]["company"]["domains"] == ["acme.io"]

        client.patch(f"{base}/company", json={"website": "https://acme.io"})
        assert client.post(f"{base}/advance").json()["state"]["step"] == "goals"

        body = client.post(f"{base}/goals/generate").json()
        assert body["state"]["goals"]["short_term"] == "Launch Acme agent"

        assert client.post(f"{base}/advance").json()["state"]["step"] == "review"

        body = client.post(f"{base}/submit").json()
        assert body["ok"] is True
        assert body["state"]["step"] == "success"
        assert body["state"]["result"]["agent_id"] == "agent-1"
        assert body["state"]["progress"] == 100

        body = client.post(f"{base}/registry/toggle").json()
        assert body["state"]["registry"]["visible"] is True
        assert "agent-1" in body["state"]["registry"]["agents"]

        body = client.post(f"{base}/reset").json()
        assert body["state"]["step"] == "sign_up"

    def test_services_text(self, client):
        session_id = _start(client)
        body = client.patch(
            f"/onboarding/sessions/{session_id}/company",
            json={"services_text": "Audit. Tax."},
        ).json()
        assert body["state"]["company"]["services"] == ["Audit", "Tax"]

    def test_back_from_sign_up_is_noop(self, client):
        session_id = _start(client)
        body = client.post(f"/onboarding/sessions/{session_id}/back").json()
        assert body["ok"] is False
        assert body["state"]["step"] == "sign_up"

    def test_invalid_transition_is_400(self, client):
        session_id = _start(client)
        assert client.post(f"/onboarding/sessions/{session_id}/submit").status_code == 400
        assert client.post(f"/onboarding/sessions/{session_id}/autofill").status_code == 400

    def test_busy_is_409(self, client):
        session_id = _start(client)
        onboarding_api.sessions[session_id]["engine"].state.status.busy = True

        response = client.post(f"/onboarding/sessions/{session_id}/advance")

        assert response.status_code == 409

    def test_person_edit_while_busy_is_409(self, client):
        session_id = _start(client)
        engine = onboarding_api.sessions[session_id]["engine"]
        engine.state.status.busy = True

        response = client.patch(f"/onboarding/sessions/{session_id}/person", json={"first_name": "Eve"})

        assert response.status_code == 409
        assert engine.person.first_name == ""

    def test_email_locked_after_sign_up(self, client):
        session_id = _start(client)
        base = f"/onboarding/sessions/{session_id}"
        client.patch(f"{base}/person", json={"first_name": "Ada", "last_name": "Lovelace", "email": "ada@acme.io"})
        client.post(f"{base}/advance")

        response = client.patch(f"{base}/person", json={"email": "ceo@other.com"})

        assert response.status_code == 400
        assert client.get(base).json()["state"]["person"]["email"] == "ada@acme.io"

    def test_unknown_pricing_model_is_422(self, client):
        session_id = _start(client)
        base = f"/onboarding/sessions/{session_id}"

        response = client.patch(f"{base}/company", json={"pricing_model": "Pay-what-you-want"})

        assert response.status_code == 422
        assert client.get(base).json()["state"]["company"]["pricing_model"] == "Subscription"


class TestSessionStore:

    def test_expired_session_is_gone(self, client):
        session_id = _start(client)
        onboarding_api.sessions[session_id]["expires_at"] = datetime.now() - timedelta(seconds=1)

        assert client.get(f"/onboarding/sessions/{session_id}").status_code == 404
        assert session_id not in onboarding_api.sessions

    def test_expired_sessions_pruned_on_create(self, client):
        stale = _start(client)
        onboarding_api.sessions[stale]["expires_at"] = datetime.now() - timedelta(seconds=1)

        _start(client)

        assert stale not in onboarding_api.sessions

    def test_least_recently_used_evicted_when_full(self, client, monkeypatch):
        monkeypatch.setattr(onboarding_api, "MAX_SESSIONS", 2)
        first = _start(client)
        second = _start(client)
        client.get(f"/onboarding/sessions/{first}")  # first is now the most recent

        third = _start(client)

        assert set(onboarding_api.sessions) == {first, third}
        assert second not in onboarding_api.sessions

    def test_access_extends_lifetime(self, client):
        session_id = _start(client)
        soon = datetime.now() + timedelta(seconds=5)
        onboarding_api.sessions[session_id]["expires_at"] = soon

        client.get(f"/onboarding/sessions/{session_id}")

        assert onboarding_api.sessions[session_id]["expires_at"] > soon
