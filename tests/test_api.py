import threading
import time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from conftest import FakePageSpeed
from main import create_app

START = "/api/analyze/start"
PROCESS = "/api/analyze/process"
FORM = {"firstName": "Anna", "email": "Anna@Example.com", "websiteUrl": "example.com"}


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client


def _start(client, **overrides):
    response = client.post(START, json={**FORM, **overrides})
    assert response.status_code == 200
    return response.json()["leadId"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_start_creates_queued_lead(client, services):
    response = client.post(START, json=FORM)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Analyse gestartet! Sie können den Fortschritt verfolgen."

    lead = services.database.get_lead(body["leadId"])
    assert lead["email"] == "anna@example.com"
    assert lead["website_url"] == "https://example.com"
    assert lead["status"] == "queued"


def test_start_same_email_reuses_lead(client):
    first = _start(client)
    second = _start(client, email="anna@example.com", websiteUrl="https://example.at")
    assert first == second


@pytest.mark.parametrize(
    "payload",
    [{}, {"firstName": "Anna", "email": "anna@example.com"}, {**FORM, "firstName": "   "}],
)
def test_start_requires_all_fields(client, payload):
    response = client.post(START, json=payload)
    assert response.status_code == 400
    assert response.json() == {"error": "Alle Felder sind erforderlich"}


def test_start_rejects_malformed_body(client):
    response = client.post(START, content="kein json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json()["error"] == "Alle Felder sind erforderlich"


def test_start_rejects_invalid_email(client):
    response = client.post(START, json={**FORM, "email": "anna-at-example"})
    assert response.status_code == 400
    assert response.json() == {"error": "Bitte geben Sie eine gültige E-Mail-Adresse ein"}


def test_status_of_queued_lead(client):
    lead_id = _start(client)

    body = client.get(f"/api/analyze/{lead_id}/status").json()

    assert body["status"] == "queued"
    assert body["step"] == 0
    assert body["totalSteps"] == 7
    assert body["label"] == "In Warteschlange..."
    assert body["isCompleted"] is False
    assert body["scores"] is None
    assert body["websiteUrl"] == "https://example.com"
    assert body["firstName"] == "Anna"


def test_status_of_unknown_lead(client):
    response = client.get("/api/analyze/missing/status")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


def test_process_requires_lead_id(client):
    response = client.post(PROCESS, json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Lead ID required"}


def test_process_unknown_lead(client):
    response = client.post(PROCESS, json={"leadId": "missing"})
    assert response.status_code == 404
    assert response.json() == {"error": "Lead not found"}


def test_process_runs_analysis(client):
    lead_id = _start(client)

    response = client.post(PROCESS, json={"leadId": lead_id})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["analysisId"]
    assert body["hasDataForSEO"] is False
    assert body["scores"] == {
        "performanceMobile": 42,
        "performanceDesktop": 42,
        "seo": 91,
        "accessibility": 78,
        "security": 30,
    }

    status = client.get(f"/api/analyze/{lead_id}/status").json()
    assert status["status"] == "completed"
    assert status["step"] == 7
    assert status["isCompleted"] is True
    assert status["scores"]["performanceMobile"] == 42


def test_process_failure(client, services):
    services.pipeline.pagespeed = FakePageSpeed(fail_strategies={"mobile"})
    lead_id = _start(client)

    response = client.post(PROCESS, json={"leadId": lead_id})

    assert response.status_code == 500
    assert response.json() == {"error": "Analyse fehlgeschlagen", "message": "mobile run failed"}

    status = client.get(f"/api/analyze/{lead_id}/status").json()
    assert status["isFailed"] is True
    assert status["step"] == -1


def test_process_timeout_leaves_run_in_background(client, services):
    release = threading.Event()
    services.settings.process_timeout_seconds = 0.05
    services.pipeline = SimpleNamespace(run=lambda lead_id: release.wait(5))
    lead_id = _start(client)

    try:
        response = client.post(PROCESS, json={"leadId": lead_id})
        assert response.status_code == 504
        assert services.runner.in_flight(lead_id)
    finally:
        release.set()


def test_auto_process_runs_after_start(client, services):
    services.settings.auto_process = True
    lead_id = _start(client)

    deadline = time.monotonic() + 5
    status = {}
    while time.monotonic() < deadline:
        status = client.get(f"/api/analyze/{lead_id}/status").json()
        if status["status"] in ("completed", "failed"):
            break
        time.sleep(0.05)

    assert status["status"] == "completed"


def test_cors_allows_any_origin(client):
    response = client.options(
        START,
        headers={"Origin": "https://kunde.at", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
