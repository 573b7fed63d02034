"""
HTTP surface tests.

Drives the full complaint → analysis → escalation → evidence → verification
flow through the FastAPI app with an in-memory database.
"""
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from compliance_monitor.config import INTERNAL_API_KEY
from compliance_monitor.database import get_db
from compliance_monitor.dependencies import get_analysis_service, get_catalog, get_clock
from compliance_monitor.main import app
from compliance_monitor.services.feedback import build_analysis_service


@pytest.fixture
def client(session_factory, catalog, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_analysis(db: Session = Depends(get_db)):
        return build_analysis_service(db, catalog, api_key="", clock=clock)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_analysis_service] = override_analysis
    yield TestClient(app)
    app.dependency_overrides.clear()


def _submit_and_analyze(client, **overrides):
    payload = {
        "entity_name": "Ministry of Interior",
        "channel": "Main Service Center",
        "traits": ["Long waiting time", "Rude staff", "Complex forms"],
        "dislike_comment": "I was waiting in the queue for hours",
    }
    payload.update(overrides)
    response = client.post("/feedback", json=payload)
    assert response.status_code == 200
    feedback_id = response.json()["feedback_id"]

    response = client.post("/analyze", json={"feedback_id": feedback_id})
    assert response.status_code == 200
    return response.json()


def _notify(client, analysis):
    return client.post("/reviewer/notify", json={
        "feedback_id": analysis["feedback_id"],
        "entity": "Ministry of Interior",
        "violated_codes": analysis["violations"],
        "violation_summary": "Excessive waiting time",
        "notification_text": "Please respond within 20 days.",
    })


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestFeedbackRoutes:

    def test_submit_requires_entity(self, client):
        assert client.post("/feedback", json={"entity_name": ""}).status_code == 400

    def test_analyze_twice_conflicts(self, client):
        analysis = _submit_and_analyze(client)
        assert analysis["mode"] == "mock"
        assert analysis["classification"]["severity"] == "high"
        assert [v["code"] for v in analysis["violations"]] == ["2.1.1", "1.7.1"]

        response = client.post("/analyze", json={"feedback_id": analysis["feedback_id"]})
        assert response.status_code == 409

    def test_analyze_unknown(self, client):
        assert client.post("/analyze", json={"feedback_id": 999}).status_code == 404

    def test_entities(self, client):
        _submit_and_analyze(client)
        assert client.get("/feedback/entities").json() == {"entities": ["Ministry of Interior"]}


class TestCaseFlow:

    def test_full_lifecycle(self, client, clock):
        analysis = _submit_and_analyze(client)
        inbox = client.get("/reviewer/inbox").json()
        assert [item["id"] for item in inbox["items"]] == [analysis["feedback_id"]]

        response = _notify(client, analysis)
        assert response.status_code == 200
        case_id = response.json()["case_id"]
        assert response.json()["case_number"] == "CE-2025-0001"

        assert _notify(client, analysis).status_code == 409
        assert client.get("/reviewer/inbox").json()["total"] == 0

        response = client.post(f"/cases/{case_id}/evidence", json={"evidence_text": ""})
        assert response.status_code == 400

        clock.advance(days=4)
        response = client.post(f"/cases/{case_id}/evidence", json={
            "evidence_text": "New queue system deployed",
            "evidence_files": ["queue-report.pdf"],
        })
        assert response.status_code == 200
        assert response.json()["status"] == "evidence_submitted"

        response = client.post(f"/cases/{case_id}/verify", json={"action": "approve"})
        assert response.status_code == 400
        response = client.post(f"/cases/{case_id}/verify", json={"action": "reject"})
        assert response.status_code == 400

        response = client.post(f"/cases/{case_id}/verify", json={"action": "accept"})
        assert response.status_code == 200
        assert response.json()["status"] == "compliant"

        case = client.get(f"/cases/{case_id}").json()
        assert case["status"] == "compliant"
        assert [e["type"] for e in case["history"]] == ["evidence_submitted", "accepted"]
        assert case["history"][0]["round"] == 1
        assert all("pillar" in v for v in case["violated_codes"])

        response = client.post(f"/cases/{case_id}/evidence", json={"evidence_text": "More"})
        assert response.status_code == 409

    def test_case_reads(self, client):
        analysis = _submit_and_analyze(client)
        case_id = _notify(client, analysis).json()["case_id"]

        listing = client.get("/cases", params={"entity": "Ministry of Interior"}).json()
        assert [c["id"] for c in listing["cases"]] == [case_id]
        assert client.get("/cases", params={"entity": "Ministry of Health"}).json()["total"] == 0
        assert client.get("/cases/999").status_code == 404

        overview = client.get("/reviewer/overview").json()
        assert overview["active_cases"] == 1
        assert overview["pending_reviews"] == 0

    def test_dismiss(self, client):
        analysis = _submit_and_analyze(client)
        response = client.post("/reviewer/dismiss", json={"feedback_id": analysis["feedback_id"]})
        assert response.status_code == 200
        assert client.get("/reviewer/inbox").json()["items"] == []
        assert client.post("/reviewer/dismiss", json={"feedback_id": 999}).status_code == 404


class TestPenaltySweepRoute:

    def test_requires_internal_key(self, client):
        response = client.post("/internal/penalty-sweep", headers={"X-Internal-Key": "wrong"})
        assert response.status_code == 403

    def test_sweep_and_close(self, client, clock):
        analysis = _submit_and_analyze(client)
        case_id = _notify(client, analysis).json()["case_id"]
        clock.advance(days=21)

        response = client.post("/internal/penalty-sweep", headers={"X-Internal-Key": INTERNAL_API_KEY})
        assert response.status_code == 200
        assert response.json()["penalised"] == ["CE-2025-0001"]
        assert client.get(f"/cases/{case_id}").json()["status"] == "penalty"

        assert client.post(f"/cases/{case_id}/close", json={}).status_code == 400
        response = client.post(f"/cases/{case_id}/close", json={"reviewer_notes": "No evidence received"})
        assert response.status_code == 200
        assert response.json()["status"] == "non_compliant"
