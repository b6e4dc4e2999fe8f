"""API tests through FastAPI's TestClient against an in-memory SQLite database."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from gatepass.database import create_tables, get_db
from gatepass.main import app
from gatepass.utils.errors import StoreUnavailableError

VISITOR = {
    "visitor_name": "Asha Rao",
    "visitor_phone": "9876543210",
    "referred_by": "Front desk",
    "vehicles_to_view": ["veh-1"],
    "purpose": "inspection",
}


@pytest.fixture
def client():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_tables(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


def create_visitor(client, role="clerk", fields=None):
    return client.post("/api/v1/gate-passes", headers={"X-User-Role": role},
                       json={"intent": "visitor", "fields": fields or VISITOR})


class TestGatePassApi:
    def test_create_opens_approval_request(self, client):
        resp = create_visitor(client)
        assert resp.status_code == 201
        body = resp.json()
        assert body["gate_pass"]["status"] == "pending"
        assert body["gate_pass"]["approval_status"] == "pending"
        assert body["gate_pass"]["expiry"]["severity"] == "warning"
        assert body["approval_request"]["current_approver_role"] == "manager"

    def test_invalid_form_is_422(self, client):
        resp = create_visitor(client, fields={"visitor_name": "A"})
        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert detail["error"] == "validation_error"
        assert detail["errors"]["visitor_name"]["kind"] == "invalid_format"
        assert detail["errors"]["visitor_phone"]["kind"] == "missing"

    def test_approve_then_enter(self, client):
        created = create_visitor(client).json()
        request_id = created["approval_request"]["id"]
        pass_id = created["gate_pass"]["id"]

        resp = client.post(f"/api/v1/approvals/{request_id}/approve",
                           headers={"X-User-Role": "manager"}, json={"expected_status": "pending"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"
        assert resp.json()["approval_notes"] == "Approved by manager"

        resp = client.post(f"/api/v1/gate-passes/{pass_id}/entry", json={"expected_status": "pending"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "inside"

        resp = client.post(f"/api/v1/gate-passes/{pass_id}/entry", json={"expected_status": "pending"})
        assert resp.status_code == 409
        assert resp.json()["detail"]["reason"] == "conflict"

        counters = client.get("/api/v1/dashboard/counters").json()
        assert counters["visitors_inside"] == 1
        assert counters["pending_approvals"] == 0

    def test_entry_before_approval_is_409(self, client):
        pass_id = create_visitor(client).json()["gate_pass"]["id"]
        resp = client.post(f"/api/v1/gate-passes/{pass_id}/entry", json={"expected_status": "pending"})
        assert resp.status_code == 409
        assert resp.json()["detail"]["reason"] == "invalid_transition"

    def test_unknown_pass_is_404(self, client):
        assert client.get("/api/v1/gate-passes/nope").status_code == 404
        resp = client.post("/api/v1/gate-passes/nope/exit", json={"expected_status": "inside"})
        assert resp.status_code == 404

    def test_list_filters_by_intent(self, client):
        create_visitor(client)
        client.post("/api/v1/gate-passes", headers={"X-User-Role": "admin"}, json={
            "intent": "vehicle_inbound", "fields": {"vehicle_id": "veh-2", "purpose": "service"}})
        assert len(client.get("/api/v1/gate-passes").json()) == 2
        inbound = client.get("/api/v1/gate-passes", params={"intent": "vehicle_inbound"}).json()
        assert [p["intent"] for p in inbound] == ["vehicle_inbound"]

    def test_get_pass_includes_request(self, client):
        created = create_visitor(client).json()
        body = client.get(f"/api/v1/gate-passes/{created['gate_pass']['id']}").json()
        assert body["approval_request"]["id"] == created["approval_request"]["id"]


class TestApprovalApi:
    def test_reject_requires_reason(self, client):
        request_id = create_visitor(client).json()["approval_request"]["id"]
        resp = client.post(f"/api/v1/approvals/{request_id}/reject", json={"expected_status": "pending"})
        assert resp.status_code == 422
        assert resp.json()["detail"]["reason"] == "missing_reason"

    def test_reject_raises_alert(self, client):
        created = create_visitor(client).json()
        request_id = created["approval_request"]["id"]
        resp = client.post(f"/api/v1/approvals/{request_id}/reject",
                           json={"expected_status": "pending", "reason": "not on the list"})
        assert resp.status_code == 200
        alerts = client.get("/api/v1/alerts", params={"alert_type": "pass_rejected"}).json()
        assert len(alerts) == 1
        assert alerts[0]["pass_id"] == created["gate_pass"]["id"]

    def test_escalate_moves_queue(self, client):
        request_id = create_visitor(client).json()["approval_request"]["id"]
        resp = client.post(f"/api/v1/approvals/{request_id}/escalate",
                           json={"expected_status": "pending", "reason": "manager away"})
        assert resp.status_code == 200
        assert resp.json()["approval_level"] == 2
        queue = client.get("/api/v1/approvals", params={"approver_role": "director"}).json()
        assert [r["id"] for r in queue] == [request_id]

    def test_stale_status_is_409(self, client):
        request_id = create_visitor(client).json()["approval_request"]["id"]
        resp = client.post(f"/api/v1/approvals/{request_id}/approve", json={"expected_status": "escalated"})
        assert resp.status_code == 409


class TestVehicleApi:
    def test_outbound_search_create(self, client):
        resp = client.post("/api/v1/gate-passes", headers={"X-User-Role": "admin"}, json={
            "intent": "vehicle_outbound",
            "registration_number": "ka 01 ab 1234",
            "make": "Tata",
            "fields": {"driver_name": "Ravi Kumar", "driver_contact": "9123456780", "purpose": "test_drive"},
        })
        assert resp.status_code == 201
        assert resp.json()["gate_pass"]["status"] == "out"
        lookup = client.get("/api/v1/vehicles/lookup/KA01AB1234").json()
        assert lookup["registered"] is True
        assert lookup["id"] == resp.json()["gate_pass"]["vehicle_id"]

    def test_register_twice_is_400(self, client):
        assert client.post("/api/v1/vehicles", json={"registration_number": "MH12DE1433"}).status_code == 201
        assert client.post("/api/v1/vehicles", json={"registration_number": "mh12 de1433"}).status_code == 400
        assert len(client.get("/api/v1/vehicles").json()) == 1


class TestHealthApi:
    def test_health(self, client):
        body = client.get("/api/v1/health").json()
        assert body["status"] == "ok"
        assert body["database"] == "ok"

    def test_store_failure_is_503(self, client):
        with patch("gatepass.services.sql_pass_store.SqlPassStore.list_passes",
                   side_effect=StoreUnavailableError("database is locked")):
            resp = client.get("/api/v1/dashboard/counters")
        assert resp.status_code == 503
        assert resp.json() == {"detail": "Unavailable"}
