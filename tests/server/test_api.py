"""Tests for the ParcelTrack HTTP API (FastAPI TestClient)"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from parceltrack import ParcelTrack
from parceltrack.server import app as server_app
from parceltrack.server.app import create_api

UPS_TN = "1Z999AA10123456784"

UPS_TRACK_BODY = {
    "trackResponse": {
        "shipment": [{
            "package": [{
                "trackingNumber": UPS_TN,
                "currentStatus": {"type": "I"},
                "activity": [{
                    "status": {"type": "I", "description": "Departed Facility"},
                    "location": {"address": {"city": "Louisville", "stateProvince": "KY"}},
                    "date": "20250114",
                    "time": "103000",
                }],
            }],
        }],
    },
}


def _ups_handler(request):
    if request.url.path == "/security/v1/oauth/token":
        return httpx.Response(200, json={"access_token": "tok", "expires_in": "14399"})
    if request.url.path.startswith("/api/track/v1/details/"):
        return httpx.Response(200, json=UPS_TRACK_BODY)
    return httpx.Response(404, json={})


def _make_parceltrack():
    return ParcelTrack(
        {
            "ups": {"client_id": "id", "client_secret": "secret", "base_url": "https://ups.test"},
            "local": {"latency_seconds": 0, "failure_rate": 0},
            "scheduler": {"enabled": False},
        },
        transport=httpx.MockTransport(_ups_handler),
    )


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(server_app, "_API_KEY", None)
    with TestClient(create_api(_make_parceltrack())) as test_client:
        yield test_client


@pytest.fixture
def secured_client(monkeypatch):
    monkeypatch.setattr(server_app, "_API_KEY", "secret-key")
    with TestClient(create_api(_make_parceltrack())) as test_client:
        yield test_client


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestTrack:

    def test_local_shipment(self, client):
        resp = client.get("/api/track/LOC123DEL")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "OK"
        assert body["carrier"] == "LOCAL"
        assert body["detected_carrier"] == "LOCAL"
        assert body["data"]["status"] == "DELIVERED"
        assert body["data"]["estimated_delivery"] is None
        assert "raw" not in body["data"]

    def test_ups_shipment_through_mock_transport(self, client):
        resp = client.get(f"/api/track/{UPS_TN}")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["carrier"] == "UPS"
        assert data["status"] == "TRANSIT"
        assert data["current_location"] == "Louisville, KY"
        assert data["events"][0]["timestamp"].startswith("2025-01-14T10:30:00")

    def test_debug_includes_raw(self, client):
        resp = client.get(f"/api/track/{UPS_TN}", params={"debug": "true"})
        assert resp.json()["data"]["raw"] == UPS_TRACK_BODY

    def test_refresh_flag(self, client):
        client.get("/api/track/LOC1")
        resp = client.get("/api/track/LOC1", params={"refresh": "true"})
        assert resp.status_code == 200

    def test_undetermined_carrier(self, client):
        resp = client.get("/api/track/HELLO")

        assert resp.status_code == 400
        body = resp.json()
        assert body["status"] == "ERROR"
        assert body["error_code"] == "CARRIER_UNDETERMINED"

    def test_unsupported_carrier(self, client):
        resp = client.get("/api/track/123456789012")

        assert resp.status_code == 400
        assert resp.json()["error_code"] == "UNSUPPORTED_CARRIER"

    def test_carrier_error_status_passthrough(self, client):
        resp = client.get("/api/track/LOCNOTFOUND")

        assert resp.status_code == 404
        assert resp.json()["error_code"] == "NOT_FOUND"

    def test_raw_passthrough(self, client):
        resp = client.get(f"/api/track/{UPS_TN}/raw")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert json.loads(resp.content) == UPS_TRACK_BODY


class TestDetect:

    def test_detected(self, client):
        resp = client.get("/api/track/detect/1z999aa10123456784")

        assert resp.status_code == 200
        body = resp.json()
        assert body["carrier"] == "UPS"
        assert body["tracking_number"] == UPS_TN
        assert body["supported"] is True
        assert body["tracking_url"].endswith(UPS_TN)

    def test_routable_but_unsupported(self, client):
        body = client.get("/api/track/detect/123456789012").json()
        assert body["carrier"] == "FEDEX"
        assert body["supported"] is False

    def test_undetected_lists_formats(self, client):
        resp = client.get("/api/track/detect/HELLO")

        assert resp.status_code == 400
        body = resp.json()
        assert body["tracking_number"] == "HELLO"
        assert set(body["supported_formats"]) == {"UPS", "USPS", "LOCAL"}


class TestCacheRoutes:

    def test_stats_and_invalidate(self, client):
        client.get("/api/track/LOC1")
        client.get("/api/track/LOC2DEL")

        stats = client.get("/api/track/cache/stats").json()["data"]
        assert stats["total_cached"] == 2
        assert stats["by_carrier"] == {"LOCAL": 2}

        resp = client.delete("/api/track/cache/LOC1")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Cache invalidated for LOC1"
        assert client.get("/api/track/cache/stats").json()["data"]["total_cached"] == 1

    def test_invalidate_missing_is_ok(self, client):
        assert client.delete("/api/track/cache/LOC404").status_code == 200


class TestCronRoutes:

    def test_trigger_refresh(self, client):
        resp = client.post("/api/cron/refresh")

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["result"] == {"refreshed": 0, "errors": 0}

    def test_status(self, client):
        client.post("/api/cron/refresh")
        status = client.get("/api/cron/status").json()
        assert status["run_count"] == 1
        assert status["running"] is False


class TestApiKey:

    def test_missing_key_rejected(self, secured_client):
        assert secured_client.delete("/api/track/cache/LOC1").status_code == 401
        assert secured_client.post("/api/cron/refresh").status_code == 401

    def test_x_api_key_header(self, secured_client):
        resp = secured_client.delete("/api/track/cache/LOC1", headers={"X-API-Key": "secret-key"})
        assert resp.status_code == 200

    def test_bearer_token(self, secured_client):
        resp = secured_client.post(
            "/api/cron/refresh", headers={"Authorization": "Bearer secret-key"}
        )
        assert resp.status_code == 200

    def test_reads_are_open(self, secured_client):
        assert secured_client.get("/api/track/LOC1").status_code == 200
