"""HTTP tests for the outbreak endpoints."""

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.outbreak_cache import OutbreakResultCache
from app.services.outbreak_service import OutbreakDetectionError, OutbreakDetectionService, get_outbreak_service
from app.services.outbreak_thresholds import OUTBREAK_THRESHOLDS, RiskPolicy

from conftest import TODAY, FakeClock, FakeOutbreakDataSource, make_case


@pytest.fixture
def service():
    source = FakeOutbreakDataSource(cases=[make_case(days_ago=d) for d in range(5)])
    service = OutbreakDetectionService(
        source,
        cache=OutbreakResultCache(ttl_seconds=120, max_entries=10, clock=FakeClock()),
        policy=RiskPolicy(),
        today=lambda: TODAY,
    )
    app.dependency_overrides[get_outbreak_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


@pytest.fixture
def client(service):
    return TestClient(app)


def test_detect_returns_alerts(client):
    response = client.get("/api/v1/outbreaks/detect")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["metadata"]["total_outbreaks"] == 1
    assert body["metadata"]["auto_notify_enabled"] is False
    alert = body["data"][0]
    assert alert["disease_type"] == "dengue"
    assert alert["geographic_unit_name"] == "Unit A"
    assert alert["risk_level"] == "medium"
    assert alert["severity_breakdown"] == {"critical": 0, "severe": 0, "moderate": 0, "mild": 5}


def test_detect_with_filters(client):
    response = client.get("/api/v1/outbreaks/detect", params={"disease_type": "malaria", "geographic_unit_id": 1})
    assert response.status_code == 200
    assert response.json()["data"] == []


def test_unknown_disease_type_is_rejected(client):
    response = client.get("/api/v1/outbreaks/detect", params={"disease_type": "flu"})
    assert response.status_code == 400


def test_non_positive_unit_is_rejected(client):
    response = client.get("/api/v1/outbreaks/detect", params={"geographic_unit_id": 0})
    assert response.status_code == 400


def test_detection_failure_returns_500(client, service, monkeypatch):
    async def failing_scan(*args, **kwargs):
        raise OutbreakDetectionError("database unavailable")

    monkeypatch.setattr(service, "run_scan", failing_scan)
    response = client.get("/api/v1/outbreaks/detect")
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Failed to detect outbreaks",
        "details": "database unavailable",
    }


def test_thresholds(client):
    response = client.get("/api/v1/outbreaks/thresholds")
    assert response.status_code == 200
    assert len(response.json()) == len(OUTBREAK_THRESHOLDS)
    assert response.json()[0]["disease_type"] == "dengue"


def test_clear_cache(client, service):
    client.get("/api/v1/outbreaks/detect")
    response = client.post("/api/v1/outbreaks/cache/clear")
    assert response.json() == {"message": "Outbreak cache cleared.", "cleared": 1}
    assert len(service.cache) == 0
