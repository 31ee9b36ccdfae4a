import pytest
from fastapi.testclient import TestClient

from app.core.scheduler import next_outbreak_scan_time
from app.db.session import get_db
from app.main import app
from app.services.outbreak_cache import OutbreakResultCache
from app.services.outbreak_service import OutbreakDetectionService, get_outbreak_service
from app.services.outbreak_thresholds import RiskPolicy

from conftest import TODAY, FakeClock, FakeOutbreakDataSource


class FakeSession:

    def __init__(self, fail: bool = False):
        self.fail = fail

    async def execute(self, statement):
        if self.fail:
            raise ConnectionError("connection refused")


@pytest.fixture
def override():
    def install(db_fails: bool):
        service = OutbreakDetectionService(
            FakeOutbreakDataSource(),
            cache=OutbreakResultCache(ttl_seconds=120, max_entries=10, clock=FakeClock()),
            policy=RiskPolicy(),
            today=lambda: TODAY,
        )
        service.cache.put("all:all", "cached")

        async def fake_db():
            yield FakeSession(fail=db_fails)

        app.dependency_overrides[get_db] = fake_db
        app.dependency_overrides[get_outbreak_service] = lambda: service
        return TestClient(app)

    yield install
    app.dependency_overrides.clear()


def test_health_ok(override):
    body = override(db_fails=False).get("/api/v1/health").json()
    assert body["status"] == "ok"
    assert body["database_status"] == "ok"
    assert body["outbreak_cache"] == {"entries": 1, "ttl_seconds": 120, "enabled": True}
    assert "last_outbreak_scan" in body


def test_health_degraded_without_database(override):
    body = override(db_fails=True).get("/api/v1/health").json()
    assert body["status"] == "degraded"
    assert body["database_status"] == "error"


def test_no_next_scan_before_scheduler_setup():
    assert next_outbreak_scan_time() is None
