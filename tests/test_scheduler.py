import pytest

from app.core import scheduler as scheduler_module
from app.services.outbreak_cache import OutbreakResultCache
from app.services.outbreak_service import OutbreakDetectionService
from app.services.outbreak_thresholds import RiskPolicy

from conftest import TODAY, FakeClock, FakeOutbreakDataSource, make_case


@pytest.fixture
def patch_service(monkeypatch):
    def install(source):
        service = OutbreakDetectionService(
            source,
            cache=OutbreakResultCache(ttl_seconds=120, max_entries=10, clock=FakeClock()),
            policy=RiskPolicy(),
            today=lambda: TODAY,
        )
        monkeypatch.setattr("app.services.outbreak_service.get_outbreak_service", lambda: service)
        return service
    return install


@pytest.mark.asyncio
async def test_successful_scan_updates_job_status(patch_service, monkeypatch):
    monkeypatch.setattr(scheduler_module.settings, "OUTBREAK_SCHEDULED_AUTO_NOTIFY", False)
    patch_service(FakeOutbreakDataSource(cases=[make_case() for _ in range(5)]))

    await scheduler_module.scheduled_outbreak_scan()

    assert scheduler_module.job_status["last_run_status"] == "Success"
    assert scheduler_module.job_status["last_outbreak_count"] == 1
    assert scheduler_module.job_status["last_run_time"] is not None


@pytest.mark.asyncio
async def test_failed_scan_is_recorded(patch_service, monkeypatch):
    service = patch_service(FakeOutbreakDataSource())

    async def failing_scan(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(service, "run_scan", failing_scan)
    await scheduler_module.scheduled_outbreak_scan()

    assert scheduler_module.job_status["last_run_status"] == "Failed"
    assert scheduler_module.job_status["last_run_error"] == "database unavailable"
