"""Tests for administrator notification dispatch."""

import asyncio
import datetime

import pytest

from app.services.outbreak_notifications import (
    NotificationDispatcher,
    build_notification,
    notification_message,
    notification_title,
)
from app.services.outbreak_types import (
    DiseaseType,
    NotificationRecord,
    OutbreakAlert,
    RiskLevel,
    SeverityBreakdown,
    ThresholdExceeded,
)

from conftest import NOW, TODAY, UNIT_A, FakeOutbreakDataSource


def make_alert(unit_id=UNIT_A.id, unit_name=UNIT_A.name, risk=RiskLevel.HIGH, custom=None,
               disease_type=DiseaseType.DENGUE):
    return OutbreakAlert(
        disease_type=disease_type,
        custom_disease_name=custom,
        geographic_unit_id=unit_id,
        geographic_unit_name=unit_name,
        case_count=8,
        severity_breakdown=SeverityBreakdown(mild=8),
        risk_level=risk,
        thresholds_exceeded=[
            ThresholdExceeded(5, 3, "5+ cases in 3 days (rapid spike)", 6),
            ThresholdExceeded(5, 14, "5+ cases in 14 days", 8),
        ],
        first_case_date=TODAY - datetime.timedelta(days=10),
        latest_case_date=TODAY,
    )


def dispatcher_for(source):
    return NotificationDispatcher(source, dedup_window_hours=24, concurrency=2, clock=lambda: NOW)


class TestNotificationContent:
    def test_title(self):
        assert notification_title(make_alert()) == "HIGH Outbreak Alert: dengue in Unit A (unit 1)"

    def test_title_uses_custom_name(self):
        alert = make_alert(disease_type=DiseaseType.OTHER, custom="Cholera")
        assert notification_title(alert) == "HIGH Outbreak Alert: Cholera in Unit A (unit 1)"

    def test_message_lists_thresholds(self):
        assert notification_message(make_alert()) == (
            "8 cases detected in Unit A "
            "(5+ cases in 3 days (rapid spike); 5+ cases in 14 days)"
        )

    def test_city_wide_outbreak_id(self):
        record = build_notification(make_alert(unit_id=None, unit_name="City-wide"), "admin-1", NOW)
        assert record.data["outbreak_id"].startswith("dengue_citywide_")
        assert record.type == "outbreak_alert"
        assert not record.read


class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_every_administrator_notified(self, source):
        stats = await dispatcher_for(source).dispatch([make_alert()])
        assert stats.created == 2
        assert {n.user_id for n in source.notifications} == {"admin-1", "admin-2"}

    @pytest.mark.asyncio
    async def test_recent_duplicate_is_skipped(self, source):
        title = notification_title(make_alert())
        source.notifications.append(
            NotificationRecord("admin-1", title, "", created_at=NOW - datetime.timedelta(hours=23))
        )
        stats = await dispatcher_for(source).dispatch([make_alert()])
        assert stats.created == 1
        assert stats.skipped_duplicates == 1

    @pytest.mark.asyncio
    async def test_old_notification_does_not_block(self, source):
        title = notification_title(make_alert())
        source.notifications.append(
            NotificationRecord("admin-1", title, "", created_at=NOW - datetime.timedelta(hours=25))
        )
        stats = await dispatcher_for(source).dispatch([make_alert()])
        assert stats.created == 2

    @pytest.mark.asyncio
    async def test_different_units_are_not_duplicates(self, source):
        alerts = [make_alert(), make_alert(unit_id=2, unit_name="Unit B")]
        stats = await dispatcher_for(source).dispatch(alerts)
        assert stats.created == 4

    @pytest.mark.asyncio
    async def test_failed_insert_does_not_stop_others(self, source):
        source.fail_recipients = {"admin-1"}
        stats = await dispatcher_for(source).dispatch([make_alert()])
        assert stats.created == 1
        assert stats.failed == 1
        assert [n.user_id for n in source.notifications] == ["admin-2"]

    @pytest.mark.asyncio
    async def test_administrator_lookup_failure_sends_nothing(self):
        source = FakeOutbreakDataSource(fail={"list_active_administrators"})
        stats = await dispatcher_for(source).dispatch([make_alert()])
        assert stats.as_dict() == {"created": 0, "skipped_duplicates": 0, "failed": 0}

    @pytest.mark.asyncio
    async def test_no_administrators(self):
        source = FakeOutbreakDataSource(administrators=())
        stats = await dispatcher_for(source).dispatch([make_alert()])
        assert stats.created == 0
        assert source.notifications == []

    @pytest.mark.asyncio
    async def test_no_alerts_skips_lookup(self, source):
        await dispatcher_for(source).dispatch([])
        assert source.calls["list_active_administrators"] == 0

    @pytest.mark.asyncio
    async def test_units_sharing_a_name_are_not_duplicates(self, source):
        alerts = [
            make_alert(unit_id=1, unit_name="Unknown"),
            make_alert(unit_id=2, unit_name="Unknown"),
        ]
        stats = await dispatcher_for(source).dispatch(alerts)
        assert stats.created == 4
        assert stats.skipped_duplicates == 0

    @pytest.mark.asyncio
    async def test_overlapping_dispatches_insert_once(self):
        source = FakeOutbreakDataSource(delay=0.01)
        dispatcher = dispatcher_for(source)

        first, second = await asyncio.gather(
            dispatcher.dispatch([make_alert()]),
            dispatcher.dispatch([make_alert()]),
        )
        assert first.created + second.created == 2
        assert first.skipped_duplicates + second.skipped_duplicates == 2
        assert sorted(n.user_id for n in source.notifications) == ["admin-1", "admin-2"]
        assert dispatcher._locks == {}
