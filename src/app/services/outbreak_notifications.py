import asyncio
import datetime
import logging
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.services.outbreak_sources import OutbreakDataSource
from app.services.outbreak_types import NotificationRecord, OutbreakAlert

logger = logging.getLogger(__name__)


CREATED = "created"
DUPLICATE = "duplicate"
FAILED = "failed"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def notification_location(alert: OutbreakAlert) -> str:
    """Unit name plus its id; names can be missing or shared, ids cannot."""
    if alert.geographic_unit_id is None:
        return alert.geographic_unit_name
    return f"{alert.geographic_unit_name} (unit {alert.geographic_unit_id})"


def notification_title(alert: OutbreakAlert) -> str:
    # Also the dedup key per recipient.
    return (
        f"{alert.risk_level.value.upper()} Outbreak Alert: "
        f"{alert.disease_label} in {notification_location(alert)}"
    )


def notification_message(alert: OutbreakAlert) -> str:
    descriptions = "; ".join(t.description for t in alert.thresholds_exceeded)
    return f"{alert.case_count} cases detected in {alert.geographic_unit_name} ({descriptions})"


def build_notification(
    alert: OutbreakAlert, recipient_id: str, now: datetime.datetime
) -> NotificationRecord:
    unit_part = alert.geographic_unit_id if alert.geographic_unit_id is not None else "citywide"
    return NotificationRecord(
        user_id=recipient_id,
        title=notification_title(alert),
        message=notification_message(alert),
        data={
            "outbreak_id": f"{alert.disease_type.value}_{unit_part}_{int(now.timestamp() * 1000)}",
            "disease_type": alert.disease_type.value,
            "custom_disease_name": alert.custom_disease_name,
            "geographic_unit_id": alert.geographic_unit_id,
            "geographic_unit_name": alert.geographic_unit_name,
            "case_count": alert.case_count,
            "risk_level": alert.risk_level.value,
        },
        created_at=now,
    )


@dataclass
class DispatchStats:
    created: int = 0
    skipped_duplicates: int = 0
    failed: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


class NotificationDispatcher:
    """
    Best-effort delivery of outbreak alerts to every active administrator.

    A notification is skipped when the same recipient already received one
    with the same title inside the dedup window. Failures are logged and
    counted, never raised.
    """

    def __init__(
        self,
        source: OutbreakDataSource,
        dedup_window_hours: Optional[int] = None,
        concurrency: Optional[int] = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ):
        self.source = source
        self.dedup_window = datetime.timedelta(
            hours=settings.OUTBREAK_NOTIFICATION_DEDUP_HOURS if dedup_window_hours is None else dedup_window_hours
        )
        self.concurrency = concurrency or settings.OUTBREAK_NOTIFY_CONCURRENCY
        self.clock = clock
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._lock_users: Dict[Tuple[str, str], int] = {}

    async def _notify(
        self,
        semaphore: asyncio.Semaphore,
        alert: OutbreakAlert,
        recipient_id: str,
        now: datetime.datetime,
    ) -> str:

        title = notification_title(alert)
        # Check-then-insert is serialized per (recipient, title) across overlapping scans.
        key = (recipient_id, title)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1

        try:
            async with lock, semaphore:
                try:
                    if await self.source.find_recent_notification(recipient_id, title, now - self.dedup_window):
                        logger.debug(f"Notification '{title}' already sent to {recipient_id}, skipping.")
                        return DUPLICATE

                    await self.source.insert_notification(build_notification(alert, recipient_id, now))
                    return CREATED

                except Exception as e:
                    logger.error(f"[Outbreak Notification] Failed to notify {recipient_id} about '{title}': {e}")
                    return FAILED
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def dispatch(self, alerts: Sequence[OutbreakAlert]) -> DispatchStats:

        stats = DispatchStats()
        if not alerts:
            return stats

        try:
            administrators: List[str] = await self.source.list_active_administrators()
        except Exception as e:
            logger.error(f"[Outbreak Notification] Error fetching administrators: {e}")
            return stats

        if not administrators:
            logger.info("[Outbreak Notification] No active administrators found")
            return stats

        now = self.clock()
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks = [
            self._notify(semaphore, alert, recipient_id, now)
            for alert in alerts
            for recipient_id in administrators
        ]

        results = await asyncio.gather(*tasks, return_exceptions=True)

        for result in results:
            if result == CREATED:
                stats.created += 1
            elif result == DUPLICATE:
                stats.skipped_duplicates += 1
            else:
                if isinstance(result, Exception):
                    logger.error(f"[Outbreak Notification] Notification task failed: {result}")
                stats.failed += 1

        logger.info(
            f"[Outbreak Notification] Created {stats.created} notifications "
            f"({stats.skipped_duplicates} duplicates skipped, {stats.failed} failed)"
        )
        return stats
