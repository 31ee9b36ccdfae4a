import asyncio
import datetime
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.schemas.outbreaks import OutbreakAlertPublic, OutbreakScanResponse, ScanMetadata
from app.services.outbreak_cache import OutbreakResultCache, cache_key
from app.services.outbreak_consolidation import consolidate
from app.services.outbreak_detection import detect_outbreaks
from app.services.outbreak_notifications import NotificationDispatcher
from app.services.outbreak_sources import OutbreakDataSource, SqlOutbreakDataSource
from app.services.outbreak_thresholds import OUTBREAK_THRESHOLDS, RiskPolicy, rules_for
from app.services.outbreak_types import DiseaseType, OutbreakAlert, RiskLevel, ThresholdRule
from app.services.signal_aggregator import SignalAggregator

logger = logging.getLogger(__name__)


def local_today(now: Optional[datetime.datetime] = None) -> datetime.date:
    """Today in the configured time zone, where the sliding windows end."""
    zone = ZoneInfo(settings.SCHEDULER_TIMEZONE)
    if now is None:
        return datetime.datetime.now(zone).date()
    return now.astimezone(zone).date()


class InvalidScanFilterError(ValueError):

    pass


class OutbreakDetectionError(Exception):

    pass


@dataclass(frozen=True)
class ScanFilters:
    disease_type: Optional[DiseaseType] = None
    geographic_unit_id: Optional[int] = None

    @classmethod
    def from_raw(cls, disease_type=None, geographic_unit_id=None) -> "ScanFilters":
        """Validates raw filter values; malformed values are rejected, never defaulted."""
        parsed_disease = None
        if disease_type not in (None, ""):
            try:
                parsed_disease = DiseaseType(disease_type)
            except ValueError:
                raise InvalidScanFilterError(f"Unknown disease_type: {disease_type!r}")

        parsed_unit = None
        if geographic_unit_id not in (None, ""):
            if isinstance(geographic_unit_id, bool):
                raise InvalidScanFilterError(f"Invalid geographic_unit_id: {geographic_unit_id!r}")
            try:
                parsed_unit = int(geographic_unit_id)
            except (TypeError, ValueError):
                raise InvalidScanFilterError(f"Invalid geographic_unit_id: {geographic_unit_id!r}")
            if parsed_unit <= 0:
                raise InvalidScanFilterError(f"Invalid geographic_unit_id: {geographic_unit_id!r}")

        return cls(disease_type=parsed_disease, geographic_unit_id=parsed_unit)

    @property
    def cache_key(self) -> str:
        disease = self.disease_type.value if self.disease_type else None
        return cache_key(disease, self.geographic_unit_id)


def build_response(
    alerts: List[OutbreakAlert],
    auto_notify: bool,
    execution_time_ms: int,
    thresholds_checked: int,
    degraded_sources: List[str],
) -> OutbreakScanResponse:

    def count(level: RiskLevel) -> int:
        return sum(1 for a in alerts if a.risk_level == level)

    return OutbreakScanResponse(
        data=[OutbreakAlertPublic.model_validate(a) for a in alerts],
        metadata=ScanMetadata(
            total_outbreaks=len(alerts),
            critical_count=count(RiskLevel.CRITICAL),
            high_count=count(RiskLevel.HIGH),
            medium_count=count(RiskLevel.MEDIUM),
            auto_notify_enabled=auto_notify,
            checked_at=datetime.datetime.now(datetime.timezone.utc),
            execution_time_ms=execution_time_ms,
            thresholds_checked=thresholds_checked,
            degraded_sources=degraded_sources,
        ),
    )


class OutbreakDetectionService:

    def __init__(
        self,
        source: OutbreakDataSource,
        cache: Optional[OutbreakResultCache] = None,
        rules: Sequence[ThresholdRule] = OUTBREAK_THRESHOLDS,
        policy: Optional[RiskPolicy] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        today: Callable[[], datetime.date] = local_today,
    ):
        self.source = source
        self.cache = cache if cache is not None else OutbreakResultCache()
        self.rules = tuple(rules)
        self.policy = policy or RiskPolicy.from_settings()
        self.aggregator = SignalAggregator(source)
        self.dispatcher = dispatcher or NotificationDispatcher(source)
        self.today = today

    async def run_scan(
        self,
        filters: Optional[ScanFilters] = None,
        auto_notify: bool = False,
        timeout: Optional[float] = None,
    ) -> OutbreakScanResponse:

        filters = filters or ScanFilters()
        logger.info(f"Starting outbreak scan (filters: {filters}, auto_notify: {auto_notify})...")

        async def compute() -> OutbreakScanResponse:
            return await self._scan(filters, auto_notify)

        lookup = self.cache.get_or_compute(filters.cache_key, compute)
        if timeout:
            payload, _ = await asyncio.wait_for(lookup, timeout)
        else:
            payload, _ = await lookup
        return payload

    async def _scan(self, filters: ScanFilters, auto_notify: bool) -> OutbreakScanResponse:

        start_time = time.perf_counter()
        rules = rules_for(filters.disease_type, self.rules)

        try:
            signals = await self.aggregator.fetch(rules, self.today(), filters.disease_type)
            candidates = detect_outbreaks(signals, rules, self.policy, filters.geographic_unit_id)
            alerts = consolidate(candidates, signals.geographic_units)
        except Exception as e:
            logger.error(f"Outbreak scan failed: {e}", exc_info=True)
            raise OutbreakDetectionError(str(e)) from e

        for alert in alerts:
            logger.info(
                f"OUTBREAK: {alert.disease_label} in {alert.geographic_unit_name} - "
                f"{alert.case_count} cases - Risk: {alert.risk_level.value.upper()}"
            )

        if auto_notify and alerts:
            await self.dispatcher.dispatch(alerts)

        execution_time_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            f"Scan complete in {execution_time_ms}ms: {len(alerts)} outbreaks detected "
            f"(checked {len(rules)} thresholds, {len(candidates)} candidates)"
        )

        return build_response(
            alerts,
            auto_notify=auto_notify,
            execution_time_ms=execution_time_ms,
            thresholds_checked=len(rules),
            degraded_sources=signals.degraded_sources,
        )


_service: Optional[OutbreakDetectionService] = None


def get_outbreak_service() -> OutbreakDetectionService:
    global _service
    if _service is None:
        from app.db.session import AsyncSessionFactory

        _service = OutbreakDetectionService(SqlOutbreakDataSource(AsyncSessionFactory))
    return _service
