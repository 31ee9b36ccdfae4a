import asyncio
import datetime
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.services.outbreak_sources import OutbreakDataSource
from app.services.outbreak_thresholds import max_window_days
from app.services.outbreak_types import (
    ACTIVE_STATUS,
    Aggregated,
    CaseRecord,
    Contribution,
    DiseaseType,
    HistoricalStatistic,
    Individual,
    SeverityBreakdown,
    ThresholdRule,
)

logger = logging.getLogger(__name__)


# (geographic_unit_id, custom_disease_name) inside one disease type
GroupKey = Tuple[Optional[int], Optional[str]]


@dataclass(frozen=True)
class DailySignal:
    count: int = 0
    severity: SeverityBreakdown = SeverityBreakdown()

    def __add__(self, other: "DailySignal") -> "DailySignal":
        return DailySignal(self.count + other.count, self.severity + other.severity)


@dataclass(frozen=True)
class WindowTotals:
    count: int
    severity: SeverityBreakdown
    first_date: datetime.date
    latest_date: datetime.date


def window_totals(
    daily: Dict[datetime.date, DailySignal],
    start: datetime.date,
    end: datetime.date,
) -> Optional[WindowTotals]:
    """Sums the buckets dated within ``[start, end]``; None when nothing falls inside."""
    dates = sorted(d for d in daily if start <= d <= end)
    if not dates:
        return None

    total = DailySignal()
    for d in dates:
        total = total + daily[d]
    if total.count <= 0:
        return None
    return WindowTotals(total.count, total.severity, dates[0], dates[-1])


@dataclass
class AggregatedSignals:
    today: datetime.date
    since: datetime.date
    index: Dict[DiseaseType, Dict[GroupKey, Dict[datetime.date, DailySignal]]]
    geographic_units: Dict[int, str] = field(default_factory=dict)
    case_records: int = 0
    statistic_rows: int = 0
    degraded_sources: List[str] = field(default_factory=list)

    def groups_for(self, disease_type: DiseaseType) -> Dict[GroupKey, Dict[datetime.date, DailySignal]]:
        return self.index.get(disease_type, {})


def build_signal_index(
    cases: Iterable[CaseRecord],
    statistics: Iterable[HistoricalStatistic],
) -> Dict[DiseaseType, Dict[GroupKey, Dict[datetime.date, DailySignal]]]:

    index: Dict[DiseaseType, Dict[GroupKey, Dict[datetime.date, DailySignal]]] = defaultdict(
        lambda: defaultdict(dict)
    )

    sources = [Individual(case) for case in cases if case.status == ACTIVE_STATUS]
    sources += [Aggregated(stat) for stat in statistics if stat.case_count > 0]

    for source in sources:
        contribution = Contribution.from_source(source)
        key = (contribution.geographic_unit_id, contribution.custom_disease_name)
        daily = index[contribution.disease_type][key]
        daily[contribution.on_date] = daily.get(contribution.on_date, DailySignal()) + DailySignal(
            contribution.count, contribution.severity
        )

    return {disease: dict(groups) for disease, groups in index.items()}


class SignalAggregator:

    def __init__(self, source: OutbreakDataSource):
        self.source = source

    async def fetch(
        self,
        rules: Sequence[ThresholdRule],
        today: datetime.date,
        disease_type: Optional[DiseaseType] = None,
    ) -> AggregatedSignals:

        since = today - datetime.timedelta(days=max_window_days(rules))
        logger.info(f"Fetching outbreak signals since {since} ({max_window_days(rules)} day window)...")

        results = await asyncio.gather(
            self.source.list_active_cases(disease_type, since),
            self.source.list_historical_statistics(since),
            self.source.list_geographic_units(),
            return_exceptions=True,
        )

        degraded: List[str] = []
        loaded = []
        for name, result in zip(("cases", "statistics", "geographic_units"), results):
            if isinstance(result, Exception):
                logger.error(f"Reading {name} failed, continuing without it: {result}")
                degraded.append(name)
                loaded.append([])
            else:
                loaded.append(result)

        cases, statistics, units = loaded
        logger.info(
            f"Fetched {len(cases)} cases, {len(statistics)} statistics "
            f"and {len(units)} geographic units."
        )

        return AggregatedSignals(
            today=today,
            since=since,
            index=build_signal_index(cases, statistics),
            geographic_units={unit.id: unit.name for unit in units},
            case_records=len(cases),
            statistic_rows=len(statistics),
            degraded_sources=degraded,
        )
