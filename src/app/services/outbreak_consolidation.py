import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from app.services.outbreak_types import OutbreakAlert, OutbreakCandidate, ThresholdExceeded

logger = logging.getLogger(__name__)


UNKNOWN_UNIT_NAME = "Unknown"
CITY_WIDE_UNIT_NAME = "City-wide"


def geographic_unit_name(geographic_unit_id: Optional[int], geographic_units: Dict[int, str]) -> str:
    if geographic_unit_id is None:
        return CITY_WIDE_UNIT_NAME
    return geographic_units.get(geographic_unit_id, UNKNOWN_UNIT_NAME)


def merge_candidates(group: List[OutbreakCandidate], geographic_units: Dict[int, str]) -> OutbreakAlert:
    """Folds every rule that fired for one (disease, unit, custom name) into a single alert."""
    primary = max(group, key=lambda c: (c.risk_level.rank, c.case_count))

    exceeded = [
        ThresholdExceeded(
            threshold=c.rule.case_count_threshold,
            window_days=c.rule.window_days,
            description=c.rule.description,
            case_count=c.case_count,
        )
        for c in sorted(group, key=lambda c: (c.rule.window_days, c.rule.case_count_threshold))
    ]

    return OutbreakAlert(
        disease_type=primary.disease_type,
        custom_disease_name=primary.custom_disease_name,
        geographic_unit_id=primary.geographic_unit_id,
        geographic_unit_name=geographic_unit_name(primary.geographic_unit_id, geographic_units),
        case_count=primary.case_count,
        severity_breakdown=primary.severity,
        risk_level=primary.risk_level,
        thresholds_exceeded=exceeded,
        first_case_date=min(c.first_case_date for c in group),
        latest_case_date=max(c.latest_case_date for c in group),
    )


def alert_sort_key(alert: OutbreakAlert):
    return (
        -alert.risk_level.rank,
        -alert.case_count,
        alert.disease_type.value,
        alert.custom_disease_name or "",
        alert.geographic_unit_name,
    )


def consolidate(
    candidates: Iterable[OutbreakCandidate],
    geographic_units: Dict[int, str],
) -> List[OutbreakAlert]:

    candidates = list(candidates)
    localized = {
        (c.disease_type, c.custom_disease_name) for c in candidates if not c.is_distributed
    }

    groups: Dict[tuple, List[OutbreakCandidate]] = defaultdict(list)
    for c in candidates:
        if c.is_distributed and (c.disease_type, c.custom_disease_name) in localized:
            logger.info(
                f"Suppressing city-wide {c.disease_type.value} candidate "
                f"({c.rule.description}): a localized cluster already covers it."
            )
            continue
        groups[c.group_key].append(c)

    alerts = [merge_candidates(group, geographic_units) for group in groups.values()]
    alerts.sort(key=alert_sort_key)
    return alerts
