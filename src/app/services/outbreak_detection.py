"""
Rule evaluation over aggregated signals.

Every rule is evaluated independently against its own trailing window. A
rule yields one localized candidate per geographic unit whose count reaches
the threshold, or, when no unit reaches it on its own, a single distributed
candidate if the count summed over all units does. Groups of the ``other``
disease type are partitioned by custom disease name.
"""
import datetime
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.services.outbreak_thresholds import RiskPolicy
from app.services.outbreak_types import OutbreakCandidate, SeverityBreakdown, ThresholdRule
from app.services.signal_aggregator import AggregatedSignals, WindowTotals, window_totals

logger = logging.getLogger(__name__)


def _combine(totals: Iterable[WindowTotals]) -> Optional[WindowTotals]:
    totals = list(totals)
    if not totals:
        return None

    severity = SeverityBreakdown()
    for t in totals:
        severity = severity + t.severity
    return WindowTotals(
        count=sum(t.count for t in totals),
        severity=severity,
        first_date=min(t.first_date for t in totals),
        latest_date=max(t.latest_date for t in totals),
    )


def _candidate(
    rule: ThresholdRule,
    custom_disease_name: Optional[str],
    geographic_unit_id: Optional[int],
    totals: WindowTotals,
    policy: RiskPolicy,
) -> OutbreakCandidate:
    return OutbreakCandidate(
        disease_type=rule.disease_type,
        custom_disease_name=custom_disease_name,
        geographic_unit_id=geographic_unit_id,
        case_count=totals.count,
        severity=totals.severity,
        first_case_date=totals.first_date,
        latest_case_date=totals.latest_date,
        risk_level=policy.classify(totals.count, totals.severity, rule.case_count_threshold),
        rule=rule,
    )


def evaluate_rule(
    rule: ThresholdRule,
    signals: AggregatedSignals,
    policy: RiskPolicy,
    geographic_unit_id: Optional[int] = None,
) -> List[OutbreakCandidate]:

    start = signals.today - datetime.timedelta(days=rule.window_days)
    end = signals.today

    partitions: Dict[Optional[str], List[Tuple[Optional[int], WindowTotals]]] = defaultdict(list)
    for (unit_id, custom_name), daily in signals.groups_for(rule.disease_type).items():
        if geographic_unit_id is not None and unit_id != geographic_unit_id:
            continue
        totals = window_totals(daily, start, end)
        if totals is not None:
            partitions[custom_name].append((unit_id, totals))

    candidates = []
    for custom_name in sorted(partitions, key=lambda name: name or ""):
        unit_totals = partitions[custom_name]

        localized = [
            (unit_id, totals)
            for unit_id, totals in unit_totals
            if unit_id is not None and totals.count >= rule.case_count_threshold
        ]
        for unit_id, totals in sorted(localized, key=lambda item: item[0]):
            candidates.append(_candidate(rule, custom_name, unit_id, totals, policy))

        # A unit filter restricts output to that unit, so no city-wide candidate.
        if localized or geographic_unit_id is not None:
            continue

        combined = _combine(totals for _, totals in unit_totals)
        if combined is not None and combined.count >= rule.case_count_threshold:
            logger.info(
                f"Distributed {rule.disease_type.value} pattern: {combined.count} cases "
                f"across {len(unit_totals)} groups ({rule.description})"
            )
            candidates.append(_candidate(rule, custom_name, None, combined, policy))

    return candidates


def detect_outbreaks(
    signals: AggregatedSignals,
    rules: Sequence[ThresholdRule],
    policy: RiskPolicy,
    geographic_unit_id: Optional[int] = None,
) -> List[OutbreakCandidate]:

    candidates: List[OutbreakCandidate] = []
    for rule in rules:
        found = evaluate_rule(rule, signals, policy, geographic_unit_id)
        logger.debug(
            f"Checked {rule.disease_type.value}: {rule.case_count_threshold}+ cases "
            f"in {rule.window_days} days -> {len(found)} candidates"
        )
        candidates.extend(found)
    return candidates
