from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from app.core.config import settings
from app.services.outbreak_types import DiseaseType, RiskLevel, SeverityBreakdown, ThresholdRule


OUTBREAK_THRESHOLDS: Tuple[ThresholdRule, ...] = (
    ThresholdRule(DiseaseType.DENGUE, 5, 14, "5+ cases in 14 days"),
    ThresholdRule(DiseaseType.DENGUE, 5, 3, "5+ cases in 3 days (rapid spike)"),
    ThresholdRule(DiseaseType.HIV_AIDS, 3, 30, "3+ new cases in 30 days"),
    ThresholdRule(DiseaseType.MALARIA, 3, 14, "3+ cases in 14 days"),
    ThresholdRule(DiseaseType.MEASLES, 3, 14, "3+ cases in 14 days (highly contagious)"),
    ThresholdRule(DiseaseType.ANIMAL_BITE, 1, 7, "Any animal bite/rabies case (immediate alert)"),
    ThresholdRule(DiseaseType.PREGNANCY_COMPLICATIONS, 5, 30, "5+ complications in 30 days"),
    ThresholdRule(DiseaseType.OTHER, 3, 14, "3+ cases in 14 days (custom disease)"),
)


@dataclass(frozen=True)
class RiskPolicy:
    critical_min_critical_cases: int = 3
    high_min_severe_cases: int = 5
    high_threshold_multiplier: float = 1.5

    @classmethod
    def from_settings(cls) -> "RiskPolicy":
        return cls(
            critical_min_critical_cases=settings.RISK_CRITICAL_MIN_CRITICAL_CASES,
            high_min_severe_cases=settings.RISK_HIGH_MIN_SEVERE_CASES,
            high_threshold_multiplier=settings.RISK_HIGH_THRESHOLD_MULTIPLIER,
        )

    def classify(self, case_count: int, severity: SeverityBreakdown, threshold: int) -> RiskLevel:
        if severity.critical >= self.critical_min_critical_cases:
            return RiskLevel.CRITICAL
        if severity.severe >= self.high_min_severe_cases:
            return RiskLevel.HIGH
        if case_count >= threshold * self.high_threshold_multiplier:
            return RiskLevel.HIGH
        return RiskLevel.MEDIUM


def rules_for(
    disease_type: Optional[DiseaseType],
    rules: Iterable[ThresholdRule] = OUTBREAK_THRESHOLDS,
) -> Tuple[ThresholdRule, ...]:
    if disease_type is None:
        return tuple(rules)
    return tuple(rule for rule in rules if rule.disease_type == disease_type)


def max_window_days(rules: Sequence[ThresholdRule]) -> int:
    if not rules:
        return 0
    return max(rule.window_days for rule in rules)
