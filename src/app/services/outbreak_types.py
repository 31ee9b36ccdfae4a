import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class DiseaseType(str, Enum):
    DENGUE = "dengue"
    HIV_AIDS = "hiv_aids"
    MALARIA = "malaria"
    MEASLES = "measles"
    ANIMAL_BITE = "animal_bite"
    PREGNANCY_COMPLICATIONS = "pregnancy_complications"
    OTHER = "other"


class Severity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}

ACTIVE_STATUS = "active"


def normalize_custom_name(disease_type: DiseaseType, custom_disease_name: Optional[str]) -> Optional[str]:
    """Custom names only partition the ``other`` disease type."""
    if disease_type != DiseaseType.OTHER or not custom_disease_name:
        return None
    return custom_disease_name.strip() or None


@dataclass(frozen=True)
class GeographicUnit:
    id: int
    name: str


@dataclass(frozen=True)
class CaseRecord:
    id: Any
    geographic_unit_id: Optional[int]
    diagnosis_date: datetime.date
    severity: Severity
    disease_type: DiseaseType
    custom_disease_name: Optional[str] = None
    status: str = ACTIVE_STATUS


@dataclass(frozen=True)
class HistoricalStatistic:
    record_date: datetime.date
    case_count: int
    disease_type: DiseaseType
    geographic_unit_id: Optional[int] = None
    severity: Optional[Severity] = None
    custom_disease_name: Optional[str] = None


@dataclass(frozen=True)
class SeverityBreakdown:
    critical: int = 0
    severe: int = 0
    moderate: int = 0
    mild: int = 0

    @classmethod
    def of(cls, severity: Severity, count: int = 1) -> "SeverityBreakdown":
        return cls(**{severity.value: count})

    def __add__(self, other: "SeverityBreakdown") -> "SeverityBreakdown":
        return SeverityBreakdown(
            critical=self.critical + other.critical,
            severe=self.severe + other.severe,
            moderate=self.moderate + other.moderate,
            mild=self.mild + other.mild,
        )


# Both signal sources are reduced to the same contribution shape before any
# rule is evaluated.
@dataclass(frozen=True)
class Individual:
    record: CaseRecord


@dataclass(frozen=True)
class Aggregated:
    statistic: HistoricalStatistic


CaseContribution = Union[Individual, Aggregated]


@dataclass(frozen=True)
class Contribution:
    disease_type: DiseaseType
    custom_disease_name: Optional[str]
    geographic_unit_id: Optional[int]
    on_date: datetime.date
    count: int
    severity: SeverityBreakdown

    @classmethod
    def from_source(cls, source: CaseContribution) -> "Contribution":
        if isinstance(source, Individual):
            record = source.record
            return cls(
                disease_type=record.disease_type,
                custom_disease_name=normalize_custom_name(record.disease_type, record.custom_disease_name),
                geographic_unit_id=record.geographic_unit_id,
                on_date=record.diagnosis_date,
                count=1,
                severity=SeverityBreakdown.of(record.severity),
            )

        stat = source.statistic
        # Statistics imported without a severity are counted as moderate.
        severity = stat.severity or Severity.MODERATE
        return cls(
            disease_type=stat.disease_type,
            custom_disease_name=normalize_custom_name(stat.disease_type, stat.custom_disease_name),
            geographic_unit_id=stat.geographic_unit_id,
            on_date=stat.record_date,
            count=stat.case_count,
            severity=SeverityBreakdown.of(severity, stat.case_count),
        )


@dataclass(frozen=True)
class ThresholdRule:
    disease_type: DiseaseType
    case_count_threshold: int
    window_days: int
    description: str


@dataclass(frozen=True)
class OutbreakCandidate:
    disease_type: DiseaseType
    custom_disease_name: Optional[str]
    geographic_unit_id: Optional[int]
    case_count: int
    severity: SeverityBreakdown
    first_case_date: datetime.date
    latest_case_date: datetime.date
    risk_level: RiskLevel
    rule: ThresholdRule

    @property
    def is_distributed(self) -> bool:
        return self.geographic_unit_id is None

    @property
    def group_key(self) -> Tuple[DiseaseType, Optional[int], Optional[str]]:
        return (self.disease_type, self.geographic_unit_id, self.custom_disease_name)


@dataclass(frozen=True)
class ThresholdExceeded:
    threshold: int
    window_days: int
    description: str
    case_count: int


@dataclass(frozen=True)
class OutbreakAlert:
    disease_type: DiseaseType
    custom_disease_name: Optional[str]
    geographic_unit_id: Optional[int]
    geographic_unit_name: str
    case_count: int
    severity_breakdown: SeverityBreakdown
    risk_level: RiskLevel
    thresholds_exceeded: List[ThresholdExceeded]
    first_case_date: datetime.date
    latest_case_date: datetime.date

    @property
    def disease_label(self) -> str:
        return self.custom_disease_name or self.disease_type.value


@dataclass
class NotificationRecord:
    user_id: str
    title: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    type: str = "outbreak_alert"
    read: bool = False
    created_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
