from pydantic import BaseModel
from datetime import date, datetime
from typing import List, Optional

from app.services.outbreak_types import DiseaseType, RiskLevel


class SeverityBreakdownPublic(BaseModel):
    critical: int = 0
    severe: int = 0
    moderate: int = 0
    mild: int = 0

    class Config:
        from_attributes = True


class ThresholdExceededPublic(BaseModel):
    threshold: int
    window_days: int
    description: str
    case_count: int

    class Config:
        from_attributes = True


class OutbreakAlertPublic(BaseModel):
    disease_type: DiseaseType
    custom_disease_name: Optional[str] = None
    geographic_unit_id: Optional[int] = None
    geographic_unit_name: str
    case_count: int
    severity_breakdown: SeverityBreakdownPublic
    risk_level: RiskLevel
    thresholds_exceeded: List[ThresholdExceededPublic]
    first_case_date: date
    latest_case_date: date

    class Config:
        from_attributes = True


class ScanMetadata(BaseModel):
    total_outbreaks: int
    critical_count: int
    high_count: int
    medium_count: int
    auto_notify_enabled: bool
    checked_at: datetime
    execution_time_ms: int
    thresholds_checked: int
    degraded_sources: List[str] = []


class OutbreakScanResponse(BaseModel):
    success: bool = True
    data: List[OutbreakAlertPublic]
    metadata: ScanMetadata


class ThresholdRulePublic(BaseModel):
    disease_type: DiseaseType
    case_count_threshold: int
    window_days: int
    description: str

    class Config:
        from_attributes = True


class ScanErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = None
