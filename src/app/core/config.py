from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    LOG_LEVEL: str = "INFO"

    # Result cache
    OUTBREAK_CACHE_TTL_SECONDS: float = 120
    OUTBREAK_CACHE_MAX_ENTRIES: int = 50

    # Notifications
    OUTBREAK_NOTIFICATION_DEDUP_HOURS: int = 24
    OUTBREAK_NOTIFY_CONCURRENCY: int = 10

    OUTBREAK_FETCH_PAGE_SIZE: int = 500

    # Scheduled scans
    SCHEDULER_ENABLED: bool = True
    OUTBREAK_SCAN_INTERVAL_MINUTES: int = 10
    OUTBREAK_SCAN_ON_STARTUP: bool = True
    OUTBREAK_SCHEDULED_AUTO_NOTIFY: bool = True
    OUTBREAK_SCAN_TIMEOUT_SECONDS: Optional[float] = None
    SCHEDULER_TIMEZONE: str = "Asia/Manila"

    # Risk classification cutoffs
    RISK_CRITICAL_MIN_CRITICAL_CASES: int = 3
    RISK_HIGH_MIN_SEVERE_CASES: int = 5
    RISK_HIGH_THRESHOLD_MULTIPLIER: float = 1.5

    GEOGRAPHIC_UNITS_SOURCE: str = "./data/geographic_units.csv"


settings = Settings()
