"""
Configuration management for the eCFR regulatory growth monitor.
"""

from datetime import date, datetime
from pathlib import Path
from typing import List, Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def years_before(anchor: date, years: int) -> date:
    """Same calendar day ``years`` years before ``anchor`` (Feb 29 falls back to Feb 28)."""
    try:
        return anchor.replace(year=anchor.year - years)
    except ValueError:
        return anchor.replace(year=anchor.year - years, day=28)


def parse_snapshot_dates(raw: str) -> List[date]:
    """Parse a comma-separated list of ISO dates, most recent first, without duplicates."""
    parsed = set()
    for part in raw.split(","):
        part = part.strip()
        if part:
            parsed.add(datetime.strptime(part, "%Y-%m-%d").date())
    return sorted(parsed, reverse=True)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Upstream API
    ecfr_base_url: str = Field("https://www.ecfr.gov", alias="ECFR_BASE_URL")
    request_timeout_seconds: float = Field(120.0, gt=0, alias="REQUEST_TIMEOUT_SECONDS")

    # Storage
    database_path: str = Field("ecfr.sqlite", alias="DATABASE_PATH")

    # Snapshot selection
    snapshot_dates_raw: Optional[str] = Field(None, alias="SNAPSHOT_DATES")
    snapshot_years_back: int = Field(3, ge=1, alias="SNAPSHOT_YEARS_BACK")
    size_source: Literal["full", "structure"] = Field("full", alias="SIZE_SOURCE")

    # Agency selection (unset limit means every agency in the directory)
    agency_limit: Optional[int] = Field(None, ge=0, alias="AGENCY_LIMIT")
    agency_offset: int = Field(0, ge=0, alias="AGENCY_OFFSET")
    include_sub_agencies: bool = Field(False, alias="INCLUDE_SUB_AGENCIES")

    # Fetch timing
    max_fetch_attempts: int = Field(3, ge=1, alias="MAX_FETCH_ATTEMPTS")
    retry_backoff_seconds: float = Field(2.0, gt=0, alias="RETRY_BACKOFF_SECONDS")
    retry_backoff_factor: float = Field(2.0, gt=1.0, alias="RETRY_BACKOFF_FACTOR")
    request_interval_seconds: float = Field(1.0, ge=0, alias="REQUEST_INTERVAL_SECONDS")

    # Analytics and output
    velocity_metric: Literal["word_count", "byte_size"] = Field("word_count", alias="VELOCITY_METRIC")
    report_dir: str = Field("reports", alias="REPORT_DIR")
    log_dir: str = Field("logs", alias="LOG_DIR")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return Path(__file__).parent.parent.parent

    @property
    def logs_dir(self) -> Path:
        """Get the logs directory."""
        return Path(self.log_dir)

    def snapshot_dates_for(self, today: Optional[date] = None) -> List[date]:
        """Configured snapshot dates, most recent first.

        An explicit ``SNAPSHOT_DATES`` list wins; otherwise the same calendar
        day is taken for each of the last ``snapshot_years_back`` years.
        """
        if self.snapshot_dates_raw:
            return parse_snapshot_dates(self.snapshot_dates_raw)

        anchor = today or date.today()
        return [years_before(anchor, n) for n in range(1, self.snapshot_years_back + 1)]

    @property
    def snapshot_dates(self) -> List[date]:
        return self.snapshot_dates_for()


# Global settings instance
settings = Settings()
