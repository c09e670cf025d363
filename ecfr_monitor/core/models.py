"""
Data models for the eCFR regulatory growth monitor.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, Field


class SizeSource(str, Enum):
    """Where a snapshot's size comes from."""
    FULL = "full"
    STRUCTURE = "structure"


class Trend(str, Enum):
    """Direction of an agency's aggregate metric over the tracked window."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    UNCHANGED = "unchanged"


class TitleReference(BaseModel):
    """A CFR title (and chapter) an agency is responsible for."""
    title: int
    chapter: Optional[str] = None


class AgencyRecord(BaseModel):
    """Agency entry from the eCFR agency directory."""
    slug: str
    name: str
    short_name: Optional[str] = None
    cfr_references: List[TitleReference] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.short_name or self.name


class RawContent(BaseModel):
    """Full document text as served by the versioned-content endpoint."""
    kind: Literal["raw"] = "raw"
    text: str


class StructuralSummary(BaseModel):
    """Structure document carrying an upstream-reported content size."""
    kind: Literal["structure"] = "structure"
    reported_size: int = Field(ge=0)


Payload = Annotated[Union[RawContent, StructuralSummary], Field(discriminator="kind")]


class FetchResult(BaseModel):
    """Outcome of a single request for one (title, date) pair."""
    ok: bool
    status_code: Optional[int] = None
    payload: Optional[Payload] = None
    error: Optional[str] = None


class SnapshotMetrics(BaseModel):
    """Size metrics derived from one fetched payload."""
    byte_size: int = Field(ge=0)
    word_count: Optional[int] = Field(default=None, ge=0)
    fingerprint: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        if self.byte_size == 0:
            return True
        return self.word_count == 0


class SeriesPoint(BaseModel):
    """Aggregate metric for one agency at one snapshot date."""
    snapshot_date: date
    value: int


class VelocityReport(BaseModel):
    """Growth statistics for one agency."""
    slug: str
    metric: str
    velocity: int = 0
    current: Optional[int] = None
    trend: Trend = Trend.UNCHANGED
    series: List[SeriesPoint] = Field(default_factory=list)


class SyncRun(BaseModel):
    """Sync execution tracking."""
    run_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str = "running"  # running, completed, failed

    agencies_processed: int = 0
    references_seen: int = 0
    snapshots_created: int = 0
    cache_hits: int = 0
    fetch_attempts: int = 0
    empty_results: int = 0
    unresolved: List[Tuple[int, date]] = Field(default_factory=list)

    error_message: Optional[str] = None
