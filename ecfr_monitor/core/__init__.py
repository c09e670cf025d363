"""
Core module for the eCFR regulatory growth monitor.
"""

from .config import settings
from .exceptions import AgencyFeedError, AgencyNotFoundError, ECFRMonitorError
from .models import *

__all__ = [
    "settings", "AgencyFeedError", "AgencyNotFoundError", "ECFRMonitorError",
    "SizeSource", "Trend", "TitleReference", "AgencyRecord", "RawContent",
    "StructuralSummary", "Payload", "FetchResult", "SnapshotMetrics",
    "SeriesPoint", "VelocityReport", "SyncRun",
]
