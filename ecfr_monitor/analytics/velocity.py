"""
Regulatory growth velocity per agency.
"""

from typing import List, Tuple
import structlog

from ..core.exceptions import AgencyNotFoundError
from ..core.models import SeriesPoint, Trend, VelocityReport

logger = structlog.get_logger(__name__)

DAYS_PER_YEAR = 365.25
MIN_YEARS = 0.01  # roughly three and a half days


def compute_velocity(series: List[SeriesPoint]) -> Tuple[int, Trend]:
    """Yearly change between the oldest and newest points of a series.

    Args:
        series: Aggregate points; any order, dates must be distinct

    Returns:
        Tuple of (velocity per year, trend direction)
    """
    if len(series) < 2:
        return 0, Trend.UNCHANGED

    ordered = sorted(series, key=lambda point: point.snapshot_date, reverse=True)
    newest, oldest = ordered[0], ordered[-1]
    difference = newest.value - oldest.value

    if difference > 0:
        trend = Trend.INCREASING
    elif difference < 0:
        trend = Trend.DECREASING
    else:
        trend = Trend.UNCHANGED

    years = (newest.snapshot_date - oldest.snapshot_date).days / DAYS_PER_YEAR
    if years <= MIN_YEARS:
        return 0, trend

    return int(round(difference / years)), trend


class VelocityCalculator:
    """Derives growth statistics from an agency's stored snapshot history."""

    def __init__(self, db):
        self.db = db

    def calculate(self, slug: str, metric: str = "word_count") -> VelocityReport:
        """Build the velocity report for one agency.

        Raises:
            AgencyNotFoundError: If the agency has never been synced
        """
        if self.db.get_agency(slug) is None:
            raise AgencyNotFoundError(slug)

        series = self.db.get_agency_history(slug, metric)
        velocity, trend = compute_velocity(series)

        report = VelocityReport(
            slug=slug,
            metric=metric,
            velocity=velocity,
            current=series[0].value if series else None,
            trend=trend,
            series=series,
        )
        logger.debug("Computed velocity", slug=slug, metric=metric,
                     velocity=velocity, trend=trend.value, points=len(series))
        return report

    def calculate_all(self, metric: str = "word_count") -> List[VelocityReport]:
        """Velocity reports for every stored agency, in listing order."""
        return [self.calculate(agency["slug"], metric) for agency in self.db.list_agencies()]
