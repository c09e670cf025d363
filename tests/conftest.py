"""
Shared fixtures for the eCFR monitor test suite.
"""
from datetime import date

import pytest

from ecfr_monitor.core.models import AgencyRecord, FetchResult, RawContent, TitleReference
from ecfr_monitor.storage.database import ECFRDatabase


def words_for(title: int, snapshot_date: date) -> int:
    """Deterministic synthetic word count for a title at a date."""
    return title * 100 + (snapshot_date.year - 2022) * 10


def make_title_result(title: int, snapshot_date: date) -> FetchResult:
    """Successful full-text fetch whose cleaned text has ``words_for`` words."""
    body = " ".join(["reg"] * words_for(title, snapshot_date))
    return FetchResult(ok=True, status_code=200, payload=RawContent(text=f"<P>{body}</P>"))


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database in a temporary directory."""
    return ECFRDatabase(str(tmp_path / "ecfr.sqlite"))


@pytest.fixture
def snapshot_dates():
    return [date(2024, 1, 1), date(2023, 1, 1), date(2022, 1, 1)]


@pytest.fixture
def sample_agencies():
    """Two agencies sharing title 7."""
    return [
        AgencyRecord(
            slug="agriculture-department",
            name="Department of Agriculture",
            short_name="USDA",
            cfr_references=[
                TitleReference(title=7, chapter="I"),
                TitleReference(title=2, chapter="IV"),
            ],
        ),
        AgencyRecord(
            slug="forest-service",
            name="Forest Service",
            short_name="Forest Service",
            cfr_references=[
                TitleReference(title=36, chapter="II"),
                TitleReference(title=7, chapter="XXXII"),
            ],
        ),
    ]
