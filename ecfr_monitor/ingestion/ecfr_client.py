"""
eCFR API client for the agency directory and dated title content.

The API is public and does not require an API key.
"""

from datetime import date
from typing import Any, Dict, List, Optional
import requests
import structlog
from pydantic import ValidationError

from ..core.exceptions import AgencyFeedError
from ..core.models import (
    AgencyRecord, FetchResult, RawContent, SizeSource, StructuralSummary
)

logger = structlog.get_logger(__name__)


class ECFRClient:
    """Client for the eCFR admin and versioner APIs.

    Every fetch method issues exactly one request. Failures while fetching
    title content are reported through ``FetchResult`` so the caller can
    decide whether to retry; failures of the agency directory raise
    ``AgencyFeedError`` because nothing can be synced without it.
    """

    AGENCIES_PATH = "/api/admin/v1/agencies.json"
    FULL_PATH = "/api/versioner/v1/full/{date}/title-{title}.xml"
    STRUCTURE_PATH = "/api/versioner/v1/structure/{date}/title-{title}.json"

    def __init__(self, base_url: str = "https://www.ecfr.gov", timeout: float = 120.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "ECFRGrowthMonitor/1.0",
            "Accept": "application/json, application/xml"
        })

    def title_url(self, title: int, snapshot_date: date, source: SizeSource = SizeSource.FULL) -> str:
        """Build the versioner URL for one title at one date."""
        template = self.FULL_PATH if SizeSource(source) == SizeSource.FULL else self.STRUCTURE_PATH
        return self.base_url + template.format(date=snapshot_date.isoformat(), title=title)

    def fetch_agencies(self, include_children: bool = False) -> List[AgencyRecord]:
        """Get agencies that reference at least one CFR title.

        Args:
            include_children: Also return sub-agencies listed under a parent

        Returns:
            Agencies in directory order

        Raises:
            AgencyFeedError: If the directory is unreachable, malformed or empty
        """
        url = self.base_url + self.AGENCIES_PATH
        logger.info("Fetching eCFR agency directory", url=url)

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise AgencyFeedError(f"Agency directory unavailable: {e}") from e
        except ValueError as e:
            raise AgencyFeedError(f"Agency directory is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise AgencyFeedError("Agency directory has unexpected shape")

        entries = data.get("agencies") or []
        if include_children:
            entries = list(self._flatten(entries))

        agencies = []
        for entry in entries:
            agency = self._parse_agency(entry)
            if agency and agency.cfr_references:
                agencies.append(agency)

        if not agencies:
            raise AgencyFeedError("Agency directory lists no agencies with title references")

        logger.info("Retrieved agencies", count=len(agencies))
        return agencies

    def _flatten(self, entries: List[Dict[str, Any]]):
        for entry in entries:
            yield entry
            yield from self._flatten(entry.get("children") or [])

    def _parse_agency(self, entry: Dict[str, Any]) -> Optional[AgencyRecord]:
        """Parse one directory entry, skipping references without a title."""
        try:
            references = [
                {"title": ref["title"], "chapter": ref.get("chapter")}
                for ref in entry.get("cfr_references") or []
                if ref.get("title") is not None
            ]
            return AgencyRecord(
                slug=entry["slug"],
                name=entry["name"],
                short_name=entry.get("short_name") or entry["name"],
                cfr_references=references,
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.error("Failed to parse agency entry",
                         slug=entry.get("slug") if isinstance(entry, dict) else None,
                         error=str(e))
            return None

    def fetch_title(self, title: int, snapshot_date: date,
                    source: SizeSource = SizeSource.FULL) -> FetchResult:
        """Fetch one title as it stood on ``snapshot_date``.

        Args:
            title: CFR title number
            snapshot_date: Point-in-time date for the versioner API
            source: ``full`` for the XML document, ``structure`` for the size summary

        Returns:
            FetchResult with a RawContent or StructuralSummary payload on success
        """
        url = self.title_url(title, snapshot_date, source)

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            return FetchResult(ok=False, error=f"request failed: {e}")

        if not 200 <= response.status_code < 300:
            return FetchResult(ok=False, status_code=response.status_code,
                               error=f"HTTP {response.status_code}")

        if not response.content:
            return FetchResult(ok=False, status_code=response.status_code, error="empty body")

        if SizeSource(source) == SizeSource.FULL:
            return FetchResult(ok=True, status_code=response.status_code,
                               payload=RawContent(text=response.text))

        return self._parse_structure(response)

    def _parse_structure(self, response: requests.Response) -> FetchResult:
        """Read the reported size from a structure document's root node."""
        try:
            data = response.json()
            size = data["size"]
            if isinstance(size, bool) or not isinstance(size, int):
                raise TypeError(f"size is {type(size).__name__}")
            payload = StructuralSummary(reported_size=size)
        except (ValueError, KeyError, TypeError) as e:
            return FetchResult(ok=False, status_code=response.status_code,
                               error=f"malformed structure document: {e}")

        return FetchResult(ok=True, status_code=response.status_code, payload=payload)
