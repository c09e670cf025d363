"""
Historical snapshot sync for eCFR agencies.

Walks agencies, their title references and the configured snapshot dates
strictly in sequence, fetching only pairs that are not yet stored.
"""

import uuid
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional
import structlog

from ..core.cache import SnapshotCache
from ..core.exceptions import AgencyFeedError
from ..core.models import AgencyRecord, SizeSource, SyncRun
from ..core.retry import RetryPolicy
from ..ingestion.ecfr_client import ECFRClient
from ..processing.metrics import extract_metrics, fingerprint
from ..storage.database import ECFRDatabase

logger = structlog.get_logger(__name__)


class SyncOrchestrator:
    """Synchronizes agency, reference and snapshot rows with the eCFR API."""

    def __init__(self, db: ECFRDatabase, client: ECFRClient,
                 snapshot_dates: Iterable[date],
                 retry_policy: Optional[RetryPolicy] = None,
                 cache: Optional[SnapshotCache] = None,
                 size_source: SizeSource = SizeSource.FULL,
                 agency_limit: Optional[int] = None,
                 agency_offset: int = 0,
                 include_sub_agencies: bool = False,
                 today: Callable[[], date] = date.today):
        self.db = db
        self.client = client
        self.snapshot_dates: List[date] = sorted(set(snapshot_dates), reverse=True)
        if not self.snapshot_dates:
            raise ValueError("At least one snapshot date is required")
        if agency_offset < 0 or (agency_limit is not None and agency_limit < 0):
            raise ValueError("Agency limit and offset must be zero or greater")

        self.retry_policy = retry_policy or RetryPolicy()
        self.cache = cache if cache is not None else SnapshotCache(db)
        self.size_source = SizeSource(size_source)
        self.agency_limit = agency_limit
        self.agency_offset = agency_offset
        self.include_sub_agencies = include_sub_agencies
        self._today = today

    @classmethod
    def from_settings(cls, settings, db: Optional[ECFRDatabase] = None,
                      client: Optional[ECFRClient] = None) -> "SyncOrchestrator":
        """Wire up an orchestrator from application settings."""
        db = db or ECFRDatabase(settings.database_path)
        client = client or ECFRClient(settings.ecfr_base_url, timeout=settings.request_timeout_seconds)
        return cls(
            db=db,
            client=client,
            snapshot_dates=settings.snapshot_dates,
            retry_policy=RetryPolicy.from_settings(settings),
            size_source=SizeSource(settings.size_source),
            agency_limit=settings.agency_limit,
            agency_offset=settings.agency_offset,
            include_sub_agencies=settings.include_sub_agencies,
        )

    @property
    def most_recent_date(self) -> date:
        return self.snapshot_dates[0]

    def run(self, agencies: Optional[List[AgencyRecord]] = None) -> SyncRun:
        """Run one sync pass.

        Args:
            agencies: Agencies to sync; fetched from the directory when omitted

        Returns:
            SyncRun with counters and any unresolved (title, date) pairs
        """
        sync_run = SyncRun(run_id=str(uuid.uuid4()), start_time=datetime.now())
        logger.info("Starting historical sync", run_id=sync_run.run_id,
                    dates=[d.isoformat() for d in self.snapshot_dates],
                    source=self.size_source.value)

        if agencies is None:
            try:
                agencies = self.client.fetch_agencies(include_children=self.include_sub_agencies)
            except AgencyFeedError as e:
                logger.error("Agency directory unavailable, nothing to sync", error=str(e))
                return self._finish(sync_run, "failed", str(e))

        selected = self._select(agencies)
        if not selected:
            logger.error("No agencies selected for sync", available=len(agencies))
            return self._finish(sync_run, "failed", "No agencies selected for sync")

        for agency in selected:
            try:
                self._sync_agency(agency, sync_run)
                sync_run.agencies_processed += 1
            except Exception as e:
                logger.error("Failed to sync agency", slug=agency.slug, error=str(e), exc_info=True)

        return self._finish(sync_run, "completed")

    def _finish(self, sync_run: SyncRun, status: str, error: Optional[str] = None) -> SyncRun:
        sync_run.status = status
        sync_run.error_message = error
        sync_run.end_time = datetime.now()
        logger.info("Sync finished", run_id=sync_run.run_id, status=status,
                    agencies=sync_run.agencies_processed,
                    snapshots_created=sync_run.snapshots_created,
                    cache_hits=sync_run.cache_hits,
                    unresolved=len(sync_run.unresolved))
        return sync_run

    def _select(self, agencies: List[AgencyRecord]) -> List[AgencyRecord]:
        end = None if self.agency_limit is None else self.agency_offset + self.agency_limit
        return agencies[self.agency_offset:end]

    def _sync_agency(self, agency: AgencyRecord, sync_run: SyncRun) -> None:
        logger.info("Processing agency", slug=agency.slug, name=agency.display_name,
                    references=len(agency.cfr_references))
        self.db.upsert_agency(agency.slug, agency.name, agency.display_name)

        latest_resolved = False
        for reference in agency.cfr_references:
            sync_run.references_seen += 1
            self.db.add_reference(agency.slug, reference.title, reference.chapter)

            for snapshot_date in self.snapshot_dates:
                try:
                    resolved = self._sync_pair(reference.title, snapshot_date, sync_run)
                except Exception as e:
                    logger.error("Failed to sync snapshot", title=reference.title,
                                 date=snapshot_date.isoformat(), error=str(e), exc_info=True)
                    continue

                if resolved and snapshot_date == self.most_recent_date:
                    latest_resolved = True

        if latest_resolved:
            self._refresh_latest(agency.slug)

    def _sync_pair(self, title: int, snapshot_date: date, sync_run: SyncRun) -> bool:
        """Resolve one (title, date) pair; returns True once a snapshot is stored."""
        if self.cache.has(title, snapshot_date):
            sync_run.cache_hits += 1
            self.cache.mark(title, snapshot_date)
            return True

        outcome = self.retry_policy.execute(
            lambda: self.client.fetch_title(title, snapshot_date, self.size_source),
            title=title, date=snapshot_date.isoformat()
        )
        sync_run.fetch_attempts += outcome.attempts

        if not outcome.succeeded:
            # Left unmarked so the next run tries again
            sync_run.unresolved.append((title, snapshot_date))
            return False

        metrics = extract_metrics(outcome.result.payload)
        if metrics.is_empty:
            sync_run.empty_results += 1
            logger.warning("Empty content, snapshot not stored", title=title,
                           date=snapshot_date.isoformat())
            return False

        if self.db.insert_snapshot(title, snapshot_date, metrics, self.size_source):
            sync_run.snapshots_created += 1
        self.cache.mark(title, snapshot_date)

        logger.info("Snapshot stored", title=title, date=snapshot_date.isoformat(),
                    words=metrics.word_count, bytes=metrics.byte_size,
                    checksum=metrics.fingerprint)
        return True

    def _refresh_latest(self, slug: str) -> None:
        """Recompute the agency's latest metrics from its titles at the most recent date."""
        titles = sorted({ref["title"] for ref in self.db.get_agency_references(slug)})
        rows = self.db.get_snapshots_at(titles, self.most_recent_date)
        if not rows or len(rows) < len(titles):
            logger.warning("Latest metrics left unchanged, titles missing at most recent date",
                           slug=slug, date=self.most_recent_date.isoformat(),
                           stored=len(rows), referenced=len(titles))
            return

        word_counts = [row["word_count"] for row in rows]
        checksums = [row["checksum"] for row in rows]

        word_count = sum(word_counts) if None not in word_counts else None
        byte_size = sum(row["byte_size"] for row in rows)
        if None in checksums:
            checksum = None
        elif len(checksums) == 1:
            checksum = checksums[0]
        else:
            checksum = fingerprint(",".join(checksums))

        self.db.update_agency_latest(slug, word_count, byte_size, checksum, self._today())
        logger.info("Updated agency latest metrics", slug=slug, words=word_count, bytes=byte_size)
