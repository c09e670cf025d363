"""
SQLite database for agencies, title references and title snapshots.
"""
import sqlite3
import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Dict, Any
from contextlib import contextmanager

from ..core.models import SeriesPoint, SizeSource, SnapshotMetrics

logger = logging.getLogger(__name__)

METRIC_COLUMNS = ("word_count", "byte_size")


def _metric_column(metric: str) -> str:
    if metric not in METRIC_COLUMNS:
        raise ValueError(f"Unknown metric: {metric}")
    return metric


class ECFRDatabase:
    """SQLite database for storing agencies, references and snapshots."""

    def __init__(self, db_path: str = "ecfr.sqlite"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _init_database(self):
        """Initialize database tables."""
        with self.get_connection() as conn:
            # Agencies table - one row per agency slug, with denormalized latest metrics
            conn.execute("""
                CREATE TABLE IF NOT EXISTS agencies (
                    slug TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    short_name TEXT,
                    latest_word_count INTEGER,
                    latest_byte_size INTEGER,
                    latest_checksum TEXT,
                    last_updated_date DATE
                )
            """)

            # References table - many-to-many between agencies and CFR titles
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cfr_references (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    agency_slug TEXT NOT NULL,
                    title INTEGER NOT NULL,
                    chapter TEXT,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (agency_slug) REFERENCES agencies (slug),
                    UNIQUE(agency_slug, title)
                )
            """)

            # Snapshots table - write-once measurement of a title at a date
            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title INTEGER NOT NULL,
                    snapshot_date DATE NOT NULL,
                    byte_size INTEGER NOT NULL,
                    word_count INTEGER,
                    checksum TEXT,
                    size_source TEXT NOT NULL,
                    fetched_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(title, snapshot_date)
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_references_title ON cfr_references(title)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_snapshots_date ON snapshots(snapshot_date)")

            conn.commit()
            logger.info("Database initialized successfully")

    @contextmanager
    def get_connection(self):
        """Get database connection with proper cleanup."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def upsert_agency(self, slug: str, name: str, short_name: Optional[str]) -> None:
        """Insert an agency or refresh its display fields."""
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO agencies (slug, name, short_name)
                VALUES (?, ?, ?)
                ON CONFLICT(slug) DO UPDATE SET
                    name = excluded.name,
                    short_name = excluded.short_name
            """, (slug, name, short_name))
            conn.commit()

    def add_reference(self, agency_slug: str, title: int, chapter: Optional[str]) -> bool:
        """Store an agency/title reference unless it already exists."""
        with self.get_connection() as conn:
            cursor = conn.execute("""
                INSERT OR IGNORE INTO cfr_references (agency_slug, title, chapter)
                VALUES (?, ?, ?)
            """, (agency_slug, title, chapter))
            conn.commit()

            if cursor.rowcount > 0:
                logger.info(f"Stored reference {agency_slug} -> title {title}")
                return True
            return False

    def snapshot_exists(self, title: int, snapshot_date: date) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute(
                "SELECT 1 FROM snapshots WHERE title = ? AND snapshot_date = ?",
                (title, snapshot_date.isoformat())
            )
            return cursor.fetchone() is not None

    def insert_snapshot(self, title: int, snapshot_date: date,
                        metrics: SnapshotMetrics, size_source: SizeSource) -> bool:
        """Store a snapshot once; returns False when the pair was already stored."""
        with self.get_connection() as conn:
            cursor = conn.execute("""
                INSERT OR IGNORE INTO snapshots
                (title, snapshot_date, byte_size, word_count, checksum, size_source)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                title,
                snapshot_date.isoformat(),
                metrics.byte_size,
                metrics.word_count,
                metrics.fingerprint,
                SizeSource(size_source).value
            ))
            conn.commit()

            if cursor.rowcount > 0:
                logger.info(f"Stored snapshot for title {title} at {snapshot_date} "
                            f"({metrics.byte_size} bytes)")
                return True
            return False

    def get_snapshots_at(self, titles: List[int], snapshot_date: date) -> List[Dict[str, Any]]:
        """Get stored snapshots for the given titles at one date, ordered by title."""
        if not titles:
            return []
        placeholders = ", ".join("?" for _ in titles)
        with self.get_connection() as conn:
            cursor = conn.execute(f"""
                SELECT title, snapshot_date, byte_size, word_count, checksum, size_source
                FROM snapshots
                WHERE snapshot_date = ? AND title IN ({placeholders})
                ORDER BY title
            """, (snapshot_date.isoformat(), *titles))
            return [dict(row) for row in cursor.fetchall()]

    def update_agency_latest(self, slug: str, word_count: Optional[int], byte_size: Optional[int],
                             checksum: Optional[str], updated_on: date) -> None:
        """Refresh the denormalized latest metrics for an agency."""
        with self.get_connection() as conn:
            conn.execute("""
                UPDATE agencies
                SET latest_word_count = ?,
                    latest_byte_size = ?,
                    latest_checksum = ?,
                    last_updated_date = ?
                WHERE slug = ?
            """, (word_count, byte_size, checksum, updated_on.isoformat(), slug))
            conn.commit()

    def list_agencies(self) -> List[Dict[str, Any]]:
        """Get all agencies, largest latest word count first."""
        with self.get_connection() as conn:
            cursor = conn.execute("""
                SELECT slug, name, short_name, latest_word_count, latest_byte_size,
                       latest_checksum, last_updated_date
                FROM agencies
                ORDER BY latest_word_count IS NULL, latest_word_count DESC, slug
            """)
            return [dict(row) for row in cursor.fetchall()]

    def get_agency(self, slug: str) -> Optional[Dict[str, Any]]:
        """Get a single agency with its denormalized latest metrics."""
        with self.get_connection() as conn:
            cursor = conn.execute("""
                SELECT slug, name, short_name, latest_word_count, latest_byte_size,
                       latest_checksum, last_updated_date
                FROM agencies
                WHERE slug = ?
            """, (slug,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_agency_references(self, slug: str) -> List[Dict[str, Any]]:
        """Get the titles an agency references, in insertion order."""
        with self.get_connection() as conn:
            cursor = conn.execute("""
                SELECT agency_slug, title, chapter
                FROM cfr_references
                WHERE agency_slug = ?
                ORDER BY id
            """, (slug,))
            return [dict(row) for row in cursor.fetchall()]

    def get_agency_history(self, slug: str, metric: str = "word_count") -> List[SeriesPoint]:
        """Sum a snapshot metric across an agency's titles per date, newest first.

        Titles are matched through the agency's references; a title is
        counted once per date even if it is referenced more than once.
        A date is only reported once every referenced title has a value
        for the metric there, so all points cover the same titles.
        """
        column = _metric_column(metric)
        with self.get_connection() as conn:
            cursor = conn.execute(f"""
                SELECT snapshot_date, SUM({column}) AS total
                FROM snapshots
                WHERE {column} IS NOT NULL
                  AND title IN (SELECT title FROM cfr_references WHERE agency_slug = ?)
                GROUP BY snapshot_date
                HAVING COUNT(DISTINCT title) = (
                    SELECT COUNT(DISTINCT title) FROM cfr_references WHERE agency_slug = ?
                )
                ORDER BY snapshot_date DESC
            """, (slug, slug))
            return [
                SeriesPoint(
                    snapshot_date=datetime.strptime(row["snapshot_date"], "%Y-%m-%d").date(),
                    value=row["total"]
                )
                for row in cursor.fetchall()
            ]

    def get_stats(self) -> Dict[str, int]:
        """Get database statistics."""
        with self.get_connection() as conn:
            stats = {}

            cursor = conn.execute("SELECT COUNT(*) as count FROM agencies")
            stats['agencies'] = cursor.fetchone()['count']

            cursor = conn.execute("SELECT COUNT(*) as count FROM cfr_references")
            stats['references'] = cursor.fetchone()['count']

            cursor = conn.execute("SELECT COUNT(*) as count FROM snapshots")
            stats['snapshots'] = cursor.fetchone()['count']

            cursor = conn.execute("SELECT COUNT(DISTINCT title) as count FROM snapshots")
            stats['titles_tracked'] = cursor.fetchone()['count']

            return stats
