"""
Tests for the markdown growth report.
"""
from datetime import date

import pytest

from ecfr_monitor.core.models import SeriesPoint, SizeSource, SnapshotMetrics
from ecfr_monitor.publishing.markdown_publisher import MarkdownPublisher, sparkline


def points(*values):
    return [SeriesPoint(snapshot_date=date(2020 + i, 1, 1), value=v) for i, v in enumerate(values)]


class TestSparkline:

    def test_rising_series(self):
        line = sparkline(points(100, 200, 300))
        assert line[0] == "▁"
        assert line[-1] == "█"
        assert len(line) == 3

    def test_rendered_oldest_first(self):
        assert sparkline(list(reversed(points(100, 300)))) == "▁█"

    def test_flat_series(self):
        line = sparkline(points(500, 500))
        assert len(set(line)) == 1

    def test_empty(self):
        assert sparkline([]) == ""


class TestMarkdownPublisher:

    @pytest.fixture
    def populated_db(self, db):
        db.upsert_agency("agriculture-department", "Department of Agriculture", "USDA")
        db.upsert_agency("new-agency", "New Agency", None)
        db.add_reference("agriculture-department", 7, "I")
        db.insert_snapshot(7, date(2022, 1, 1), SnapshotMetrics(byte_size=6000, word_count=1000,
                                                                 fingerprint="aaaaaaaaaaaa"), SizeSource.FULL)
        db.insert_snapshot(7, date(2023, 1, 1), SnapshotMetrics(byte_size=6600, word_count=1100,
                                                                 fingerprint="bbbbbbbbbbbb"), SizeSource.FULL)
        db.update_agency_latest("agriculture-department", 1100, 6600, "bbbbbbbbbbbb", date(2025, 6, 1))
        return db

    def test_publish_writes_report(self, populated_db, tmp_path):
        publisher = MarkdownPublisher(populated_db, output_dir=str(tmp_path / "reports"))

        path = publisher.publish()

        assert path.exists()
        content = path.read_text(encoding="utf-8")
        assert "# Regulatory Burden Index" in content
        assert "| USDA | 1,100 | `bbbbbbbbbbbb` | +100 | ▲ | ▁█ |" in content
        assert "## Department of Agriculture" in content
        assert "- Velocity: +100 word_count per year (increasing)" in content

    def test_agency_without_history(self, populated_db, tmp_path):
        publisher = MarkdownPublisher(populated_db, output_dir=str(tmp_path))

        content = publisher.publish().read_text(encoding="utf-8")

        assert "| New Agency | n/a | `-` | +0 | ■ |  |" in content
        assert "_No snapshot history yet._" in content

    def test_history_bars_oldest_first(self, populated_db, tmp_path):
        publisher = MarkdownPublisher(populated_db, output_dir=str(tmp_path))
        agency = populated_db.get_agency("agriculture-department")
        report = publisher.calculator.calculate("agriculture-department")

        lines = publisher.render_agency(agency, report)

        bars = [line for line in lines if line.startswith("20")]
        assert bars[0].startswith("2022-01-01")
        assert bars[-1].startswith("2023-01-01")
        assert bars[-1].count("█") == 40
        assert bars[-1].endswith("1,100")
