"""Markdown report publisher for agency regulatory growth."""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..analytics.velocity import VelocityCalculator
from ..core.models import SeriesPoint, Trend, VelocityReport

logger = structlog.get_logger(__name__)

SPARK_CHARS = "▁▂▃▄▅▆▇█"
BAR_WIDTH = 40
TREND_MARKERS = {
    Trend.INCREASING: "▲",
    Trend.DECREASING: "▼",
    Trend.UNCHANGED: "■",
}


def sparkline(series: List[SeriesPoint]) -> str:
    """Render a series (any order) oldest-to-newest as block characters."""
    if not series:
        return ""
    values = [p.value for p in sorted(series, key=lambda p: p.snapshot_date)]
    low, high = min(values), max(values)
    if high == low:
        return SPARK_CHARS[len(SPARK_CHARS) // 2] * len(values)
    scale = (len(SPARK_CHARS) - 1) / (high - low)
    return "".join(SPARK_CHARS[int(round((v - low) * scale))] for v in values)


def _fmt(value: Optional[int]) -> str:
    return f"{value:,}" if value is not None else "n/a"


class MarkdownPublisher:
    """Publisher that writes the agency growth report as a markdown file."""

    def __init__(self, db, output_dir: str = "reports", metric: str = "word_count"):
        """Initialize the markdown publisher.

        Args:
            db: Database to read agencies and snapshot history from
            output_dir: Directory to save markdown files (default: "reports")
            metric: Snapshot metric the velocity figures are based on
        """
        self.db = db
        self.metric = metric
        self.calculator = VelocityCalculator(db)
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Markdown publisher initialized", output_dir=str(self.output_dir))

    def publish(self) -> Path:
        """Write the report for all stored agencies.

        Returns:
            Path of the written file
        """
        today = datetime.now().strftime("%Y-%m-%d")
        filepath = self.output_dir / f"regulatory-growth-{today}.md"

        agencies = self.db.list_agencies()
        reports = {a["slug"]: self.calculator.calculate(a["slug"], self.metric) for a in agencies}
        filepath.write_text(self.render(agencies, reports), encoding="utf-8")

        logger.info("Report published", filepath=str(filepath), agencies=len(agencies))
        return filepath

    def render(self, agencies: List[Dict[str, Any]], reports: Dict[str, VelocityReport]) -> str:
        """Format the full report."""
        parts = [
            "# Regulatory Burden Index",
            "",
            "Size and integrity of federal regulations by agency.",
            "",
            f"| Agency | Word Count | Checksum | Velocity ({self.metric}/yr) | Trend | History |",
            "|---|---:|---|---:|:---:|---|",
        ]
        for agency in agencies:
            report = reports[agency["slug"]]
            parts.append(
                f"| {agency['short_name'] or agency['name']} "
                f"| {_fmt(agency['latest_word_count'])} "
                f"| `{agency['latest_checksum'] or '-'}` "
                f"| {report.velocity:+,} "
                f"| {TREND_MARKERS[report.trend]} "
                f"| {sparkline(report.series)} |"
            )

        for agency in agencies:
            parts.append("")
            parts.extend(self.render_agency(agency, reports[agency["slug"]]))

        parts.extend(["", f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"])
        return "\n".join(parts) + "\n"

    def render_agency(self, agency: Dict[str, Any], report: VelocityReport) -> List[str]:
        """Detail section: latest figures and one bar per snapshot date, oldest first."""
        lines = [
            f"## {agency['name']}",
            "",
            f"- Latest word count: {_fmt(agency['latest_word_count'])}",
            f"- Last updated: {agency['last_updated_date'] or 'never'}",
            f"- Velocity: {report.velocity:+,} {self.metric} per year ({report.trend.value})",
        ]
        if not report.series:
            return lines + ["", "_No snapshot history yet._"]

        peak = max(p.value for p in report.series) or 1
        lines.extend(["", "```"])
        for point in sorted(report.series, key=lambda p: p.snapshot_date):
            width = int(point.value / peak * BAR_WIDTH)
            lines.append(f"{point.snapshot_date.isoformat()}  {'█' * width:<{BAR_WIDTH}}  {point.value:,}")
        lines.append("```")
        return lines
