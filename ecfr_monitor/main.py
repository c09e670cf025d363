"""
Main entry point for the eCFR regulatory growth monitor.
"""

import sys
import argparse
import logging
import structlog
from pydantic import ValidationError

from .core.config import Settings, parse_snapshot_dates, settings
from .core.exceptions import AgencyNotFoundError
from .analytics import VelocityCalculator
from .orchestration import SyncOrchestrator
from .publishing import MarkdownPublisher
from .storage import ECFRDatabase


def setup_logging():
    """Configure structured logging."""
    settings.logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(settings.logs_dir / "ecfr_monitor.log"),
        ],
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be zero or greater, got {value}")
    return number


def sync_settings(base: Settings, args: argparse.Namespace) -> Settings:
    """Apply sync command overrides to the settings, validating the result."""
    overrides = {}
    if args.limit is not None:
        overrides['agency_limit'] = args.limit
    if args.offset is not None:
        overrides['agency_offset'] = args.offset
    if args.source:
        overrides['size_source'] = args.source
    if args.dates:
        parse_snapshot_dates(args.dates)
        overrides['snapshot_dates_raw'] = args.dates

    return Settings.model_validate({**base.model_dump(), **overrides})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="eCFR Regulatory Growth Monitor"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Sync command
    sync_parser = subparsers.add_parser('sync', help='Fetch and store historical snapshots')
    sync_parser.add_argument(
        '--limit',
        type=non_negative_int,
        help='Only sync this many agencies (default: all)'
    )
    sync_parser.add_argument(
        '--offset',
        type=non_negative_int,
        help='Skip this many agencies from the start of the directory'
    )
    sync_parser.add_argument(
        '--dates',
        type=str,
        help='Comma-separated snapshot dates (YYYY-MM-DD), overrides configuration'
    )
    sync_parser.add_argument(
        '--source',
        choices=['full', 'structure'],
        help='Measure full XML text or the reported structure size'
    )

    # Velocity command
    velocity_parser = subparsers.add_parser('velocity', help='Show growth velocity for an agency')
    velocity_parser.add_argument('slug', help='Agency slug')
    velocity_parser.add_argument(
        '--metric',
        choices=['word_count', 'byte_size'],
        default=None,
        help='Snapshot metric to aggregate'
    )

    # Report command
    report_parser = subparsers.add_parser('report', help='Write the markdown growth report')
    report_parser.add_argument(
        '--output-dir',
        type=str,
        default=None,
        help='Directory for the report (default: REPORT_DIR)'
    )

    # Stats command
    subparsers.add_parser('stats', help='Show database statistics')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Setup logging
    setup_logging()
    logger = structlog.get_logger(__name__)

    db = ECFRDatabase(settings.database_path)

    if args.command == 'sync':
        try:
            run_settings = sync_settings(settings, args)
        except ValidationError as e:
            logger.error("Invalid sync options", error=str(e))
            sys.exit(1)
        except ValueError:
            logger.error("Invalid date format. Use YYYY-MM-DD")
            sys.exit(1)

        orchestrator = SyncOrchestrator.from_settings(run_settings, db=db)
        sync_run = orchestrator.run()

        print(f"\n=== Sync {sync_run.status} ===")
        print(f"• Agencies processed: {sync_run.agencies_processed}")
        print(f"• Snapshots created: {sync_run.snapshots_created}")
        print(f"• Cache hits: {sync_run.cache_hits}")
        print(f"• Fetch attempts: {sync_run.fetch_attempts}")
        print(f"• Unresolved pairs: {len(sync_run.unresolved)}")

        if sync_run.status != "completed":
            logger.error("Sync failed", error=sync_run.error_message)
            sys.exit(1)

    elif args.command == 'velocity':
        metric = args.metric or settings.velocity_metric
        try:
            report = VelocityCalculator(db).calculate(args.slug, metric)
        except AgencyNotFoundError as e:
            logger.error("Agency not found", slug=args.slug)
            print(f"❌ {e}")
            sys.exit(1)

        print(f"\n=== {report.slug} ({report.metric}) ===")
        print(f"Current: {report.current if report.current is not None else 'n/a'}")
        print(f"Velocity: {report.velocity:+,} per year")
        print(f"Trend: {report.trend.value}")
        for point in report.series:
            print(f"  {point.snapshot_date.isoformat()}  {point.value:,}")

    elif args.command == 'report':
        publisher = MarkdownPublisher(
            db,
            output_dir=args.output_dir or settings.report_dir,
            metric=settings.velocity_metric
        )
        path = publisher.publish()
        print(f"✅ Report written to {path}")

    elif args.command == 'stats':
        print("\n=== Database Statistics ===")
        for name, count in db.get_stats().items():
            print(f"• {name.replace('_', ' ').title()}: {count}")


if __name__ == "__main__":
    main()
