"""Command-line entry point for a batch availability crawl."""

import argparse
import asyncio
import logging
import sys
from datetime import date

from .config import config
from .crawler import CrawlOrchestrator, CrawlState
from .exporter import ResultExporter
from .facilities import FACILITIES
from .models import CrawlJob
from .portals.dobong import DobongClient
from .portals.nowon import NowonClient
from .utils import parse_date

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="court_crawler",
        description="Check court availability on the reservation portals.",
    )
    parser.add_argument("--year", type=int, help="Year of the month to crawl")
    parser.add_argument("--month", type=int, help="Month to crawl (1-12)")
    parser.add_argument("--from", dest="date_from", help="First date, YYYY-MM-DD")
    parser.add_argument("--to", dest="date_to", help="Last date, YYYY-MM-DD")
    parser.add_argument(
        "--facility",
        action="append",
        choices=sorted(FACILITIES),
        help="Facility to crawl; repeat for several (default: all)",
    )
    parser.add_argument(
        "--delay", type=float, default=None, help="Seconds between requests"
    )
    parser.add_argument("--output-dir", default=None, help="Directory for results")
    parser.add_argument("--prefix", default="court", help="Output file name prefix")
    parser.add_argument("--log-file", default=None, help="Write logs to this file")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser.parse_args(argv)


def build_job(args: argparse.Namespace) -> CrawlJob:
    """Build the crawl job from command-line arguments.

    Raises:
        ValueError: If the date arguments are missing or inconsistent
    """
    facility_ids = args.facility or list(FACILITIES)
    delay = args.delay if args.delay is not None else config.request_delay

    if args.date_from or args.date_to:
        date_from = parse_date(args.date_from or args.date_to)
        date_to = parse_date(args.date_to or args.date_from)
        return CrawlJob(
            date_from=date_from,
            date_to=date_to,
            facility_ids=tuple(facility_ids),
            inter_request_delay_seconds=delay,
        )

    today = date.today()
    year = args.year or today.year
    month = args.month or today.month
    return CrawlJob.for_month(year, month, facility_ids, delay)


def configure_logging(debug: bool, log_file: str | None) -> None:
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def run(args: argparse.Namespace) -> int:
    """Run one crawl and save its results.

    Returns:
        Process exit status
    """
    try:
        job = build_job(args)
        credentials = config.credentials
    except ValueError as e:
        logger.error(str(e))
        return 1

    async with NowonClient() as nowon, DobongClient() as dobong:
        orchestrator = CrawlOrchestrator([nowon, dobong])
        report = await orchestrator.run(job, credentials)

    if report.state is CrawlState.ABORTED:
        logger.error(f"Crawl aborted: {report.error}")
        return 1

    exporter = ResultExporter()
    exporter.save(report.results, args.output_dir, args.prefix)
    summary = exporter.summary(report.results)
    logger.info(
        f"Total slots: {summary['total_slots']}, "
        f"available: {summary['available_slots']}, "
        f"unavailable: {summary['unavailable_slots']}, "
        f"failed pairs: {summary['failed_pairs']}"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.debug or config.enable_debug_mode, args.log_file)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
