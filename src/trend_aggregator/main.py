"""Main entry point - serve the API (with its polling scheduler) or run one-shot jobs."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import uvicorn

from .collector import backfill_countries, collect_countries
from .config import parse_countries, settings
from .database import Database
from .fetcher import build_http_client
from .sources import build_adapters

# Configure structured JSON logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)
logger = logging.getLogger(__name__)


async def serve() -> None:
    """Run the API server until interrupted."""
    logger.info("=" * 60)
    logger.info("Trend Aggregator starting...")
    logger.info(f"Database: {settings.database_path}")
    if settings.scheduler_enabled:
        logger.info(
            f"Polling {settings.scheduler_country_list} every "
            f"{settings.scheduler_interval_minutes} min"
        )
    else:
        logger.info("Scheduler disabled")
    logger.info("=" * 60)

    config = uvicorn.Config(
        "trend_aggregator.api:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level="warning",
    )
    server = uvicorn.Server(config)

    # uvicorn handles SIGINT/SIGTERM; the app lifespan stops the scheduler
    await server.serve()

    logger.info("Shutdown complete")


async def run_job(command: str, countries: List[str], days: Optional[int] = None) -> dict:
    """Run a single collect/backfill pass without the API."""
    db = Database()
    await db.connect()

    try:
        async with build_http_client() as client:
            adapters = build_adapters(client)
            if command == "backfill":
                report = await backfill_countries(db, adapters, countries, days)
            else:
                report = await collect_countries(db, adapters, countries)
    finally:
        await db.close()

    for country_code, inserted in report.inserted.items():
        logger.info(
            f"{country_code}: {inserted} new trends, failed: {report.failed[country_code] or 'none'}"
        )
    return report.model_dump()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trend-aggregator")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Run the API and polling scheduler (default)")

    collect = subparsers.add_parser("collect", help="Collect trends once and exit")
    collect.add_argument("--countries", default=None, help="Comma-separated codes or ALL")

    backfill = subparsers.add_parser("backfill", help="Replay current trends over past days")
    backfill.add_argument("--countries", default=None, help="Comma-separated codes or ALL")
    backfill.add_argument("--days", type=int, default=7)

    return parser


def run(argv: Optional[List[str]] = None):
    """Entry point for running the application."""
    args = build_parser().parse_args(argv)

    try:
        if args.command in ("collect", "backfill"):
            asyncio.run(
                run_job(args.command, parse_countries(args.countries), getattr(args, "days", None))
            )
        else:
            asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    run()
