"""One-shot collection jobs: aggregate sources and persist the results."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence, Tuple

from .aggregator import fetch_all_sources
from .database import Database
from .deduplicator import store_trends
from .models import CollectionReport
from .sources import SourceAdapter

logger = logging.getLogger(__name__)

DEFAULT_BACKFILL_DAYS = 7
MAX_BACKFILL_DAYS = 30


async def collect_country(
    db: Database, adapters: Sequence[SourceAdapter], country_code: str
) -> Tuple[int, list]:
    """Fetch every source for one country and store what is new."""
    result = await fetch_all_sources(country_code, adapters)
    inserted = await store_trends(db, result.trends)
    return inserted, result.failed_sources


async def collect_countries(
    db: Database, adapters: Sequence[SourceAdapter], countries: Sequence[str]
) -> CollectionReport:
    """Collect each country in turn. Persistence errors propagate."""
    report = CollectionReport()
    for country_code in countries:
        inserted, failed = await collect_country(db, adapters, country_code)
        report.inserted[country_code] = inserted
        report.failed[country_code] = failed
    return report


def clamp_days(value: Any) -> int:
    """Coerce a day count into 1..30, defaulting to 7."""
    try:
        days = int(float(value)) if value not in (None, "") else DEFAULT_BACKFILL_DAYS
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_BACKFILL_DAYS
    return max(1, min(days, MAX_BACKFILL_DAYS))


async def backfill_countries(
    db: Database,
    adapters: Sequence[SourceAdapter],
    countries: Sequence[str],
    days: Any = DEFAULT_BACKFILL_DAYS,
    now: Optional[datetime] = None,
) -> CollectionReport:
    """
    Seed history by replaying today's trends over the previous days.

    Each fetched trend is copied once per day with its timestamp shifted back
    by whole days from now, then stored through the dedup layer.
    """
    days = clamp_days(days)
    now = now or datetime.now(timezone.utc)
    report = CollectionReport()

    for country_code in countries:
        result = await fetch_all_sources(country_code, adapters)
        report.failed[country_code] = result.failed_sources

        rows = [
            trend.model_copy(update={"timestamp": now - timedelta(days=day)})
            for day in range(days)
            for trend in result.trends
        ]
        report.inserted[country_code] = await store_trends(db, rows)
        logger.info(f"Backfilled {country_code} over {days} days")

    return report
