"""Deduplication logic for trends.

A trend is identified by (name, source, country_code, hour-bucket). Repeated
polls inside the same hour collapse onto the row that was stored first.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from .database import Database
from .models import Trend

logger = logging.getLogger(__name__)

# Column widths of the trends table
FIELD_LIMITS = {
    "name": 255,
    "url": 2048,
    "source": 32,
    "volume": 32,
    "country_code": 10,
}


def clamp(value: str, max_length: int) -> str:
    return value[:max_length] if len(value) > max_length else value


def hour_bucket(timestamp: datetime) -> datetime:
    """Truncate a timestamp to its containing UTC hour."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def dedup_key(trend: Trend) -> Tuple[str, str, str, datetime]:
    return (trend.name, trend.source.value, trend.country_code, hour_bucket(trend.timestamp))


def sanitize_trend(trend: Trend) -> Trend:
    """Silently truncate every text field to its column width."""
    updates = {}
    for field, limit in FIELD_LIMITS.items():
        value = getattr(trend, field)
        # source is a str enum; its values are far below the limit
        if isinstance(value, str) and len(value) > limit:
            updates[field] = clamp(value, limit)
    return trend.model_copy(update=updates) if updates else trend


def dedupe_batch(trends: Iterable[Trend]) -> List[Trend]:
    """Keep the first trend per dedup key, preserving order."""
    seen = set()
    unique = []
    for trend in trends:
        key = dedup_key(trend)
        if key not in seen:
            seen.add(key)
            unique.append(trend)
    return unique


async def store_trends(db: Database, trends: Iterable[Trend]) -> int:
    """
    Sanitize a batch and persist the trends not already stored for their hour.

    Returns the number of rows inserted. Database errors propagate.
    """
    candidates = dedupe_batch(sanitize_trend(trend) for trend in trends)
    if not candidates:
        return 0

    inserted = await db.insert_trends_if_absent(candidates)
    logger.info(f"Stored {inserted} new trends ({len(candidates) - inserted} already seen)")
    return inserted
