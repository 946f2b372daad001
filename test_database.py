"""Tests for the windowed trend listing."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from trend_aggregator.database import from_db_timestamp, to_db_timestamp
from trend_aggregator.deduplicator import store_trends
from trend_aggregator.models import TrendFilter, TrendSource

NOON = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


async def insert_raw(db, name, source, country_code, timestamp, url="https://e.com/"):
    """Write a row directly, bypassing the dedup layer."""
    await db.execute(
        "INSERT INTO trends (name, url, source, volume, timestamp, country_code) "
        "VALUES (?, ?, ?, NULL, ?, ?)",
        (name, url, source, timestamp, country_code),
    )


def test_timestamp_round_trip_is_utc():
    aware = datetime(2024, 1, 1, 14, 30, tzinfo=timezone.utc)
    assert to_db_timestamp(aware) == "2024-01-01 14:30:00"
    assert from_db_timestamp("2024-01-01 14:30:00") == aware


async def test_latest_row_wins_within_an_hour(db):
    await insert_raw(db, "Topic A", "hackernews", "US", "2024-01-01 10:05:00", "https://early")
    await insert_raw(db, "Topic A", "hackernews", "US", "2024-01-01 10:45:00", "https://late")

    trends = await db.list_trends(TrendFilter(country_code="US"))

    assert len(trends) == 1
    assert trends[0].url == "https://late"
    assert trends[0].timestamp == datetime(2024, 1, 1, 10, 45, tzinfo=timezone.utc)


async def test_different_hours_are_both_listed(db):
    await insert_raw(db, "Topic A", "hackernews", "US", "2024-01-01 12:59:59")
    await insert_raw(db, "Topic A", "hackernews", "US", "2024-01-01 13:00:01")

    trends = await db.list_trends(TrendFilter(country_code="US"))

    assert [t.timestamp.hour for t in trends] == [13, 12]


async def test_recency_window(db, make_trend):
    await store_trends(
        db,
        [
            make_trend("old", timestamp="2024-01-01T10:00:00Z"),
            make_trend("fresh", timestamp="2024-01-01T11:30:00Z"),
        ],
    )

    trends = await db.list_trends(
        TrendFilter(country_code="US", recency_minutes=60), now=NOON
    )

    assert [t.name for t in trends] == ["fresh"]


async def test_non_positive_recency_is_ignored(db, make_trend):
    await store_trends(db, [make_trend("old", timestamp="2020-01-01T10:00:00Z")])

    trends = await db.list_trends(TrendFilter(country_code="US", recency_minutes=0), now=NOON)

    assert [t.name for t in trends] == ["old"]


async def test_date_overrides_recency_window(db, make_trend):
    await store_trends(
        db,
        [
            make_trend("morning", timestamp="2023-12-31T08:00:00Z"),
            make_trend("night", timestamp="2023-12-31T23:59:00Z"),
            make_trend("next day", timestamp="2024-01-01T00:30:00Z"),
        ],
    )

    trends = await db.list_trends(
        TrendFilter(country_code="US", date="2023-12-31", recency_minutes=60), now=NOON
    )

    assert [t.name for t in trends] == ["night", "morning"]


async def test_source_and_country_filters(db, make_trend):
    await store_trends(
        db,
        [
            make_trend("hn", source=TrendSource.HACKERNEWS),
            make_trend("yt", source=TrendSource.YOUTUBE),
            make_trend("x", source=TrendSource.X),
            make_trend("gb", source=TrendSource.YOUTUBE, country_code="GB"),
        ],
    )

    trends = await db.list_trends(
        TrendFilter(country_code="US", sources=["youtube", "x"])
    )

    assert sorted(t.name for t in trends) == ["x", "yt"]


async def test_ordering_and_limit(db, make_trend):
    await store_trends(
        db,
        [make_trend(f"t{h}", timestamp=f"2024-01-01T{h:02d}:00:00Z") for h in range(6)],
    )

    trends = await db.list_trends(TrendFilter(country_code="US", limit=3))

    assert [t.name for t in trends] == ["t5", "t4", "t3"]


async def test_unknown_stored_source_is_rejected(db):
    await insert_raw(db, "Topic", "techcrunch", "US", "2024-01-01 10:00:00")

    with pytest.raises(ValidationError):
        await db.list_trends(TrendFilter(country_code="US"))


async def test_stats(db, make_trend):
    await store_trends(
        db,
        [make_trend("a"), make_trend("b", source=TrendSource.X, country_code="GB")],
    )

    stats = await db.get_stats()

    assert stats["total_trends"] == 2
    assert stats["trends_by_source"] == {"hackernews": 1, "x": 1}
    assert stats["trends_by_country"] == {"US": 1, "GB": 1}
