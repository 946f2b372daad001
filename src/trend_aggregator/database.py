"""SQLite database layer with WAL mode."""

import aiosqlite
import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence
import logging

from .config import settings
from .models import Trend, TrendFilter

logger = logging.getLogger(__name__)

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# SQLite's historical limit is 999 bound variables per statement
INSERT_CHUNK_ROWS = 150

HOUR_BUCKET_SQL = "strftime('%Y-%m-%d %H:00:00', {column})"


def to_db_timestamp(value: datetime) -> str:
    """Serialize an instant as sortable UTC text."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(DB_TIMESTAMP_FORMAT)


def from_db_timestamp(value: str) -> datetime:
    return datetime.strptime(value[:19], DB_TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class Database:
    """Async SQLite database manager."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or settings.database_path
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._schema_ready = False

    async def connect(self) -> None:
        """Initialize database connection and create tables."""
        if self._connection is not None:
            return

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        # Enable WAL mode for better concurrency
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")

        await self.ensure_schema()
        logger.info(f"Database connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            self._schema_ready = False
            logger.info("Database connection closed")

    async def ensure_schema(self) -> None:
        """Create the trends table and its indexes if they don't exist."""
        if self._schema_ready:
            return

        async with self._lock:
            # Append-only observation log
            await self._connection.execute("""
                CREATE TABLE IF NOT EXISTS trends (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    url TEXT NOT NULL,
                    source TEXT NOT NULL,
                    volume TEXT,
                    timestamp TEXT NOT NULL,
                    country_code TEXT NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await self._connection.execute("""
                CREATE INDEX IF NOT EXISTS idx_trends_country
                ON trends(country_code)
            """)
            await self._connection.execute("""
                CREATE INDEX IF NOT EXISTS idx_trends_source
                ON trends(source)
            """)
            await self._connection.execute("""
                CREATE INDEX IF NOT EXISTS idx_trends_timestamp
                ON trends(timestamp)
            """)
            await self._connection.execute("""
                CREATE INDEX IF NOT EXISTS idx_trends_dedup_lookup
                ON trends(name, source, country_code)
            """)

            await self._connection.commit()
            self._schema_ready = True
            logger.info("Database tables created/verified")

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> List[dict]:
        """Run a parameterized statement and return any rows as dicts."""
        async with self._lock:
            cursor = await self._connection.execute(sql, params)
            rows = await cursor.fetchall()
            await self._connection.commit()
            return [dict(row) for row in rows]

    async def insert_trends_if_absent(self, trends: Iterable[Trend]) -> int:
        """
        Insert trends whose (name, source, country_code, hour) is not stored yet.

        Each chunk is one INSERT ... SELECT with an anti-join on the dedup key,
        so the existence check and the write happen in the same statement.
        Existing rows are never touched. Returns the number of rows inserted.
        """
        rows = [
            (
                trend.name,
                trend.url,
                trend.source.value,
                trend.volume,
                to_db_timestamp(trend.timestamp),
                trend.country_code,
            )
            for trend in trends
        ]
        if not rows:
            return 0

        inserted = 0
        async with self._lock:
            try:
                for start in range(0, len(rows), INSERT_CHUNK_ROWS):
                    chunk = rows[start:start + INSERT_CHUNK_ROWS]
                    cursor = await self._connection.execute(
                        self._conditional_insert_sql(len(chunk)),
                        [value for row in chunk for value in row],
                    )
                    inserted += cursor.rowcount
                await self._connection.commit()
            except aiosqlite.Error:
                await self._connection.rollback()
                raise

        logger.debug(f"Inserted {inserted}/{len(rows)} trend rows")
        return inserted

    @staticmethod
    def _conditional_insert_sql(row_count: int) -> str:
        # VALUES columns are named column1..column6 in SQLite:
        # name, url, source, volume, timestamp, country_code
        values = ", ".join(["(?, ?, ?, ?, ?, ?)"] * row_count)
        return f"""
            INSERT INTO trends (name, url, source, volume, timestamp, country_code)
            SELECT v.column1, v.column2, v.column3, v.column4, v.column5, v.column6
            FROM (VALUES {values}) AS v
            WHERE NOT EXISTS (
                SELECT 1
                FROM trends t
                WHERE t.name = v.column1
                  AND t.source = v.column3
                  AND t.country_code = v.column6
                  AND {HOUR_BUCKET_SQL.format(column="t.timestamp")}
                      = {HOUR_BUCKET_SQL.format(column="v.column5")}
            )
        """

    async def list_trends(
        self, trend_filter: TrendFilter, now: Optional[datetime] = None
    ) -> List[Trend]:
        """
        List stored trends for one country, newest first.

        A date restricts to that UTC calendar day and disables the recency
        window. Rows are collapsed to the latest observation per
        (name, source, country_code, hour).
        """
        where = ["country_code = ?"]
        params: List[Any] = [trend_filter.country_code]

        if trend_filter.date:
            where.append("DATE(timestamp) = ?")
            params.append(trend_filter.date)

        if trend_filter.sources:
            where.append(f"source IN ({', '.join('?' for _ in trend_filter.sources)})")
            params.extend(trend_filter.sources)

        if not trend_filter.date and trend_filter.recency_minutes and trend_filter.recency_minutes > 0:
            since = (now or datetime.now(timezone.utc)) - timedelta(
                minutes=trend_filter.recency_minutes
            )
            where.append("timestamp >= ?")
            params.append(to_db_timestamp(since))

        params.append(trend_filter.limit)

        rows = await self.execute(
            f"""
            WITH ranked AS (
                SELECT
                    name, url, source, volume, timestamp, country_code,
                    ROW_NUMBER() OVER (
                        PARTITION BY
                            name,
                            source,
                            country_code,
                            {HOUR_BUCKET_SQL.format(column="timestamp")}
                        ORDER BY timestamp DESC, id DESC
                    ) AS rn
                FROM trends
                WHERE {' AND '.join(where)}
            )
            SELECT name, url, source, volume, timestamp, country_code
            FROM ranked
            WHERE rn = 1
            ORDER BY timestamp DESC
            LIMIT ?
            """,
            params,
        )

        return [
            Trend(
                name=row["name"],
                url=row["url"],
                source=row["source"],
                volume=row["volume"],
                timestamp=from_db_timestamp(row["timestamp"]),
                country_code=row["country_code"],
            )
            for row in rows
        ]

    async def count_trends(self, country_code: Optional[str] = None) -> int:
        if country_code:
            rows = await self.execute(
                "SELECT COUNT(*) AS n FROM trends WHERE country_code = ?", (country_code,)
            )
        else:
            rows = await self.execute("SELECT COUNT(*) AS n FROM trends")
        return rows[0]["n"]

    async def get_stats(self) -> dict:
        """Get database statistics."""
        stats = {"total_trends": await self.count_trends()}

        rows = await self.execute(
            "SELECT source, COUNT(*) AS n FROM trends GROUP BY source"
        )
        stats["trends_by_source"] = {row["source"]: row["n"] for row in rows}

        rows = await self.execute(
            "SELECT country_code, COUNT(*) AS n FROM trends GROUP BY country_code"
        )
        stats["trends_by_country"] = {row["country_code"]: row["n"] for row in rows}

        return stats
