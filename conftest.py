"""Shared fixtures: temporary database, trend builder, stub adapters and HTTP."""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from trend_aggregator.database import Database
from trend_aggregator.models import Trend, TrendSource
from trend_aggregator.sources import SourceAdapter


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)


def build_trend(
    name: str = "Topic A",
    source: TrendSource = TrendSource.HACKERNEWS,
    country_code: str = "US",
    timestamp: str = "2024-01-01T10:15:00Z",
    url: str = "https://news.ycombinator.com/",
    volume: Optional[str] = None,
) -> Trend:
    return Trend(
        name=name,
        url=url,
        source=source,
        volume=volume,
        timestamp=parse_ts(timestamp),
        country_code=country_code,
    )


class StaticAdapter(SourceAdapter):
    """Adapter returning canned trends, or raising a canned error."""

    def __init__(
        self,
        label: str,
        source: TrendSource,
        trends: Optional[List[Trend]] = None,
        error: Optional[BaseException] = None,
    ):
        self.label = label
        self.source = source
        self.trends = trends or []
        self.error = error
        self.calls: List[str] = []

    async def fetch(self, country_code: str) -> List[Trend]:
        self.calls.append(country_code)
        if self.error is not None:
            raise self.error
        return [t.model_copy(update={"country_code": country_code}) for t in self.trends]


@pytest.fixture
async def db(tmp_path):
    database = Database(str(tmp_path / "trends.db"))
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def make_trend():
    return build_trend


@pytest.fixture
def static_adapter():
    return StaticAdapter


@pytest.fixture
def mock_http():
    """
    Build an AsyncClient answering from a {url: (status, body)} map.

    Unknown URLs get a 404. Requested URLs are recorded on `client.requested`.
    """
    def factory(routes: Dict[str, Tuple[int, str]]) -> httpx.AsyncClient:
        requested: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            requested.append(url)
            status, body = routes.get(url, (404, "not found"))
            return httpx.Response(status, text=body)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requested = requested
        return client

    return factory
