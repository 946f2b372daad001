"""Source adapters: one per external platform, all behind the same fetch contract."""

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence
from urllib.parse import quote

import httpx

from .countries import get_country_name
from .fetcher import SourceError, fetch_text, proxy_url
from .models import Trend, TrendSource
from .parser import (
    extract_hashtags,
    extract_markdown_links,
    format_volume,
    parse_datetime,
    parse_feed_entries,
)

logger = logging.getLogger(__name__)

# Explicit subreddit per country; anything missing falls through the candidate list
SUBREDDIT_BY_COUNTRY = {
    "US": "news",
    "GB": "unitedkingdom",
    "CA": "canada",
    "AU": "australia",
    "DE": "de",
    "FR": "france",
    "IT": "italy",
    "ES": "spain",
    "NL": "thenetherlands",
    "BE": "belgium",
    "CH": "switzerland",
    "AT": "austria",
    "SE": "sweden",
    "NO": "norway",
    "DK": "denmark",
    "FI": "finland",
    "PL": "polska",
    "PT": "portugal",
    "GR": "greece",
    "IE": "ireland",
    "IN": "india",
    "JP": "japan",
    "KR": "korea",
    "BR": "brasil",
    "MX": "mexico",
    "AR": "argentina",
    "CL": "chile",
    "ZA": "southafrica",
    "NZ": "newzealand",
    "SG": "singapore",
    "MY": "malaysia",
    "TH": "thailand",
    "PH": "philippines",
    "ID": "indonesia",
    "TR": "turkey",
    "SA": "saudiarabia",
    "AE": "uae",
    "EG": "egypt",
}

FALLBACK_SUBREDDIT = "worldnews"

# getdaytrends.com location slugs
X_SLUG_BY_COUNTRY = {
    "US": "united-states",
    "GB": "united-kingdom",
    "IN": "india",
    "CA": "canada",
    "AU": "australia",
    "DE": "germany",
    "FR": "france",
    "BR": "brazil",
    "JP": "japan",
}

INSTAGRAM_HASHTAG_PAGES = [
    "https://top-hashtags.com/instagram/",
    "https://top-hashtags.com/instagram/hashtags/",
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SourceAdapter:
    """Fetches one platform and normalizes it into Trend records."""

    source: TrendSource
    label: str
    max_items: int = 50

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch(self, country_code: str) -> List[Trend]:
        raise NotImplementedError

    async def _get(self, url: str) -> str:
        return await fetch_text(self.client, url, self.label)

    def _trend(
        self,
        name: str,
        url: str,
        country_code: str,
        volume: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Trend:
        return Trend(
            name=name,
            url=url,
            source=self.source,
            volume=volume,
            timestamp=timestamp or _now(),
            country_code=country_code,
        )


class RedditAdapter(SourceAdapter):
    """
    Top posts of the day from the subreddit that best matches a country.

    Each candidate subreddit is tried with the JSON listing first and its RSS
    feed second, one request at a time, until something non-empty comes back.
    """

    source = TrendSource.REDDIT
    label = "Reddit"
    homepage = "https://www.reddit.com"

    @staticmethod
    def subreddit_candidates(country_code: str) -> List[str]:
        code = country_code.strip().upper()
        if code == "GLOBAL":
            return [FALLBACK_SUBREDDIT]

        country_name = get_country_name(code)
        normalized = re.sub(r"[^a-z0-9]", "", country_name.lower()) if country_name else None
        candidates = [SUBREDDIT_BY_COUNTRY.get(code), normalized, code.lower(), FALLBACK_SUBREDDIT]

        # dict.fromkeys keeps first-seen order
        return list(dict.fromkeys(c for c in candidates if c))

    def strategies(self, subreddit: str) -> List[Callable[[str], Awaitable[List[Trend]]]]:
        return [
            lambda country: self._fetch_json(subreddit, country),
            lambda country: self._fetch_rss(subreddit, country),
        ]

    async def fetch(self, country_code: str) -> List[Trend]:
        for subreddit in self.subreddit_candidates(country_code):
            trends = await self._fetch_candidate(subreddit, country_code)
            if trends:
                return trends

        raise SourceError(self.label, f"No Reddit trends for {country_code}")

    async def _fetch_candidate(self, subreddit: str, country_code: str) -> List[Trend]:
        # A strategy that answers, even with nothing, ends the chain for this subreddit
        for strategy in self.strategies(subreddit):
            try:
                return await strategy(country_code)
            except SourceError as e:
                logger.debug(f"Reddit r/{subreddit} strategy failed: {e.cause}")
        return []

    async def _fetch_json(self, subreddit: str, country_code: str) -> List[Trend]:
        url = (
            f"https://www.reddit.com/r/{subreddit}/top.json"
            f"?limit={self.max_items}&t=day&raw_json=1"
        )
        text = await self._get(url)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SourceError(self.label, f"Invalid JSON from r/{subreddit}: {e}") from e

        children = ((data or {}).get("data") or {}).get("children") or []
        trends = []
        for child in children:
            post = (child or {}).get("data") or {}
            score = post.get("score") or 0
            created_utc = post.get("created_utc")
            permalink = post.get("permalink")
            trends.append(
                self._trend(
                    name=post.get("title") or "Untitled",
                    url=f"{self.homepage}{permalink}" if permalink else self.homepage,
                    country_code=country_code,
                    volume=format_volume(score) if score else None,
                    timestamp=(
                        datetime.fromtimestamp(created_utc, tz=timezone.utc)
                        if created_utc
                        else None
                    ),
                )
            )
        return trends

    async def _fetch_rss(self, subreddit: str, country_code: str) -> List[Trend]:
        url = f"https://www.reddit.com/r/{subreddit}/top/.rss?limit={self.max_items}&t=day"
        xml = await self._get(url)
        return [
            self._trend(
                name=entry["title"],
                url=entry["link"],
                country_code=country_code,
                timestamp=entry["published"],
            )
            for entry in parse_feed_entries(xml, fallback_link=url, limit=self.max_items)
        ]


class HackerNewsAdapter(SourceAdapter):
    """Front page stories. Global only; records are tagged with the requested country."""

    source = TrendSource.HACKERNEWS
    label = "Hacker News"
    max_items = 10
    endpoint = "https://hn.algolia.com/api/v1/search?tags=front_page&hitsPerPage={limit}"

    async def fetch(self, country_code: str) -> List[Trend]:
        text = await self._get(self.endpoint.format(limit=self.max_items))
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SourceError(self.label, f"Invalid JSON: {e}") from e

        trends = []
        for hit in (data or {}).get("hits") or []:
            points = hit.get("points") or 0
            trends.append(
                self._trend(
                    name=hit.get("title") or "Untitled",
                    url=hit.get("url")
                    or f"https://news.ycombinator.com/item?id={hit.get('objectID')}",
                    country_code=country_code,
                    volume=format_volume(points) if points else None,
                    timestamp=parse_datetime(hit.get("created_at")),
                )
            )
        return trends


class YouTubeAdapter(SourceAdapter):
    """Trending videos, scraped from the proxy-rendered trending page."""

    source = TrendSource.YOUTUBE
    label = "YouTube"

    async def fetch(self, country_code: str) -> List[Trend]:
        code = country_code.strip().upper()
        gl = "US" if code == "GLOBAL" else code
        markdown = await self._get(proxy_url(f"https://www.youtube.com/feed/trending?gl={gl}"))

        links = extract_markdown_links(
            markdown, r"https://www\.youtube\.com/watch\?v=", limit=self.max_items
        )
        fetched_at = _now()
        return [
            self._trend(name=title, url=url, country_code=country_code, timestamp=fetched_at)
            for title, url in links
        ]


class XAdapter(SourceAdapter):
    """Trending topics from a third-party aggregator; X itself offers no permalink."""

    source = TrendSource.X
    label = "X / Twitter"

    @staticmethod
    def location_slug(country_code: str) -> str:
        code = country_code.strip().upper()
        if code == "GLOBAL":
            return "world"
        return X_SLUG_BY_COUNTRY.get(code, "world")

    async def fetch(self, country_code: str) -> List[Trend]:
        slug = self.location_slug(country_code)
        markdown = await self._get(proxy_url(f"https://getdaytrends.com/{slug}/"))

        links = extract_markdown_links(
            markdown, r"https://getdaytrends\.com/trend/", limit=self.max_items
        )
        fetched_at = _now()
        return [
            self._trend(
                name=name,
                url=f"https://x.com/search?q={quote(name, safe='')}",
                country_code=country_code,
                timestamp=fetched_at,
            )
            for name, _ in links
        ]


class InstagramAdapter(SourceAdapter):
    """Popular hashtags from public hashtag-listing pages."""

    source = TrendSource.INSTAGRAM
    label = "Instagram"
    max_items = 100

    async def fetch(self, country_code: str) -> List[Trend]:
        pages = await asyncio.gather(
            *(self._get(proxy_url(target)) for target in INSTAGRAM_HASHTAG_PAGES),
            return_exceptions=True,
        )
        # Both requests have settled; the first failure fails the adapter
        for page in pages:
            if isinstance(page, BaseException):
                raise page

        names = extract_hashtags("\n".join(pages), keep=self.max_items)

        if not names:
            raise SourceError(self.label, "No Instagram hashtags parsed")

        fetched_at = _now()
        return [
            self._trend(
                name=name,
                url=f"https://www.instagram.com/explore/tags/{name.replace('#', '', 1)}/",
                country_code=country_code,
                timestamp=fetched_at,
            )
            for name in names
        ]


# Registration order is the order results are merged in
SOURCE_ADAPTERS = (
    RedditAdapter,
    XAdapter,
    InstagramAdapter,
    YouTubeAdapter,
    HackerNewsAdapter,
)


def build_adapters(
    client: httpx.AsyncClient, registry: Sequence[type] = SOURCE_ADAPTERS
) -> List[SourceAdapter]:
    """Instantiate every registered adapter around one shared client."""
    return [adapter_cls(client) for adapter_cls in registry]
