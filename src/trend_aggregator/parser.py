"""Parsers for the payloads returned by trend sources.

Covers RSS feeds, markdown rendered by the text proxy, and the compact
popularity formatter shared by sources that expose a score.
"""

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional

import feedparser

logger = logging.getLogger(__name__)


def format_volume(value: float) -> str:
    """
    Format a popularity score as a compact magnitude.

    Examples:
        950 -> "950"
        1500 -> "1.5K"
        2300000 -> "2.3M"
    """
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(int(value))


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 822 or ISO 8601 date into an aware UTC datetime.

    Returns None when the value is missing or unparseable so callers can
    substitute the fetch time.
    """
    if not value:
        return None

    parsed = None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable date: {value!r}")
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_feed_entries(xml: str, fallback_link: str, limit: int = 10) -> List[Dict[str, object]]:
    """
    Extract title/link/published from an RSS or Atom feed.

    Missing fields degrade to defaults: "Untitled", the feed URL, and None
    for the publish date.
    """
    feed = feedparser.parse(xml)
    if feed.bozo and not feed.entries:
        logger.debug(f"Feed parse error: {feed.bozo_exception}")

    entries = []
    for entry in feed.entries[:limit]:
        published = None
        parsed = entry.get("published_parsed") or entry.get("updated_parsed")
        if parsed:
            published = datetime(*parsed[:6], tzinfo=timezone.utc)

        entries.append(
            {
                "title": (entry.get("title") or "").strip() or "Untitled",
                "link": entry.get("link") or fallback_link,
                "published": published,
            }
        )
    return entries


def extract_markdown_links(
    markdown: str, url_pattern: str, limit: int = 50
) -> List[tuple]:
    """
    Find `[text](url)` links whose URL matches `url_pattern`.

    One link per line, deduplicated by text, capped at `limit`.
    """
    pattern = re.compile(rf"\[([^\]]+)\]\(({url_pattern}[^)]*)\)")
    seen = set()
    links = []

    for line in markdown.split("\n"):
        if len(links) >= limit:
            break
        match = pattern.search(line)
        if not match:
            continue
        text = match.group(1).strip()
        if text and text not in seen:
            seen.add(text)
            links.append((text, match.group(2)))

    return links


def extract_hashtags(markdown: str, scan_limit: int = 120, keep: int = 100) -> List[str]:
    """
    Collect hashtags from a rendered listing page.

    Three patterns are merged: markdown links labelled with a hashtag,
    `/hashtags/<tag>/` path segments, and inline `#token` occurrences.
    """
    hashtags: Dict[str, None] = {}

    for line in markdown.split("\n"):
        link_match = re.search(r"\[\s*(#[^\]\s]+)\s*\]\(([^)]+)\)", line)
        if link_match:
            hashtags[link_match.group(1).strip()] = None

        path_match = re.search(r"/hashtags/([^/]+)/", line, re.IGNORECASE)
        if path_match:
            hashtags[f"#{path_match.group(1).strip()}"] = None

        for tag in re.findall(r"#[A-Za-z0-9_]{2,}", line):
            hashtags[tag.strip()] = None

        if len(hashtags) >= scan_limit:
            break

    return list(hashtags)[:keep]
