"""Tests for payload parsing helpers."""

from datetime import datetime, timezone

import pytest

from trend_aggregator.parser import (
    extract_hashtags,
    extract_markdown_links,
    format_volume,
    parse_datetime,
    parse_feed_entries,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0"),
        (999, "999"),
        (1000, "1.0K"),
        (1500, "1.5K"),
        (245_000, "245.0K"),
        (1_000_000, "1.0M"),
        (2_345_678, "2.3M"),
    ],
)
def test_format_volume(value, expected):
    assert format_volume(value) == expected


def test_parse_datetime_formats():
    expected = datetime(2024, 1, 1, 10, 15, tzinfo=timezone.utc)
    assert parse_datetime("Mon, 01 Jan 2024 10:15:00 +0000") == expected
    assert parse_datetime("2024-01-01T10:15:00.000Z") == expected
    assert parse_datetime("2024-01-01T12:15:00+02:00") == expected


def test_parse_datetime_degrades_to_none():
    assert parse_datetime(None) is None
    assert parse_datetime("") is None
    assert parse_datetime("yesterday-ish") is None


def test_parse_feed_entries_rss_defaults_missing_fields():
    xml = """<?xml version="1.0"?>
    <rss version="2.0"><channel>
      <item>
        <title>First post</title>
        <link>https://example.com/1</link>
        <pubDate>Mon, 01 Jan 2024 10:15:00 +0000</pubDate>
      </item>
      <item>
        <description>no title, no link, no date</description>
      </item>
      <item><title>Third</title></item>
    </channel></rss>"""

    entries = parse_feed_entries(xml, fallback_link="https://feed.example/rss", limit=2)

    assert len(entries) == 2
    assert entries[0]["title"] == "First post"
    assert entries[0]["link"] == "https://example.com/1"
    assert entries[0]["published"] == datetime(2024, 1, 1, 10, 15, tzinfo=timezone.utc)
    assert entries[1] == {
        "title": "Untitled",
        "link": "https://feed.example/rss",
        "published": None,
    }


def test_parse_feed_entries_atom():
    xml = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>top scoring links : worldnews</title>
  <entry>
    <id>t3_one</id>
    <link href="https://www.reddit.com/r/worldnews/comments/one/" />
    <updated>2024-01-01T10:30:00+00:00</updated>
    <published>2024-01-01T12:15:00+02:00</published>
    <title>Tom &amp; Jerry</title>
  </entry>
  <entry>
    <id>t3_two</id>
  </entry>
</feed>"""

    entries = parse_feed_entries(xml, fallback_link="https://www.reddit.com/r/worldnews/top/.rss")

    assert entries[0] == {
        "title": "Tom & Jerry",
        "link": "https://www.reddit.com/r/worldnews/comments/one/",
        "published": datetime(2024, 1, 1, 10, 15, tzinfo=timezone.utc),
    }
    assert entries[1] == {
        "title": "Untitled",
        "link": "https://www.reddit.com/r/worldnews/top/.rss",
        "published": None,
    }


def test_parse_feed_entries_garbage_is_empty():
    assert parse_feed_entries("<html><body>nope</body></html>", fallback_link="https://e.com/") == []


def test_extract_markdown_links_dedupes_and_caps():
    markdown = "\n".join(
        [
            "Title: Trending",
            "[Video One](https://www.youtube.com/watch?v=abc123)",
            "[Video One](https://www.youtube.com/watch?v=abc123)",
            "[Some channel](https://www.youtube.com/@channel)",
            "Watch [Video Two](https://www.youtube.com/watch?v=def456&pp=x) now",
            "[Video Three](https://www.youtube.com/watch?v=ghi789)",
        ]
    )

    links = extract_markdown_links(markdown, r"https://www\.youtube\.com/watch\?v=", limit=2)

    assert links == [
        ("Video One", "https://www.youtube.com/watch?v=abc123"),
        ("Video Two", "https://www.youtube.com/watch?v=def456&pp=x"),
    ]


def test_extract_hashtags_merges_three_patterns_in_order():
    markdown = "\n".join(
        [
            "[#love](https://top-hashtags.com/hashtag/love/)",
            "see https://top-hashtags.com/hashtags/instagood/ for more",
            "popular: #photooftheday #love #a",
        ]
    )

    assert extract_hashtags(markdown) == ["#love", "#instagood", "#photooftheday"]


def test_extract_hashtags_caps_scan_and_keep():
    markdown = "\n".join(f"#tag{i:03d}" for i in range(300))

    tags = extract_hashtags(markdown, scan_limit=120, keep=100)

    assert len(tags) == 100
    assert tags[0] == "#tag000"
    assert tags[-1] == "#tag099"


def test_extract_hashtags_empty():
    assert extract_hashtags("nothing to see here") == []
