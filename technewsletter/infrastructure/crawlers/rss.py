"""RSS/Atom feed fetcher"""
import calendar
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, List, Optional

import httpx
from bs4 import BeautifulSoup
from feedparser import parse as feedparse
from loguru import logger

from ...domain.errors import SourceFetchError
from ...domain.models import RawArticle
from ...domain.sources import FeedSource

USER_AGENT = "TechNewsletter/1.0"
FETCH_TIMEOUT = 10.0

# Date fields tried in order for an item's publication time
DATE_FIELDS = ("published", "updated", "created")

_WHITESPACE = re.compile(r"\s+")


def create_http_client(**kwargs: Any) -> httpx.AsyncClient:
    """HTTP client shared by every source of one collection run."""
    kwargs.setdefault("timeout", FETCH_TIMEOUT)
    kwargs.setdefault("follow_redirects", True)
    kwargs.setdefault("headers", {"User-Agent": USER_AGENT})
    return httpx.AsyncClient(**kwargs)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """
    Parse a raw date string: ISO-8601 first, then RFC-2822.

    Returns an aware UTC datetime, or None when nothing parses.
    Naive values are taken as UTC.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    value = raw.strip()

    # ISO: "2025-07-16T20:54:01+00:00" or "2025-07-16T20:54:01Z"
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        dt = None

    # RFC: "Wed, 16 Jul 2025 20:54:01 +0000"
    if dt is None:
        try:
            dt = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _entry_published_at(entry) -> Optional[datetime]:
    for name in DATE_FIELDS:
        # feedparser normalizes *_parsed to a UTC struct_time
        parsed = entry.get(f"{name}_parsed")
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
        published = parse_timestamp(entry.get(name))
        if published is not None:
            return published
    return None


def _html_to_text(value: str) -> str:
    if not value:
        return ""
    text = BeautifulSoup(value, "html.parser").get_text(" ")
    return _WHITESPACE.sub(" ", text).strip()


def _entry_description(entry) -> str:
    raw = entry.get("summary") or entry.get("description") or ""
    if not raw and entry.get("content"):
        raw = entry["content"][0].get("value", "")
    return _html_to_text(raw)


def parse_feed(content: str, source: FeedSource) -> List[RawArticle]:
    """
    Normalize a feed document into RawArticle items, in feed order.

    Raises:
        SourceFetchError: when the document is not a feed at all
    """
    feed = feedparse(content)

    if feed.bozo and feed.get("bozo_exception"):
        if not feed.entries:
            raise SourceFetchError(source.name, f"unparseable feed: {feed.bozo_exception}")
        logger.warning(f"[collector] Feed parse warning for {source.name}: {feed.bozo_exception}")

    articles: List[RawArticle] = []
    for entry in feed.entries:
        articles.append(
            RawArticle(
                title=(entry.get("title") or "").strip(),
                url=(entry.get("link") or "").strip(),
                description=_entry_description(entry),
                source=source.name,
                source_category=source.category,
                published_at=_entry_published_at(entry),
            )
        )
    return articles


async def fetch_feed(source: FeedSource, client: httpx.AsyncClient) -> List[RawArticle]:
    """
    Fetch and normalize one feed source.

    Raises:
        SourceFetchError: on any transport, HTTP status or parse failure
    """
    logger.info(f"[collector] Fetching {source.name}...")
    try:
        resp = await client.get(source.url)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise SourceFetchError(source.name, str(e) or type(e).__name__) from e

    articles = parse_feed(resp.text, source)
    logger.info(f"[collector] {source.name}: {len(articles)} articles")
    return articles
