"""Feed collection service"""

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Sequence

import httpx
from loguru import logger

from ..config_loader import load_feed_sources
from ..domain.errors import SourceFetchError
from ..domain.models import RawArticle
from ..domain.sources import FeedSource
from ..infrastructure.crawlers.rss import create_http_client, fetch_feed

RECENCY_WINDOW = timedelta(hours=24)


def filter_recent(
    articles: Iterable[RawArticle],
    now: datetime,
    window: timedelta = RECENCY_WINDOW,
) -> List[RawArticle]:
    """
    Keep articles published within [now - window, now].

    Articles without a publication date are dropped.
    """
    oldest = now - window
    return [
        article
        for article in articles
        if article.published_at is not None and oldest <= article.published_at <= now
    ]


class FeedCollector:
    """Fetch every configured source concurrently and keep the last 24 hours."""

    def __init__(
        self,
        sources: Optional[Sequence[FeedSource]] = None,
        client_factory: Callable[[], httpx.AsyncClient] = create_http_client,
        window: timedelta = RECENCY_WINDOW,
    ):
        self._sources = list(sources) if sources is not None else None
        self._client_factory = client_factory
        self.window = window

    @property
    def sources(self) -> List[FeedSource]:
        if self._sources is None:
            return load_feed_sources()
        return self._sources

    async def collect(self, now: Optional[datetime] = None) -> List[RawArticle]:
        """
        Collect recent articles from all sources.

        Never raises for a source failure: a failing source contributes no
        items. Output is in source-list order, each source in feed order,
        without de-duplication.
        """
        now = now or datetime.now(timezone.utc)
        sources = self.sources
        start = time.monotonic()
        logger.info(f"[collector] Starting collection from {len(sources)} feeds")

        async with self._client_factory() as client:
            # Every fetch settles (value or exception) before results are merged.
            results = await asyncio.gather(
                *(fetch_feed(source, client) for source in sources),
                return_exceptions=True,
            )

        all_articles: List[RawArticle] = []
        failed = 0
        for source, result in zip(sources, results):
            if isinstance(result, SourceFetchError):
                logger.error(f"[collector] Error in {source.name}: {result.reason}")
                failed += 1
                continue
            if isinstance(result, Exception):
                logger.error(f"[collector] Unexpected error in {source.name}: {result!r}")
                failed += 1
                continue
            if isinstance(result, BaseException):
                raise result
            all_articles.extend(result)

        recent = filter_recent(all_articles, now, self.window)

        elapsed = time.monotonic() - start
        logger.info(
            f"[collector] Collection finished in {elapsed:.2f}s: {len(all_articles)} articles, "
            f"{len(recent)} in the last {self.window}, {failed} feed(s) failed"
        )
        return recent
