"""Domain layer: articles, digests and error types"""

from .errors import CurationError, NewsletterError, PersistenceError, SourceFetchError
from .models import (
    CATEGORY_KEYS,
    CuratedArticle,
    Digest,
    DigestRecord,
    DigestStats,
    RawArticle,
)
from .sources import DEFAULT_FEED_SOURCES, FeedSource

__all__ = [
    "CATEGORY_KEYS",
    "CuratedArticle",
    "CurationError",
    "DEFAULT_FEED_SOURCES",
    "Digest",
    "DigestRecord",
    "DigestStats",
    "FeedSource",
    "NewsletterError",
    "PersistenceError",
    "RawArticle",
    "SourceFetchError",
]
