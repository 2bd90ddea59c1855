"""Feed crawlers"""

from .rss import fetch_feed, parse_feed

__all__ = ["fetch_feed", "parse_feed"]
