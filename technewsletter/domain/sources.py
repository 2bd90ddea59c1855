"""Feed source definitions"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class FeedSource:
    name: str
    url: str
    category: str


DEFAULT_FEED_SOURCES: List[FeedSource] = [
    FeedSource(name="HackerNews", url="https://hnrss.org/frontpage", category="Tech Geral"),
    FeedSource(name="Dev.to - AI", url="https://dev.to/feed/tag/ai", category="AI"),
    FeedSource(name="Dev.to - React", url="https://dev.to/feed/tag/react", category="Frontend"),
    FeedSource(
        name="Reddit Programming",
        url="https://www.reddit.com/r/programming/.rss",
        category="Discussões",
    ),
    FeedSource(
        name="Reddit Machine Learning",
        url="https://www.reddit.com/r/MachineLearning/.rss",
        category="AI",
    ),
    FeedSource(name="GitHub Blog", url="https://github.blog/feed/", category="Developer Tools"),
    FeedSource(name="Vercel Blog", url="https://vercel.com/blog/feed", category="Frontend"),
]
