"""Shared fixtures"""
import json
from datetime import datetime, timedelta, timezone

import pytest

from technewsletter.domain.models import CATEGORY_KEYS, CuratedArticle, Digest, RawArticle

NOW = datetime(2025, 7, 16, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point runtime state at a temp dir and clear notifier settings."""
    data = tmp_path / "data"
    monkeypatch.setenv("NEWSLETTER_DATA_DIR", str(data))
    monkeypatch.setenv("NEWSLETTER_LOG_DIR", str(tmp_path / "logs"))
    for name in (
        "NOTIFY_WEBHOOK_URL",
        "SMTP_USER",
        "SMTP_PASSWORD",
        "RECIPIENT_EMAIL",
        "CRON_SCHEDULE",
        "TZ",
        "ADMIN_USER",
        "ADMIN_PASSWORD",
        "NEWSLETTER_LANGUAGE",
    ):
        monkeypatch.delenv(name, raising=False)
    return data


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_raw():
    def _make(index: int, source: str = "HackerNews", hours_ago: float = 1.0, **overrides) -> RawArticle:
        fields = dict(
            title=f"Article {index}",
            url=f"https://example.com/{source.lower().replace(' ', '-')}/{index}",
            description=f"Description of article {index}",
            source=source,
            source_category="Tech Geral",
            published_at=NOW - timedelta(hours=hours_ago),
        )
        fields.update(overrides)
        return RawArticle(**fields)

    return _make


def curated_dict(article: RawArticle, category: str = "tutorials", relevance: int = 4) -> dict:
    return {
        "title": f"Artigo {article.title}",
        "original_title": article.title,
        "url": article.url,
        "source": article.source,
        "category": category,
        "relevance": relevance,
        "summary": "Resumo do artigo.",
        "tags": ["python"],
        "reasoning": "Útil para devs",
    }


def digest_dict(articles, highlights: int = 1) -> dict:
    """A well-formed model answer covering `articles`."""
    categories = {key: [] for key in CATEGORY_KEYS}
    for idx, article in enumerate(articles):
        key = CATEGORY_KEYS[idx % len(CATEGORY_KEYS)]
        categories[key].append(curated_dict(article, category=key))
    return {
        "highlights": [curated_dict(a, category="launches", relevance=5) for a in articles[:highlights]],
        "categories": categories,
    }


@pytest.fixture
def sample_digest(make_raw):
    articles = [make_raw(i) for i in range(1, 4)]
    return Digest.model_validate(digest_dict(articles, highlights=1)), articles


@pytest.fixture
def curated_article(make_raw):
    return CuratedArticle.model_validate(curated_dict(make_raw(1)))


class StubModel:
    """Text model returning a canned answer and recording prompts."""

    def __init__(self, response=None, error: Exception = None):
        self.response = response
        self.error = error
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if isinstance(self.response, (dict, list)):
            return json.dumps(self.response)
        return self.response


@pytest.fixture
def stub_model():
    return StubModel
