"""Newsletter data model: raw feed items, curated articles and persisted digests"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Fixed category buckets, in the order they are rendered and persisted.
CATEGORY_KEYS = ("launches", "tutorials", "discussions", "trends")

CategoryKey = Literal["launches", "tutorials", "discussions", "trends"]


@dataclass(frozen=True)
class RawArticle:
    """One feed item as collected, before curation."""

    title: str
    url: str
    description: str
    source: str  # feed name, e.g. "HackerNews"
    source_category: str  # feed category, e.g. "AI"
    published_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "source": self.source,
            "sourceCategory": self.source_category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawArticle":
        published_raw = data.get("publishedAt")
        published_at = datetime.fromisoformat(published_raw) if published_raw else None
        return cls(
            title=data.get("title", ""),
            url=data.get("url", ""),
            description=data.get("description", ""),
            source=data.get("source", ""),
            source_category=data.get("sourceCategory", ""),
            published_at=published_at,
        )


class CuratedArticle(BaseModel):
    """An article after the model translated, scored and categorized it."""

    model_config = ConfigDict(frozen=True)

    title: str
    original_title: Optional[str] = None
    url: str
    source: str
    category: CategoryKey
    relevance: int = Field(ge=1, le=5, strict=True)
    summary: str
    tags: List[str] = Field(default_factory=list)
    reasoning: Optional[str] = None


class Digest(BaseModel):
    """
    The curated output of one pipeline run.

    ``highlights`` is a cross-category view: an article listed there usually
    also appears in one of the ``categories`` buckets.
    """

    model_config = ConfigDict(frozen=True)

    highlights: List[CuratedArticle]
    categories: Dict[str, List[CuratedArticle]]

    @field_validator("categories")
    @classmethod
    def _check_category_keys(cls, value: Dict[str, List[CuratedArticle]]):
        missing = [key for key in CATEGORY_KEYS if key not in value]
        extra = [key for key in value if key not in CATEGORY_KEYS]
        if missing or extra:
            raise ValueError(
                f"categories must have exactly {list(CATEGORY_KEYS)} "
                f"(missing={missing}, unexpected={extra})"
            )
        return {key: value[key] for key in CATEGORY_KEYS}

    @classmethod
    def empty(cls) -> "Digest":
        return cls(highlights=[], categories={key: [] for key in CATEGORY_KEYS})

    @property
    def total_curated(self) -> int:
        return len(self.highlights) + sum(len(items) for items in self.categories.values())

    @property
    def is_empty(self) -> bool:
        return self.total_curated == 0

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


@dataclass(frozen=True)
class DigestStats:
    raw_articles: int
    curated_articles: int
    highlights: int
    categories: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_digest(cls, digest: Digest, raw_count: int) -> "DigestStats":
        return cls(
            raw_articles=raw_count,
            curated_articles=digest.total_curated,
            highlights=len(digest.highlights),
            categories={key: len(digest.categories[key]) for key in CATEGORY_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rawArticles": self.raw_articles,
            "curatedArticles": self.curated_articles,
            "highlights": self.highlights,
            "categories": dict(self.categories),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DigestStats":
        return cls(
            raw_articles=int(data.get("rawArticles", 0)),
            curated_articles=int(data.get("curatedArticles", 0)),
            highlights=int(data.get("highlights", 0)),
            categories={key: int(data.get("categories", {}).get(key, 0)) for key in CATEGORY_KEYS},
        )


@dataclass(frozen=True)
class DigestRecord:
    """The persisted envelope of a digest, keyed by its UTC calendar date."""

    date: str  # YYYY-MM-DD
    generated_at: datetime
    stats: DigestStats
    digest: Digest
    raw: List[RawArticle]

    @classmethod
    def build(
        cls,
        digest: Digest,
        raw: List[RawArticle],
        date: str,
        generated_at: Optional[datetime] = None,
    ) -> "DigestRecord":
        return cls(
            date=date,
            generated_at=generated_at or datetime.now(timezone.utc),
            stats=DigestStats.from_digest(digest, len(raw)),
            digest=digest,
            raw=list(raw),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "generatedAt": self.generated_at.isoformat(),
            "stats": self.stats.to_dict(),
            "digest": self.digest.to_dict(),
            "raw": [article.to_dict() for article in self.raw],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DigestRecord":
        return cls(
            date=data["date"],
            generated_at=datetime.fromisoformat(data["generatedAt"]),
            stats=DigestStats.from_dict(data.get("stats", {})),
            digest=Digest.model_validate(data["digest"]),
            raw=[RawArticle.from_dict(item) for item in data.get("raw", [])],
        )
