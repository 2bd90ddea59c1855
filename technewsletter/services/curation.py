"""Model-driven curation: prompt building, model call and response validation"""

import json
import os
import re
import time
from dataclasses import dataclass
from typing import Collection, Optional, Protocol, Sequence

from loguru import logger
from pydantic import ValidationError

from ..domain.errors import CurationError
from ..domain.models import CATEGORY_KEYS, Digest, RawArticle

# Characters of each article description sent to the model
DESCRIPTION_BUDGET = 300

DEFAULT_LANGUAGE = "Brazilian Portuguese"

CURATOR_PROMPT = """You are an expert curator of tech, programming and AI content for a newsletter whose readers speak {language}.

Analyze the articles below and return a JSON object with this exact structure:

{{
  "highlights": [],       // the TOP 5 most important articles of the day
  "categories": {{
    "launches": [],       // product, feature and version launches
    "tutorials": [],      // tutorials, how-tos, practical guides
    "discussions": [],    // technical discussions, debates, opinions
    "trends": []          // market analysis, trends, studies
  }}
}}

Each article object must be:
{{
  "title": "title TRANSLATED to {language}",
  "original_title": "original title (when translated)",
  "url": "the article URL exactly as given",
  "source": "the source name exactly as given",
  "category": "one of: launches, tutorials, discussions, trends",
  "relevance": 1-5,       // integer, 5 = very relevant, 1 = barely relevant
  "summary": "2-3 line summary focused on value and learnings, in {language}",
  "tags": ["tag1", "tag2", "tag3"],
  "reasoning": "why this matters (one line)"
}}

TRANSLATION (mandatory):
- Translate every title into natural, fluent {language}
- Keep technical terms in English: API, React, Node.js, TypeScript, DevOps, etc.
- Use an informal but professional tone, the way a developer would talk

RELEVANCE:
- 5: breaking news, major launches, game-changers
- 4: useful practical tutorials, important discussions
- 3: interesting but not urgent
- 2: niche or very specific content
- 1: repetitive or low-value content

IMPORTANT:
- Prioritize: Claude, generative AI, React, Node.js, modern developer tools
- Favor "how senior developers use X" and usage-pattern articles
- Be critical: leave out clickbait and shallow content
- Only use URLs from the list below; never invent one
- Return ONLY valid JSON, with no extra text"""

_OPENING_FENCE = re.compile(r"^```(?:json|JSON)?[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```$")

# The prompt asks for the top 5 of the day
MAX_HIGHLIGHTS = 5


class TextModel(Protocol):
    async def generate(self, prompt: str) -> str:
        ...


@dataclass(frozen=True)
class ParseResult:
    """Outcome of validating a model response: a digest or the reason it was rejected."""

    digest: Optional[Digest] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.digest is not None

    @classmethod
    def success(cls, digest: Digest) -> "ParseResult":
        return cls(digest=digest)

    @classmethod
    def failure(cls, reason: str) -> "ParseResult":
        return cls(error=reason)


def format_article(index: int, article: RawArticle) -> str:
    description = article.description[:DESCRIPTION_BUDGET]
    return (
        f"[{index}]\n"
        f"Title: {article.title}\n"
        f"URL: {article.url}\n"
        f"Source: {article.source}\n"
        f"Description: {description}...\n"
        f"---"
    )


def build_prompt(articles: Sequence[RawArticle], language: str = DEFAULT_LANGUAGE) -> str:
    articles_text = "\n\n".join(
        format_article(index, article) for index, article in enumerate(articles, start=1)
    )
    instructions = CURATOR_PROMPT.format(language=language)
    return f"{instructions}\n\nARTICLES TO ANALYZE:\n\n{articles_text}\n\nRETURN THE JSON:"


def strip_code_fences(text: str) -> str:
    """
    Remove a markdown code fence wrapping the whole payload, if there is one.

    Only a fence at the very start (and, when present, the very end) is
    removed; backticks inside string values are left alone.
    """
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = _OPENING_FENCE.sub("", text, count=1)
    return _CLOSING_FENCE.sub("", text, count=1).strip()


def parse_digest(text: str, known_urls: Optional[Collection[str]] = None) -> ParseResult:
    """
    Validate a raw model response as a Digest.

    Nothing is repaired: any deviation from the schema, or a URL that is not
    in `known_urls`, rejects the whole response.
    """
    payload = strip_code_fences(text or "")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        return ParseResult.failure(f"response is not valid JSON: {e}")

    if not isinstance(data, dict):
        return ParseResult.failure(f"response must be a JSON object, got {type(data).__name__}")

    missing = [key for key in ("highlights", "categories") if key not in data]
    if missing:
        return ParseResult.failure(f"response is missing top-level key(s): {', '.join(missing)}")

    try:
        digest = Digest.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        return ParseResult.failure(f"response does not match the digest schema: {problems}")

    if len(digest.highlights) > MAX_HIGHLIGHTS:
        return ParseResult.failure(
            f"response has {len(digest.highlights)} highlights, at most {MAX_HIGHLIGHTS} allowed"
        )

    if known_urls is not None:
        known = set(known_urls)
        all_articles = list(digest.highlights)
        for key in CATEGORY_KEYS:
            all_articles.extend(digest.categories[key])
        invented = [article.url for article in all_articles if article.url not in known]
        if invented:
            return ParseResult.failure(f"response contains URLs not in the input: {invented[:3]}")

    return ParseResult.success(digest)


class CurationEngine:
    """Send the collected articles to the model and turn its answer into a Digest."""

    def __init__(self, model: TextModel, language: Optional[str] = None):
        self.model = model
        self.language = language or os.getenv("NEWSLETTER_LANGUAGE", DEFAULT_LANGUAGE)

    async def curate(self, articles: Sequence[RawArticle]) -> Digest:
        """
        Curate `articles` with a single model call.

        Raises:
            CurationError: the model call failed or its response was rejected
        """
        if not articles:
            logger.warning("[curation] No articles to curate, returning an empty digest")
            return Digest.empty()

        logger.info(f"[curation] Curating {len(articles)} articles...")
        start = time.monotonic()
        prompt = build_prompt(articles, self.language)

        try:
            text = await self.model.generate(prompt)
        except Exception as e:  # noqa: BLE001
            logger.error(f"[curation] Model call failed: {e}")
            raise CurationError(f"model call failed: {e}") from e

        result = parse_digest(text, {article.url for article in articles})
        if not result.ok:
            logger.error(f"[curation] Invalid model response: {result.error}")
            raise CurationError(result.error)

        digest = result.digest
        elapsed = time.monotonic() - start
        counts = ", ".join(f"{key}={len(digest.categories[key])}" for key in CATEGORY_KEYS)
        logger.info(
            f"[curation] Curation finished in {elapsed:.2f}s: highlights={len(digest.highlights)}, "
            f"{counts}, total curated {digest.total_curated}/{len(articles)}"
        )
        return digest
