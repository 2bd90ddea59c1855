from datetime import datetime
from typing import List, Sequence

import markdown

from ..domain.models import CATEGORY_KEYS, CuratedArticle, Digest

HIGHLIGHTS_HEADING = "🔥 Destaques do Dia"

CATEGORY_HEADINGS = {
    "launches": "🚀 Lançamentos",
    "tutorials": "📚 Tutoriais",
    "discussions": "💡 Discussões Técnicas",
    "trends": "📊 Tendências & Análises",
}

FOOTER = "Newsletter gerada automaticamente por IA"


def format_display_date(date: str) -> str:
    """YYYY-MM-DD -> DD/MM/YYYY"""
    return datetime.strptime(date, "%Y-%m-%d").strftime("%d/%m/%Y")


def _stars(relevance: int) -> str:
    return "⭐" * relevance


def _markdown_items(articles: Sequence[CuratedArticle]) -> List[str]:
    lines: List[str] = []
    for idx, article in enumerate(articles, start=1):
        lines.append(f"{idx}. [{article.title}]({article.url})")
        lines.append(f"   - {article.source} {_stars(article.relevance)}")
        lines.append(f"   - {article.summary}")
        if article.tags:
            lines.append("   - " + " ".join(f"`{tag}`" for tag in article.tags))
        if article.reasoning:
            lines.append(f"   - 💡 {article.reasoning}")
    return lines


def build_digest_markdown(digest: Digest, date: str) -> str:
    """
    Render a digest as markdown: title, highlights, then one section per
    non-empty category bucket.
    """
    lines: List[str] = [f"# 📰 Tech Newsletter | {format_display_date(date)}", ""]

    if digest.highlights:
        lines.append(f"## {HIGHLIGHTS_HEADING}")
        lines.append("")
        lines.extend(_markdown_items(digest.highlights))
        lines.append("")

    for key in CATEGORY_KEYS:
        articles = digest.categories[key]
        if not articles:
            continue
        lines.append(f"## {CATEGORY_HEADINGS[key]} ({len(articles)})")
        lines.append("")
        lines.extend(_markdown_items(articles))
        lines.append("")

    lines.append(f"> {FOOTER}")
    return "\n".join(lines)


def build_digest_text(digest: Digest, date: str) -> str:
    """Plain-text version used as the e-mail fallback part."""
    lines: List[str] = [f"TECH NEWSLETTER - {format_display_date(date)}", "=" * 60, ""]

    if digest.highlights:
        lines.append(HIGHLIGHTS_HEADING.upper())
        lines.append("")
        for idx, article in enumerate(digest.highlights, start=1):
            lines.append(f"{idx}. {article.title}")
            lines.append(f"   Fonte: {article.source} | {_stars(article.relevance)}")
            lines.append(f"   {article.summary}")
            lines.append(f"   Link: {article.url}")
            lines.append("")

    for key in CATEGORY_KEYS:
        articles = digest.categories[key]
        if not articles:
            continue
        lines.append(CATEGORY_HEADINGS[key].upper())
        lines.append("")
        for idx, article in enumerate(articles, start=1):
            lines.append(f"{idx}. {article.title}")
            lines.append(f"   {article.summary}")
            lines.append(f"   {article.url}")
            lines.append("")

    lines.append("-" * 60)
    lines.append(FOOTER)
    return "\n".join(lines)


def build_digest_html(digest: Digest, date: str) -> str:
    body = markdown.markdown(build_digest_markdown(digest, date))
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="UTF-8"><title>Tech Newsletter</title></head>\n'
        f"<body>{body}</body></html>"
    )
