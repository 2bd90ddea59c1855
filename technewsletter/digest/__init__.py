"""Digest rendering for notification channels"""

from .render import build_digest_html, build_digest_markdown, build_digest_text

__all__ = ["build_digest_html", "build_digest_markdown", "build_digest_text"]
