"""Text extraction for scraped pages.

Tier 1: trafilatura (fast, local, good for static HTML)
Tier 2: Basic HTML stripping (last resort)
"""

from __future__ import annotations

import logging
import re
from html import unescape

import trafilatura

logger = logging.getLogger(__name__)


def text_from_html(html: str, url: str = "") -> str:
    """Extract readable text from raw HTML. Returns "" when nothing usable."""
    if not html:
        return ""
    try:
        content = trafilatura.extract(
            html,
            include_tables=True,
            include_links=False,
            include_comments=False,
            favor_recall=True,
            url=url or None,
        )
    except Exception as e:
        logger.debug("trafilatura failed for %s: %s", url[:60], e)
        content = None

    # Fallback to basic extraction if trafilatura returns too little
    if not content or len(content) < 100:
        basic = _basic_html_to_text(html)
        if len(basic) > len(content or ""):
            content = basic
    return (content or "").strip()


_DROP_BLOCKS = re.compile(
    r"<(script|style|noscript|template)\b[^>]*>.*?</\1\s*>|<!--.*?-->",
    re.IGNORECASE | re.DOTALL,
)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


def _basic_html_to_text(html: str) -> str:
    """Regex HTML-to-text for pages trafilatura can't parse."""
    text = _DROP_BLOCKS.sub("", html)
    text = _TAG.sub(" ", text)
    text = unescape(text).replace("\xa0", " ")
    return _WHITESPACE.sub(" ", text).strip()


def truncate_content(text: str, max_chars: int) -> str:
    """Cut text to max_chars, preferring the last sentence or line break."""
    if len(text) <= max_chars:
        return text

    head = text[:max_chars]
    boundary = max(head.rfind(". "), head.rfind("\n"))
    if boundary > max_chars * 0.8:
        return head[:boundary + 1] + " [content truncated]"
    return head + "... [content truncated]"
