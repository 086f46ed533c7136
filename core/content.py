# =============================================================================
# core/content.py  —  Content Normalization & Response Shaping
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   1. html_to_text(): newsletter posts arrive as HTML.  Agents read plain
#      text far better (and cheaper), so BeautifulSoup strips tags while
#      we keep the paragraph structure, captions and quotes.
#   2. shape_result(): turns whatever a handler produced into the single
#      text item every tool returns:
#         None / empty collection  →  the tool's placeholder ("No posts found")
#         str                      →  as-is
#         anything else            →  pretty-printed JSON
#      If JSON encoding fails we return an explicit error text, never raise.
# =============================================================================

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from bs4 import BeautifulSoup

from core.models import ContentEnvelope

logger = logging.getLogger(__name__)


# =============================================================================
# HTML → plain text
# =============================================================================
_DROPPED_TAGS = ["script", "style", "noscript"]
_PARAGRAPH_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "h6"]
_LINE_TAGS = ["div", "li", "tr"]


def html_to_text(markup: str | None) -> str:
    """Convert HTML to plain text, preserving paragraph breaks.

    Captions become ``[Image Caption: ...]`` and block quotes become
    ``> ...`` lines.  Script and style bodies are dropped.
    """
    if not markup:
        return ""

    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(_DROPPED_TAGS):
        element.decompose()

    # Captions and quotes are rewritten first so their text keeps its marker
    for caption in soup.find_all("figcaption"):
        caption.replace_with(f"\n[Image Caption: {caption.get_text(' ', strip=True)}]\n")
    for quote in soup.find_all("blockquote"):
        lines = quote.get_text("\n", strip=True).splitlines()
        quote.replace_with("\n\n" + "\n".join(f"> {line}" for line in lines) + "\n\n")

    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(_PARAGRAPH_TAGS):
        block.insert_after("\n\n")
    for block in soup.find_all(_LINE_TAGS):
        block.insert_after("\n")

    text = soup.get_text().replace("\xa0", " ")

    # Normalize whitespace: trim each line, at most one blank line in a row
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def extract_structured_content(markup: str | None) -> str:
    """Simplified readable text for the "simplified" newsletter tools."""
    return html_to_text(markup)


def process_post_content(post: dict[str, Any] | None) -> dict[str, Any] | None:
    """Replace a post's ``body_html`` with ``body_text``."""
    if not post:
        return post
    processed = dict(post)
    if processed.get("body_html"):
        processed["body_text"] = html_to_text(processed.pop("body_html"))
    if processed.get("truncated_body_text"):
        processed["truncated_body_text"] = html_to_text(processed["truncated_body_text"])
    return processed


# =============================================================================
# Envelope shaping
# =============================================================================
def is_empty(value: Any) -> bool:
    """None and empty collections are "no result"; 0 and False are not."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def to_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def shape_result(
    value: Any,
    placeholder: str,
    empty: Callable[[Any], bool] = is_empty,
) -> ContentEnvelope:
    """Wrap a handler result in a content envelope with exactly one item."""
    if empty(value):
        return ContentEnvelope.text(placeholder)
    if isinstance(value, str):
        return ContentEnvelope.text(value)
    try:
        return ContentEnvelope.text(to_json(value))
    except (TypeError, ValueError) as exc:
        logger.error("Result could not be serialized: %s", exc)
        return ContentEnvelope.text(f"Error: result could not be serialized ({exc})")
