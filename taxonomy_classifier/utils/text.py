"""
Text Normalization Helpers
==========================

Cleaning of merchant-supplied product text before it reaches
the embedding model or a prompt.
"""

import html
import re

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")

# Tags that describe merchandising, not the product itself
MARKETING_TAG_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^staff.?pick$",
        r"^best.?seller$",
        r"^new$",
        r"^sale$",
        r"^featured$",
        r"^trending$",
        r"^popular$",
        r"^limited$",
        r"^exclusive$",
    )
)


def clean_description(text: str | None, max_length: int) -> str:
    """
    Convert rich text into a single line of plain text.

    Strips markup, unescapes entities, collapses whitespace and
    truncates to max_length characters.

    Args:
        text: Raw description (HTML or plain text)
        max_length: Maximum number of characters to keep

    Returns:
        Cleaned text, empty string when nothing remains
    """
    if not text:
        return ""
    plain = _TAG_RE.sub(" ", text)
    plain = html.unescape(plain)
    plain = _WHITESPACE_RE.sub(" ", plain).strip()
    return plain[:max_length].rstrip()


def is_marketing_tag(tag: str) -> bool:
    """Check whether a tag is merchandising noise ("Best Seller", "Sale", ...)."""
    stripped = tag.strip()
    return any(pattern.match(stripped) for pattern in MARKETING_TAG_PATTERNS)
