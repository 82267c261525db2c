"""
Down-conversion of rich-text (HTML) terms and notes to plain lines.

A fixed rule table, applied in order. This is regex based and does not
understand nested or malformed markup; unclosed tags and comments can
leak text through.
"""
import html
import re
from typing import List, Optional

HTML_RULES = (
    (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
    (re.compile(r"</p>", re.IGNORECASE), "\n"),
    (re.compile(r"<p[^>]*>", re.IGNORECASE), ""),
    (re.compile(r"</div>", re.IGNORECASE), "\n"),
    (re.compile(r"<div[^>]*>", re.IGNORECASE), ""),
    (re.compile(r"<[^>]+>"), ""),
)


def html_to_text(value: Optional[str]) -> str:
    text = value or ""
    for pattern, replacement in HTML_RULES:
        text = pattern.sub(replacement, text)
    return html.unescape(text).strip()


def html_to_lines(value: Optional[str]) -> List[str]:
    """One entry per non-blank line, trimmed."""
    return [line.strip() for line in html_to_text(value).split("\n") if line.strip()]
