"""List self-healing for list blocks returned by function calls.

Models often return list content as one string (newline, semicolon or
inline-dash separated, sometimes as HTML) instead of an array. These helpers
turn whatever arrived into a clean list of items.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Any

LOGGER = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"<[^>]*>")
_HTML_LIST = re.compile(r"<(?:ul|ol|li)[^>]*>", re.IGNORECASE)
_HTML_LIST_ITEM = re.compile(r"<li[^>]*>(.*?)</li>", re.IGNORECASE | re.DOTALL)
_BULLET_PREFIX = re.compile(r"^[*\-•→▸▹►◆◇○●]\s*")
_NUMBER_PREFIX = re.compile(r"^\d+[.)\-]\s*")
_CHECKBOX_PREFIX = re.compile(r"^\[[\sxX✓✔]\]\s*")
_QUOTE_PREFIX = re.compile(r"^>\s*")


def strip_html_tags(text: str) -> str:
    return _HTML_TAG.sub("", text)


def extract_list_items_from_html(markup: str) -> list[str]:
    return _HTML_LIST_ITEM.findall(markup)


def contains_html_list(text: str) -> bool:
    return bool(_HTML_LIST.search(text))


def clean_markdown_prefixes(text: str) -> str:
    value = text.strip()
    value = _BULLET_PREFIX.sub("", value, count=1)
    value = _NUMBER_PREFIX.sub("", value, count=1)
    value = _CHECKBOX_PREFIX.sub("", value, count=1)
    value = _QUOTE_PREFIX.sub("", value, count=1)
    return value.strip()


def clean_list_item(item: str) -> str:
    """HTML tags, then entities, then markdown prefixes."""
    cleaned = strip_html_tags(item)
    cleaned = html.unescape(cleaned).replace("\xa0", " ")
    return clean_markdown_prefixes(cleaned)


def _split_string(content: str) -> list[str] | None:
    if contains_html_list(content):
        extracted = extract_list_items_from_html(content)
        if extracted:
            return extracted
        return strip_html_tags(content).split("\n")
    if "\n" in content:
        return content.split("\n")
    if ";" in content:
        return content.split(";")
    if content.count(" - ") >= 2:
        return content.split(" - ")
    return None


def sanitize_list_content(content: Any, min_item_length: int = 5) -> list[str]:
    """Return clean list items, dropping items shorter than ``min_item_length``."""
    if content is None:
        return []

    if isinstance(content, (list, tuple)):
        cleaned = [
            clean_list_item(item) if isinstance(item, str) else str(item) for item in content
        ]
        return [item for item in cleaned if len(item) >= min_item_length]

    if not isinstance(content, str):
        LOGGER.warning("list_sanitizer_unexpected_type", extra={"type": type(content).__name__})
        return []

    lines = _split_string(content)
    if lines is None:
        single = clean_list_item(content)
        return [single] if len(single) >= min_item_length else []

    cleaned = [clean_list_item(line) for line in lines]
    result = [item for item in cleaned if len(item) >= min_item_length]
    LOGGER.debug(
        "list_sanitized",
        extra={"input_length": len(content), "items": len(result)},
    )
    return result
