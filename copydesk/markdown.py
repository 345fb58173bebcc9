"""Minimal markdown to HTML conversion for editor blocks."""

from __future__ import annotations

import re
from typing import Any

_BOLD = re.compile(r"\*\*(.+?)\*\*")
_ITALIC = re.compile(r"(?<!\*)\*(?!\*)(.+?)(?<!\*)\*(?!\*)")
_UNDERLINE = re.compile(r"__(.+?)__")
_BULLET_ITEM = re.compile(r"^\s*[-*•]\s+(?P<item>.*)$")
_ORDERED_ITEM = re.compile(r"^\s*\d+\.\s+(?P<item>.*)$")


def render_inline(text: str) -> str:
    html = _BOLD.sub(r"<strong>\1</strong>", text)
    html = _ITALIC.sub(r"<em>\1</em>", html)
    return _UNDERLINE.sub(r"<u>\1</u>", html)


def markdown_to_html(text: Any) -> Any:
    """Convert bold, italic, underline and simple lists to HTML.

    Consecutive ``- ``/``* ``/``• `` lines become one ``<ul>``, consecutive
    ``1. `` lines one ``<ol>``. Other lines are kept and joined by newlines.
    Non-string input is returned unchanged.
    """
    if not isinstance(text, str):
        return text

    parts: list[str] = []
    list_tag: str | None = None
    items: list[str] = []

    def flush() -> None:
        nonlocal list_tag, items
        if list_tag is not None:
            rendered = "".join(f"<li>{render_inline(item)}</li>" for item in items)
            parts.append(f"<{list_tag}>{rendered}</{list_tag}>")
        list_tag = None
        items = []

    for line in text.split("\n"):
        bullet = _BULLET_ITEM.match(line)
        ordered = None if bullet else _ORDERED_ITEM.match(line)
        tag = "ul" if bullet else "ol" if ordered else None
        if tag is None:
            flush()
            parts.append(render_inline(line))
            continue
        if tag != list_tag:
            flush()
            list_tag = tag
        items.append((bullet or ordered).group("item").strip())
    flush()
    return "\n".join(parts)
