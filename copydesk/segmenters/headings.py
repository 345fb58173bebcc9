"""Markdown headings (``#`` to ``###``) with sub-heading aggregation."""

from __future__ import annotations

import re

from copydesk.models import ParsedMessage

from .common import aggregate, split_first_line, strip_bold

HEADING_LINE = re.compile(r"^#{1,3}[ \t]+(?P<title>\S.*?)[ \t#]*$", re.MULTILINE)
MIN_SECTIONS = 2


def segment(text: str, *, start: int = 0) -> ParsedMessage | None:
    matches = list(HEADING_LINE.finditer(text, start))
    if len(matches) < MIN_SECTIONS:
        return None

    items: list[tuple[str, str, str, int, int]] = []
    for index, match in enumerate(matches):
        section_start = match.start()
        section_end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        raw = text[section_start:section_end].strip()
        title = strip_bold(match.group("title"))
        _, body = split_first_line(raw)
        items.append((title, body or title, raw, section_start, section_end))

    blocks = aggregate(items, force_split=True)
    explanation = text[start : matches[0].start()].strip()
    return ParsedMessage(
        has_actionable_content=bool(blocks),
        blocks=blocks,
        explanation=explanation or None,
        strategy="headings",
    )
