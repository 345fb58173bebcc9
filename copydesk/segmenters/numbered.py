"""Top-level numbered items (``1.``, ``### 2.``, ``**3.**``)."""

from __future__ import annotations

import re

from copydesk.models import ParsedMessage

from .common import aggregate, split_first_line, strip_bold

NUMBERED_LINE = re.compile(
    r"^(?:#{1,3}[ \t]+)?(?:\*\*)?(?P<number>\d{1,3})\.(?:\*\*)?"
    r"[ \t]+(?P<title>\S.*?)(?:\*\*)?[ \t]*$",
    re.MULTILINE,
)
MIN_ITEMS = 2


def segment(text: str, *, start: int = 0) -> ParsedMessage | None:
    matches = list(NUMBERED_LINE.finditer(text, start))
    if len(matches) < MIN_ITEMS:
        return None

    items: list[tuple[str, str, str, int, int]] = []
    for index, match in enumerate(matches):
        item_start = match.start()
        item_end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        raw = text[item_start:item_end].strip()
        title = strip_bold(match.group("title"))
        _, body = split_first_line(raw)
        # One-line items carry their content in the numbered line itself.
        content = body or title
        items.append((f"{match.group('number')}. {title}", content, raw, item_start, item_end))

    blocks = aggregate(items)
    explanation = text[start : matches[0].start()].strip()
    return ParsedMessage(
        has_actionable_content=bool(blocks),
        blocks=blocks,
        explanation=explanation or None,
        strategy="numbered",
    )
