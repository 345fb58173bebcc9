"""Fenced code blocks, one block per fence."""

from __future__ import annotations

import re

from copydesk.models import ParsedContent, ParsedMessage

from .common import infer_block_type

FENCED_BLOCK = re.compile(r"```(?P<lang>[\w+-]*)[ \t]*\n?(?P<body>.*?)```", re.DOTALL)


def segment(text: str, *, start: int = 0) -> ParsedMessage | None:
    # Fences are searched across the whole text, preamble included; the
    # explanation is everything before the first fence.
    matches = list(FENCED_BLOCK.finditer(text))
    if not matches:
        return None

    explanation = text[: matches[0].start()].strip()
    blocks: list[ParsedContent] = []
    for match in matches:
        content = match.group("body").strip()
        if not content:
            continue
        blocks.append(
            ParsedContent(
                type=infer_block_type(content, explanation),
                content=content,
                raw_content=match.group(0),
                start_index=match.start(),
                end_index=match.end(),
            )
        )
    if not blocks:
        return None
    return ParsedMessage(
        has_actionable_content=True,
        blocks=blocks,
        explanation=explanation or None,
        strategy="fenced",
    )
