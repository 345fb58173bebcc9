"""Whole-text fallback for content-like answers with no structure."""

from __future__ import annotations

from copydesk.models import ParsedContent, ParsedMessage

from .common import infer_block_type

MIN_LENGTH = 50
MAX_LINES = 10
PREFACE_MARKER = "aqui está"
QUOTE_CHARS: tuple[str, ...] = ('"', "“", "”")


def looks_like_content(text: str) -> bool:
    if len(text) <= MIN_LENGTH or PREFACE_MARKER in text.lower():
        return False
    return (
        any(char in text for char in QUOTE_CHARS)
        or "**" in text
        or len(text.split("\n")) < MAX_LINES
    )


def segment(text: str, *, start: int = 0) -> ParsedMessage | None:
    # Runs on the whole text: a lone numbered line is not a preamble boundary here.
    if not looks_like_content(text):
        return None
    block = ParsedContent(
        type=infer_block_type(text, ""),
        content=text.strip(),
        raw_content=text,
        start_index=0,
        end_index=len(text),
    )
    return ParsedMessage(has_actionable_content=True, blocks=[block], strategy="catchall")
