"""AI response segmenter.

Turns loosely structured model output (markdown, numbered lists, fenced
blocks, free text) into typed content blocks. Parsing is best effort: no
input raises, unparseable text degrades to zero blocks.

Pipeline:
1. Normalize the text (newlines, zero-width characters, NFC).
2. Split off a conversational preamble ending at the first heading or
   top-level numbered line.
3. Try each segmenter strategy in priority order; the first result wins.
"""

from __future__ import annotations

import re
from typing import Any

import structlog

from copydesk import metrics
from copydesk.models import (
    ExpectedStructure,
    ParsedContent,
    ParsedMessage,
)
from copydesk.normalize import normalize_text
from copydesk.segmenters import run_strategies
from copydesk.segmenters.common import infer_block_type, is_high_level_title

logger = structlog.get_logger(__name__)

__all__ = [
    "ParsedContent",
    "ParsedMessage",
    "clean_content",
    "infer_block_type",
    "is_high_level_title",
    "map_expected_type",
    "parse_ai_response",
    "parse_ai_response_with_structure",
    "split_preamble",
    "strip_meta_prefixes",
]

_PREAMBLE_BOUNDARY = re.compile(
    r"^(?:#{1,3}[ \t]+\S|(?:\*\*)?\d{1,3}\.(?:\*\*)?[ \t]+\S)", re.MULTILINE
)
_LEADING_NUMBER = re.compile(r"^(?:\*\*)?\d{1,3}[.)](?:\*\*)?(?:\s+|$)")
_STRUCTURAL_LABEL = re.compile(
    r"^(?:\*\*)?\s*"
    r"(?:bloco|op[çc][ãa]o|mensagem|varia[çc][ãa]o|vers[ãa]o|headline|subheadline|"
    r"t[íi]tulo|subt[íi]tulo|texto|cta|item|an[úu]ncio|e-?mail|post|sess[ãa]o)"
    r"(?:\s*\d{1,3})?(?:\s*:|\s+[\-–—])\s*(?:\*\*)?\s*",
    re.IGNORECASE,
)
_HEADING_MARKER = re.compile(r"^#{1,6}\s+")
_NON_EMPTY_LINE = re.compile(r"[^\n]*\S[^\n]*")
_QUOTE_PAIRS: tuple[tuple[str, str], ...] = (('"', '"'), ("'", "'"), ("“", "”"), ("‘", "’"))
# These scan from offset 0 and report their own explanation.
WHOLE_TEXT_STRATEGIES = frozenset({"fenced"})

_EXPECTED_TYPE_MAP: dict[str, str] = {
    "headline": "headline",
    "subheadline": "headline",
    "list": "list",
}


def split_preamble(text: str) -> tuple[str, int]:
    """Return the conversational preamble and the offset where structure begins."""
    match = _PREAMBLE_BOUNDARY.search(text)
    if not match or match.start() == 0:
        return "", 0
    return text[: match.start()].strip(), match.start()


def _join_explanations(*parts: str | None) -> str | None:
    joined = "\n\n".join(part for part in parts if part)
    return joined or None


def _parse_normalized(text: str) -> ParsedMessage:
    if not text.strip():
        return ParsedMessage.empty()

    preamble, start = split_preamble(text)
    for name, result, latency_ms in run_strategies(text, start=start):
        if result is None or not result.blocks:
            continue
        if name == "catchall":
            result.explanation = None
        elif name not in WHOLE_TEXT_STRATEGIES:
            result.explanation = _join_explanations(preamble, result.explanation)
        logger.debug(
            "response_parsed",
            strategy=name,
            blocks=len(result.blocks),
            latency_ms=round(latency_ms, 3),
        )
        metrics.observe_parse(strategy=name, block_count=len(result.blocks))
        return result

    logger.debug("response_not_actionable", length=len(text))
    return ParsedMessage.empty()


def parse_ai_response(markdown: str | None) -> ParsedMessage:
    """Segment model output into typed blocks."""
    return _parse_normalized(normalize_text(markdown).text)


def map_expected_type(expected_type: str | None) -> str:
    """Map editor block types onto the parser vocabulary."""
    return _EXPECTED_TYPE_MAP.get((expected_type or "").lower(), "text")


def parse_ai_response_with_structure(
    markdown: str | None,
    expected: ExpectedStructure | dict[str, Any] | None,
) -> ParsedMessage:
    """Parse, then force the result into the expected session/block layout.

    When the regular parse already yields the expected number of blocks the
    blocks are kept and only retyped/retitled. Otherwise the non-empty lines
    are split evenly into the expected number of blocks. The even split has
    no notion of semantic boundaries.
    """
    if not isinstance(expected, ExpectedStructure):
        expected = ExpectedStructure.from_dict(expected)

    text = normalize_text(markdown).text
    parsed = _parse_normalized(text)
    slots = expected.slots()
    if not slots:
        return parsed

    if len(parsed.blocks) == len(slots):
        for block, (session_title, expected_type) in zip(parsed.blocks, slots):
            block.type = map_expected_type(expected_type)
            block.title = session_title or block.title
        return parsed

    logger.info(
        "forcing_structure",
        parsed_blocks=len(parsed.blocks),
        expected_blocks=len(slots),
    )
    return _force_structure(text, slots)


def _force_structure(text: str, slots: list[tuple[str, str]]) -> ParsedMessage:
    lines = [match for match in _NON_EMPTY_LINE.finditer(text)]
    if not lines:
        return ParsedMessage.empty()

    base, extra = divmod(len(lines), len(slots))
    blocks: list[ParsedContent] = []
    cursor = 0
    last_end = 0
    for index, (session_title, expected_type) in enumerate(slots):
        size = base + (1 if index < extra else 0)
        chunk = lines[cursor : cursor + size]
        cursor += size
        if chunk:
            start, end = chunk[0].start(), chunk[-1].end()
            last_end = end
        else:
            start = end = last_end
        raw = "\n".join(match.group(0) for match in chunk)
        content = "\n".join(
            _HEADING_MARKER.sub("", match.group(0).strip()) for match in chunk
        )
        blocks.append(
            ParsedContent(
                type=map_expected_type(expected_type),
                title=session_title or None,
                content=clean_content(content),
                raw_content=raw,
                start_index=start,
                end_index=end,
            )
        )
    metrics.observe_parse(strategy="forced", block_count=len(blocks))
    return ParsedMessage(has_actionable_content=True, blocks=blocks, strategy="forced")


def strip_meta_prefixes(text: str | None) -> str:
    """Drop numbering, structural labels and ``**`` from the first line.

    ``"1. texto"`` becomes ``"texto"`` and ``"**Bloco 2:** texto"`` becomes
    ``"texto"``. Only the first line is touched.
    """
    if not text:
        return ""
    first, newline, rest = text.strip().partition("\n")
    first = _LEADING_NUMBER.sub("", first.strip(), count=1)
    first = _STRUCTURAL_LABEL.sub("", first, count=1)
    first = _LEADING_NUMBER.sub("", first, count=1)
    first = _strip_wrapping_bold(first)
    if not first.strip():
        return rest.strip()
    return f"{first.strip()}{newline}{rest}".strip()


def _strip_wrapping_bold(value: str) -> str:
    stripped = value.strip()
    match = re.fullmatch(r"\*\*(.+?)\*\*", stripped)
    if match and "**" not in match.group(1):
        return match.group(1)
    if stripped.endswith("**") and stripped.count("**") == 1:
        return stripped[:-2]
    return stripped


def _strip_outer_quotes(value: str) -> str:
    stripped = value.strip()
    if len(stripped) < 2:
        return stripped
    for opening, closing in _QUOTE_PAIRS:
        if stripped.startswith(opening) and stripped.endswith(closing):
            inner = stripped[len(opening) : -len(closing)]
            # Leave text with several quoted parts alone.
            if opening not in inner and closing not in inner:
                return inner.strip()
    return stripped


def clean_content(raw: str | None) -> str:
    """Strip meta prefixes, wrapping ``**`` and outer quotes, then trim."""
    if not raw:
        return ""
    value = strip_meta_prefixes(raw)
    value = _strip_wrapping_bold(value)
    value = _strip_outer_quotes(value)
    value = _strip_wrapping_bold(value)
    return value.strip()
