"""Shared helpers for segmenter strategies."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable

from copydesk.models import ParsedContent

HIGH_LEVEL_KEYWORDS: tuple[str, ...] = (
    "anúncio",
    "anuncio",
    "roteiro",
    "vídeo",
    "video",
    "script",
    "variação",
    "variacao",
    "copy",
    "versão",
    "versao",
    "headline",
    "título",
    "titulo",
    "email",
    "e-mail",
    "post",
    "opção",
    "opcao",
    "mensagem",
)

AD_FIELD_MARKERS: tuple[str, ...] = (
    "título:",
    "titulo:",
    "descrição:",
    "descricao:",
    "cta:",
    "chamada:",
)

HEADLINE_MAX_CHARS = 150

_AD_CONTEXT = re.compile(r"an[úu]ncio|\bads?\b")
_BULLET_MARKER = re.compile(r"^\s*(?P<marker>[-•]|\*(?!\*))\s+")
_NUMBER_MARKER = re.compile(r"^\s*\d{1,3}[.)]\s+")
_FORCED_SPLIT = re.compile(r"^(?:op[çc][ãa]o\s*\d+\s*[:\-–—]|\d{1,3}\.(?:\s|$))", re.IGNORECASE)
_WRAPPING_BOLD = re.compile(r"^\*\*(.+?)\*\*$")


def is_high_level_title(title: str | None) -> bool:
    """True when a title names an independent deliverable (an ad, a script, an option)."""
    if not title:
        return False
    lowered = title.lower()
    return any(keyword in lowered for keyword in HIGH_LEVEL_KEYWORDS)


def forces_split(title: str) -> bool:
    """Titles like ``Opção 2:`` or ``3. ...`` always open a new block."""
    return bool(_FORCED_SPLIT.match(strip_bold(title)))


def strip_bold(value: str) -> str:
    """Remove ``**`` wrapping a title, including a dangling marker on one side."""
    stripped = value.strip()
    match = _WRAPPING_BOLD.match(stripped)
    if match:
        return match.group(1).strip()
    if stripped.startswith("**") and "**" not in stripped[2:]:
        return stripped[2:].strip()
    if stripped.endswith("**") and "**" not in stripped[:-2]:
        return stripped[:-2].strip()
    return stripped


def non_empty_lines(content: str) -> list[str]:
    return [line for line in content.split("\n") if line.strip()]


def _list_marker(line: str) -> str | None:
    match = _BULLET_MARKER.match(line)
    if match:
        return match.group("marker")
    if _NUMBER_MARKER.match(line):
        return "number"
    return None


def looks_like_list(lines: list[str]) -> bool:
    """At least two lines and the dominant marker covers half of them or more."""
    if len(lines) < 2:
        return False
    markers = Counter(marker for marker in map(_list_marker, lines) if marker is not None)
    if not markers:
        return False
    _, dominant = markers.most_common(1)[0]
    return dominant / len(lines) >= 0.5


def infer_block_type(content: str, context: str | None = "") -> str:
    """Infer the block type from the title/context first, then from content shape."""
    lowered_context = (context or "").lower()
    if "headline" in lowered_context or "título" in lowered_context or "titulo" in lowered_context:
        return "headline"
    if _AD_CONTEXT.search(lowered_context):
        return "ad"
    if "roteiro" in lowered_context:
        return "text"
    if "lista" in lowered_context:
        return "list"

    lines = non_empty_lines(content)
    if not lines:
        return "unknown"
    if len(lines) == 1 and len(content.strip()) < HEADLINE_MAX_CHARS:
        return "headline"

    lowered = content.lower()
    if any(marker in lowered for marker in AD_FIELD_MARKERS):
        return "ad"
    if looks_like_list(lines):
        return "list"
    return "text"


def aggregate(
    items: Iterable[tuple[str, str, str, int, int]],
    *,
    force_split: bool = False,
) -> list[ParsedContent]:
    """Group ``(title, content, raw, start, end)`` items into blocks.

    A high-level title (or the first item) opens a block; anything else is a
    sub-item appended to the current block. With ``force_split`` titles such
    as ``Opção 2:`` also open a block.
    """
    blocks: list[ParsedContent] = []
    current: ParsedContent | None = None
    for title, content, raw, start, end in items:
        opens_block = (
            current is None
            or is_high_level_title(title)
            or (force_split and forces_split(title))
        )
        if opens_block:
            current = ParsedContent(
                type=infer_block_type(content, title),
                title=title,
                content=content,
                raw_content=raw,
                start_index=start,
                end_index=end,
            )
            blocks.append(current)
        else:
            current.append(content=content, raw_content=raw, end_index=end)
    return blocks


def split_first_line(section: str) -> tuple[str, str]:
    head, _, rest = section.partition("\n")
    return head, rest.strip()
