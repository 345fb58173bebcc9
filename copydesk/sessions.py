"""Conversion of parsed blocks into editor sessions."""

from __future__ import annotations

import re
from collections.abc import Sequence

from copydesk.markdown import markdown_to_html
from copydesk.models import Block, ParsedContent, Session
from copydesk.parser import clean_content, strip_meta_prefixes
from copydesk.segmenters.common import is_high_level_title

DEFAULT_SESSION_TITLE = "Conteúdo Gerado pela IA"
PREVIEW_CHARS = 50

BLOCK_TYPE_NAMES: dict[str, str] = {
    "headline": "Headline",
    "ad": "Anúncio",
    "list": "Lista",
    "text": "Texto",
}

HEADLINE_CONFIG = {"fontSize": "large", "fontWeight": "bold", "textAlign": "left"}
TEXT_CONFIG = {"fontSize": "medium", "fontWeight": "normal", "textAlign": "left"}
LIST_CONFIG = {
    "listStyle": "bullets",
    "showListIcons": True,
    "listIconColor": "#ff6b35",
    "textAlign": "left",
}

_LIST_PREFIX = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s*")


def block_type_name(block_type: str) -> str:
    return BLOCK_TYPE_NAMES.get(block_type, "Conteúdo")


def _preview(content: str) -> str:
    preview = content[:PREVIEW_CHARS].strip()
    return f"{preview}..." if len(content) > PREVIEW_CHARS else preview


def session_title_for(block: ParsedContent) -> str:
    if block.title:
        title = strip_meta_prefixes(block.title)
        if title:
            return title
    return f"{block_type_name(block.type)} - {_preview(block.content)}"


def list_items(content: str) -> list[str]:
    items = [_LIST_PREFIX.sub("", line, count=1).strip() for line in content.split("\n")]
    return [item for item in items if item]


def create_block(parsed: ParsedContent) -> Block:
    """Build an editor block; the type decides the content shape."""
    if parsed.type == "headline":
        return Block(
            type="headline",
            content=clean_content(parsed.content),
            config=dict(HEADLINE_CONFIG),
        )
    if parsed.type == "list":
        items = [markdown_to_html(item) for item in list_items(parsed.content)]
        return Block(
            type="list",
            content=items or [markdown_to_html(parsed.content)],
            config=dict(LIST_CONFIG),
        )
    return Block(type="text", content=markdown_to_html(parsed.content), config=dict(TEXT_CONFIG))


def convert_parsed_blocks_to_sessions(blocks: Sequence[ParsedContent]) -> list[Session]:
    """Group blocks into sessions.

    A block whose title is high level opens a session; other blocks join the
    current one. Blocks seen before any high-level title land in a default
    session.
    """
    sessions: list[Session] = []
    current: Session | None = None
    for parsed in blocks:
        if is_high_level_title(parsed.title):
            current = Session(title=session_title_for(parsed))
            sessions.append(current)
        elif current is None:
            current = Session(title=DEFAULT_SESSION_TITLE)
            sessions.append(current)
        current.blocks.append(create_block(parsed))
    return sessions
