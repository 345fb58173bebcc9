"""Transient records produced by the parser and consumed by the editor."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

Intent = Literal["replace", "insert", "conversational", "default"]


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass(slots=True)
class ParsedContent:
    """A detected content unit with offsets into the normalized source text."""

    type: str
    content: str
    raw_content: str
    start_index: int
    end_index: int
    title: str | None = None
    id: str = field(default_factory=lambda: new_id("block"))

    def append(self, *, content: str, raw_content: str, end_index: int) -> None:
        """Aggregate a sub-item (scene, step) into this block."""
        self.content = f"{self.content}\n\n{content}" if self.content else content
        self.raw_content = f"{self.raw_content}\n\n{raw_content}"
        self.end_index = end_index

    def asdict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "content": self.content,
            "rawContent": self.raw_content,
            "startIndex": self.start_index,
            "endIndex": self.end_index,
        }


@dataclass(slots=True)
class ParsedMessage:
    has_actionable_content: bool
    blocks: list[ParsedContent] = field(default_factory=list)
    explanation: str | None = None
    strategy: str | None = None

    @classmethod
    def empty(cls) -> ParsedMessage:
        return cls(has_actionable_content=False, blocks=[], explanation=None, strategy=None)

    def asdict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "hasActionableContent": self.has_actionable_content,
            "blocks": [block.asdict() for block in self.blocks],
            "strategy": self.strategy,
        }
        if self.explanation is not None:
            payload["explanation"] = self.explanation
        return payload


@dataclass(slots=True)
class Block:
    """Editor block. ``content`` is a list of items for list blocks."""

    type: str
    content: str | list[str]
    config: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: new_id("block"))

    def asdict(self) -> dict[str, Any]:
        content = list(self.content) if isinstance(self.content, list) else self.content
        return {"id": self.id, "type": self.type, "content": content, "config": dict(self.config)}


@dataclass(slots=True)
class Session:
    title: str
    blocks: list[Block] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id("session"))

    def asdict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "blocks": [block.asdict() for block in self.blocks],
        }


@dataclass(slots=True)
class ExpectedSession:
    title: str
    block_count: int
    block_types: list[str] = field(default_factory=list)

    def type_at(self, index: int) -> str:
        if index < len(self.block_types):
            return self.block_types[index]
        return "text"


@dataclass(slots=True)
class ExpectedStructure:
    """Target layout used by forced-structure parsing."""

    sessions: list[ExpectedSession] = field(default_factory=list)

    def slots(self) -> list[tuple[str, str]]:
        """Flatten into ``(session_title, expected_type)`` pairs in order."""
        flattened: list[tuple[str, str]] = []
        for session in self.sessions:
            for index in range(max(session.block_count, 0)):
                flattened.append((session.title, session.type_at(index)))
        return flattened

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> ExpectedStructure:
        """Accept both the editor's camelCase keys and snake_case."""
        sessions: list[ExpectedSession] = []
        for raw in (payload or {}).get("sessions") or []:
            if not isinstance(raw, dict):
                continue
            block_types = raw.get("blockTypes", raw.get("block_types")) or []
            count = raw.get("blockCount", raw.get("block_count"))
            if count is None:
                count = len(block_types)
            sessions.append(
                ExpectedSession(
                    title=str(raw.get("title") or ""),
                    block_count=int(count),
                    block_types=[str(item) for item in block_types],
                )
            )
        return cls(sessions=sessions)
