"""Text normalization applied to model output before segmentation.

Entities such as ``&lt;`` are left encoded: decoding them would turn escaped
text into live markup in the editor.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field

LOGGER = logging.getLogger(__name__)

# U+200D (zero width joiner) is kept: emoji sequences depend on it.
ZERO_WIDTH_CHARS: tuple[str, ...] = (
    "\u200b",  # zero width space
    "\u200c",  # zero width non-joiner
    "\u200e",  # left-to-right mark
    "\u200f",  # right-to-left mark
    "\u2060",  # word joiner
    "\ufeff",  # byte-order mark
)

_ZERO_WIDTH_TRANSLATION = {ord(char): None for char in ZERO_WIDTH_CHARS}


@dataclass(slots=True)
class NormalizationResult:
    """Outcome of the normalization stage."""

    text: str
    steps: list[str] = field(default_factory=list)


def _normalize_newlines(value: str) -> tuple[str, bool]:
    replaced = value.replace("\r\n", "\n").replace("\r", "\n")
    return replaced, replaced != value


def _strip_zero_width_characters(value: str) -> tuple[str, bool]:
    stripped = value.translate(_ZERO_WIDTH_TRANSLATION)
    return stripped, stripped != value


def normalize_text(value: str | None) -> NormalizationResult:
    """Normalize model output so offsets and regexes behave predictably.

    Order:
    1. Newlines (CRLF and lone CR become LF)
    2. Unicode NFC (composes accented Portuguese characters)
    3. Strip zero-width characters and BOMs

    Offsets reported by the parser refer to the returned text.
    """
    steps: list[str] = []

    if value is None:
        value = ""
    if not isinstance(value, str):  # pragma: no cover - guard against unexpected input
        value = str(value)
        steps.append("coerce_str")

    value, mutated = _normalize_newlines(value)
    if mutated:
        steps.append("normalize_newlines")

    normalized = unicodedata.normalize("NFC", value)
    if normalized != value:
        steps.append("nfc")
    value = normalized

    value, mutated = _strip_zero_width_characters(value)
    if mutated:
        steps.append("strip_zero_width")

    LOGGER.debug("normalized text", extra={"steps": steps, "length": len(value)})

    return NormalizationResult(text=value, steps=steps)
