"""Segmenter registry: strategies tried in priority order."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from time import perf_counter

from copydesk.models import ParsedMessage

from . import catchall, fenced, headings, numbered

Strategy = Callable[..., "ParsedMessage | None"]

STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("numbered", numbered.segment),
    ("fenced", fenced.segment),
    ("headings", headings.segment),
    ("catchall", catchall.segment),
)


def run_strategies(
    text: str, *, start: int = 0
) -> Iterator[tuple[str, ParsedMessage | None, float]]:
    """Run each strategy and yield its result with latency in milliseconds."""
    for name, strategy in STRATEGIES:
        started = perf_counter()
        result = strategy(text, start=start)
        latency_ms = (perf_counter() - started) * 1000
        yield name, result, latency_ms
