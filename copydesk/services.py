"""Helpers shared by the chat, generation and audience services."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from copydesk import metrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Caller:
    """The authenticated user behind a request."""

    user_id: str
    token: str


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    return await asyncio.to_thread(func, *args, **kwargs)


async def best_effort(
    operation: str, func: Callable[..., T], *args: Any, default: T | None = None, **kwargs: Any
) -> T | None:
    """Run a store call whose failure must not fail the request.

    Failures are logged and counted, and ``default`` is returned instead.
    """
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except Exception as exc:  # supabase/postgrest/httpx errors alike
        metrics.observe_best_effort_failure(operation)
        logger.warning("best_effort_failed", operation=operation, error=str(exc))
        return default


def sse_event(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []
