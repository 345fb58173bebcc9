"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

GATEWAY_LATENCY = Histogram(
    "copydesk_gateway_latency_seconds",
    "Latency of AI gateway calls",
    labelnames=("operation", "mode"),
    buckets=(0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 64.0),
    registry=REGISTRY,
)

GATEWAY_ERRORS = Counter(
    "copydesk_gateway_errors_total",
    "AI gateway failures grouped by error code",
    labelnames=("code",),
    registry=REGISTRY,
)

CHAT_REQUESTS = Counter(
    "copydesk_chat_requests_total",
    "Chat requests grouped by detected intent",
    labelnames=("intent",),
    registry=REGISTRY,
)

PARSED_BLOCKS = Counter(
    "copydesk_parsed_blocks_total",
    "Blocks produced by the response parser grouped by strategy",
    labelnames=("strategy",),
    registry=REGISTRY,
)

BEST_EFFORT_FAILURES = Counter(
    "copydesk_best_effort_failures_total",
    "Best-effort writes that failed and were skipped",
    labelnames=("operation",),
    registry=REGISTRY,
)


def observe_gateway_call(*, operation: str, mode: str, latency_ms: float) -> None:
    GATEWAY_LATENCY.labels(operation=operation, mode=mode).observe(latency_ms / 1000.0)


def observe_gateway_error(code: str) -> None:
    GATEWAY_ERRORS.labels(code=code).inc()


def observe_chat_intent(intent: str) -> None:
    CHAT_REQUESTS.labels(intent=intent).inc()


def observe_parse(*, strategy: str, block_count: int) -> None:
    if block_count:
        PARSED_BLOCKS.labels(strategy=strategy).inc(block_count)


def observe_best_effort_failure(operation: str) -> None:
    BEST_EFFORT_FAILURES.labels(operation=operation).inc()


def render_metrics() -> tuple[bytes, str]:
    payload = generate_latest(REGISTRY)
    return payload, CONTENT_TYPE_LATEST
