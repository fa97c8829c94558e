"""Prometheus metrics for HTTP requests, provider calls and compaction.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- track_llm_call(): Context manager for provider call metrics
- record_compaction(): Counter helper for compaction outcomes
- get_metrics_response(): Starlette response for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "listener_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "listener_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── LLM Metrics ──────────────────────────────────────────────────────────────

llm_requests_total = Counter(
    "listener_llm_requests_total",
    "Total provider requests",
    ["provider", "operation", "status"],
)

llm_request_duration_seconds = Histogram(
    "listener_llm_request_duration_seconds",
    "Provider request duration in seconds",
    ["provider", "operation"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

llm_tokens_used_total = Counter(
    "listener_llm_tokens_used_total",
    "Total provider tokens consumed",
    ["provider", "token_type"],
)

# ── Compaction Metrics ───────────────────────────────────────────────────────

compactions_total = Counter(
    "listener_compactions_total",
    "Compaction attempts by level and outcome",
    ["level", "outcome"],
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = request.url.path

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── LLM Metrics Helper ──────────────────────────────────────────────────────


@asynccontextmanager
async def track_llm_call(
    provider: str,
    operation: str,
) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that tracks provider call metrics.

    Usage:
        async with track_llm_call("claude", "summary") as tracker:
            result = await call_provider(...)
            tracker["prompt_tokens"] = result.usage.prompt_tokens
            tracker["completion_tokens"] = result.usage.completion_tokens

    Automatically records:
    - Duration in histogram
    - Request count (success/error)
    - Token usage (if set in tracker dict)
    """
    tracker: dict[str, Any] = {
        "prompt_tokens": 0,
        "completion_tokens": 0,
    }
    start_time = time.perf_counter()
    status = "success"

    try:
        yield tracker
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.perf_counter() - start_time
        tracker["latency_ms"] = int(duration * 1000)

        llm_requests_total.labels(
            provider=provider,
            operation=operation,
            status=status,
        ).inc()

        llm_request_duration_seconds.labels(
            provider=provider,
            operation=operation,
        ).observe(duration)

        if tracker.get("prompt_tokens"):
            llm_tokens_used_total.labels(
                provider=provider,
                token_type="prompt",
            ).inc(tracker["prompt_tokens"])

        if tracker.get("completion_tokens"):
            llm_tokens_used_total.labels(
                provider=provider,
                token_type="completion",
            ).inc(tracker["completion_tokens"])


def record_compaction(level: str, outcome: str) -> None:
    """Count one compaction attempt (level: micro/section, outcome: created/skipped/discarded)."""
    compactions_total.labels(level=level, outcome=outcome).inc()


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
