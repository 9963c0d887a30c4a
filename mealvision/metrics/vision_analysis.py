"""Instrumentation helpers for vision analysis.

Metrics:
* Counter vision_analysis_requests_total{status,source}
* Counter vision_analysis_fallback_total{reason,source?}
* Counter vision_analysis_retry_total{source}
* Histogram vision_analysis_latency_ms{source}
* Counter vision_analysis_enrichment_total{outcome}

`source` is the provider name (gemini|openai|mock).
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from .core import RegistrySnapshot, registry

REQUESTS_TOTAL = "vision_analysis_requests_total"
FALLBACK_TOTAL = "vision_analysis_fallback_total"
RETRY_TOTAL = "vision_analysis_retry_total"
LATENCY_MS = "vision_analysis_latency_ms"
ENRICHMENT_TOTAL = "vision_analysis_enrichment_total"


def record_request(status: str, *, source: str) -> None:
    registry.counter(REQUESTS_TOTAL, status=status, source=source).inc()


def record_fallback(reason: str, *, source: Optional[str] = None) -> None:
    """Count a fallback path (description, generic, provider_failure)."""
    tags = {"reason": reason}
    if source:
        tags["source"] = source
    registry.counter(FALLBACK_TOTAL, **tags).inc()


def record_retry(*, source: str) -> None:
    registry.counter(RETRY_TOTAL, source=source).inc()


def record_latency_ms(ms: float, *, source: str) -> None:
    registry.histogram(LATENCY_MS, source=source).observe(ms)


def record_enrichment(outcome: str, count: int = 1) -> None:
    """Count enrichment outcomes per item (matched, unmatched, error, skipped)."""
    if count <= 0:
        return
    registry.counter(ENRICHMENT_TOTAL, outcome=outcome).inc(count)


@contextmanager
def time_analysis(*, source: str) -> Iterator[None]:
    """Record status and latency of one analysis call."""
    start = time.perf_counter()
    try:
        yield
        record_request("completed", source=source)
    except Exception:
        record_request("failed", source=source)
        raise
    finally:
        record_latency_ms((time.perf_counter() - start) * 1000.0, source=source)


def snapshot() -> RegistrySnapshot:
    return registry.snapshot()


def reset_all() -> None:
    """Reset every metric (test utility)."""
    registry.reset()
