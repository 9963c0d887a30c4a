"""
Unit tests for the metrics registry and vision analysis helpers.
"""

import pytest

from mealvision.metrics.core import MAX_HISTOGRAM_SAMPLES, MetricsRegistry
from mealvision.metrics.vision_analysis import (
    ENRICHMENT_TOTAL,
    FALLBACK_TOTAL,
    LATENCY_MS,
    REQUESTS_TOTAL,
    record_enrichment,
    record_fallback,
    reset_all,
    snapshot,
    time_analysis,
)


class TestMetricsRegistry:
    """Get-or-create semantics and snapshots."""

    def test_counter_keyed_by_sorted_tags(self) -> None:
        registry = MetricsRegistry()

        registry.counter("hits", a="1", b="2").inc()
        registry.counter("hits", b="2", a="1").inc(2)

        assert registry.counter_value("hits", a="1", b="2") == 3
        assert registry.counter_value("hits", a="1") == 0

    def test_histogram_summary(self) -> None:
        registry = MetricsRegistry()
        histogram = registry.histogram("latency")

        for value in range(1, 101):
            histogram.observe(float(value))

        summary = histogram.summary()
        assert summary["count"] == 100
        assert summary["avg"] == 50.5
        assert summary["min"] == 1.0
        assert summary["max"] == 100.0
        assert summary["p95"] == 95.0

    def test_histogram_window_bounded(self) -> None:
        histogram = MetricsRegistry().histogram("latency")

        for value in range(MAX_HISTOGRAM_SAMPLES + 10):
            histogram.observe(float(value))

        assert histogram.summary()["count"] == MAX_HISTOGRAM_SAMPLES
        assert histogram.summary()["min"] == 10.0

    def test_empty_histogram(self) -> None:
        assert MetricsRegistry().histogram("latency").summary()["count"] == 0

    def test_snapshot_and_reset(self) -> None:
        registry = MetricsRegistry()
        registry.counter("hits", source="mock").inc()
        registry.histogram("latency").observe(12.0)

        data = registry.snapshot()

        assert data["counters"] == [{"name": "hits", "tags": {"source": "mock"}, "value": 1}]
        assert data["histograms"][0]["count"] == 1
        registry.reset()
        assert registry.snapshot()["counters"] == []


class TestVisionAnalysisMetrics:
    """Helpers write to the process registry."""

    def test_time_analysis_success(self) -> None:
        with time_analysis(source="gemini"):
            pass

        counters = {c["name"]: c for c in snapshot()["counters"]}
        assert counters[REQUESTS_TOTAL]["tags"] == {"status": "completed", "source": "gemini"}
        assert snapshot()["histograms"][0]["name"] == LATENCY_MS

    def test_time_analysis_failure(self) -> None:
        with pytest.raises(RuntimeError):
            with time_analysis(source="gemini"):
                raise RuntimeError("boom")

        counters = snapshot()["counters"]
        assert counters[0]["tags"]["status"] == "failed"
        assert snapshot()["histograms"][0]["count"] == 1

    def test_fallback_source_optional(self) -> None:
        record_fallback("generic")
        record_fallback("provider_failure", source="openai")

        tags = [c["tags"] for c in snapshot()["counters"] if c["name"] == FALLBACK_TOTAL]
        assert {"reason": "generic"} in tags
        assert {"reason": "provider_failure", "source": "openai"} in tags

    def test_enrichment_zero_count_ignored(self) -> None:
        record_enrichment("matched", 0)
        record_enrichment("unmatched", 2)

        names = [(c["name"], c["tags"], c["value"]) for c in snapshot()["counters"]]
        assert names == [(ENRICHMENT_TOTAL, {"outcome": "unmatched"}, 2)]

    def test_reset_all(self) -> None:
        record_fallback("generic")

        reset_all()

        assert snapshot()["counters"] == []
