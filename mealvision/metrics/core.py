"""In-memory metrics registry.

Process-wide, thread-safe counters and histograms for the recognition
pipeline. No exporter: snapshots are read by tests and debug endpoints.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Deque, Dict, List, Tuple, TypedDict

MetricKey = Tuple[str, Tuple[Tuple[str, str], ...]]

MAX_HISTOGRAM_SAMPLES = 2000


def _key(name: str, tags: Dict[str, str]) -> MetricKey:
    return name, tuple(sorted(tags.items()))


@dataclass
class Counter:
    name: str
    tags: Dict[str, str]
    _value: int = 0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class Histogram:
    """Sliding window of the most recent observations."""

    name: str
    tags: Dict[str, str]
    _samples: Deque[float] = field(
        default_factory=lambda: deque(maxlen=MAX_HISTOGRAM_SAMPLES)
    )
    _lock: Lock = field(default_factory=Lock, repr=False)

    def observe(self, value: float) -> None:
        with self._lock:
            self._samples.append(value)

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            samples = sorted(self._samples)
        if not samples:
            return {"count": 0, "avg": 0.0, "p95": 0.0, "min": 0.0, "max": 0.0}
        count = len(samples)
        return {
            "count": count,
            "avg": sum(samples) / count,
            "p95": samples[int(0.95 * (count - 1))],
            "min": samples[0],
            "max": samples[-1],
        }


class CounterSnapshot(TypedDict):
    name: str
    tags: Dict[str, str]
    value: int


class HistogramSnapshot(TypedDict):
    name: str
    tags: Dict[str, str]
    count: int
    avg: float
    p95: float
    min: float
    max: float


class RegistrySnapshot(TypedDict):
    counters: List[CounterSnapshot]
    histograms: List[HistogramSnapshot]
    generatedAt: float


class MetricsRegistry:
    """Get-or-create registry keyed by metric name and sorted tags."""

    def __init__(self) -> None:
        self._counters: Dict[MetricKey, Counter] = {}
        self._histograms: Dict[MetricKey, Histogram] = {}
        self._lock = Lock()

    def counter(self, name: str, **tags: str) -> Counter:
        key = _key(name, tags)
        with self._lock:
            if key not in self._counters:
                self._counters[key] = Counter(name=name, tags=tags)
            return self._counters[key]

    def histogram(self, name: str, **tags: str) -> Histogram:
        key = _key(name, tags)
        with self._lock:
            if key not in self._histograms:
                self._histograms[key] = Histogram(name=name, tags=tags)
            return self._histograms[key]

    def counter_value(self, name: str, **tags: str) -> int:
        """Current value of a counter; 0 if it was never touched."""
        with self._lock:
            counter = self._counters.get(_key(name, tags))
        return counter.value() if counter else 0

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            counters = list(self._counters.values())
            histograms = list(self._histograms.values())

        snapshot: RegistrySnapshot = {
            "counters": [],
            "histograms": [],
            "generatedAt": time.time(),
        }
        for counter in counters:
            snapshot["counters"].append(
                {"name": counter.name, "tags": counter.tags, "value": counter.value()}
            )
        for histogram in histograms:
            summary = histogram.summary()
            snapshot["histograms"].append(
                {
                    "name": histogram.name,
                    "tags": histogram.tags,
                    "count": summary["count"],
                    "avg": summary["avg"],
                    "p95": summary["p95"],
                    "min": summary["min"],
                    "max": summary["max"],
                }
            )
        return snapshot


registry = MetricsRegistry()
