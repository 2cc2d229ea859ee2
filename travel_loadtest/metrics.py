"""
Custom metric collection for the load test.

Every virtual user writes samples into its own append-only
:class:`SampleBuffer`; a single :class:`MetricsAggregator` drains all
buffers and folds the samples into per-metric :class:`MetricSummary`
objects.  Writers never share a container, so concurrent users cannot
corrupt each other's data, and the aggregator only needs a lock while
it merges.

Three metric kinds are supported, mirroring k6:

- **trend**: a distribution of values (latencies in ms)
- **rate**: fraction of non-zero observations (``error_rate``)
- **counter**: a running total (``iterations``)
"""

from __future__ import annotations

import math
import re
import threading
import time
from dataclasses import dataclass, field

TREND = "trend"
RATE = "rate"
COUNTER = "counter"

METRIC_KINDS = (TREND, RATE, COUNTER)

_PERCENTILE = re.compile(r"^p\((\d+(?:\.\d+)?)\)$")


@dataclass(frozen=True)
class MetricSample:
    """One observation, created right after the request it describes."""

    name: str
    kind: str
    value: float
    timestamp: float


class SampleBuffer:
    """Append-only sample store owned by a single virtual user."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: list[MetricSample] = []

    def __len__(self) -> int:
        return len(self._samples)

    def add(self, name: str, kind: str, value: float) -> MetricSample:
        if kind not in METRIC_KINDS:
            raise ValueError(f"Unknown metric kind: {kind}")
        sample = MetricSample(name=name, kind=kind, value=float(value), timestamp=time.time())
        with self._lock:
            self._samples.append(sample)
        return sample

    def add_trend(self, name: str, value: float) -> MetricSample:
        return self.add(name, TREND, value)

    def add_rate(self, name: str, hit: bool) -> MetricSample:
        """Record one rate observation; ``hit`` counts towards the rate."""
        return self.add(name, RATE, 1.0 if hit else 0.0)

    def add_count(self, name: str, amount: float = 1) -> MetricSample:
        return self.add(name, COUNTER, amount)

    def drain(self) -> list[MetricSample]:
        """Hand over every buffered sample and start a fresh buffer."""
        with self._lock:
            samples, self._samples = self._samples, []
        return samples


@dataclass
class MetricSummary:
    """Aggregated view of every sample recorded for one metric."""

    name: str
    kind: str
    values: list[float] = field(default_factory=list)
    count: int = 0
    hits: int = 0
    total: float = 0.0

    def add(self, sample: MetricSample) -> None:
        if sample.kind != self.kind:
            raise ValueError(
                f"Metric {self.name} is a {self.kind}, got a {sample.kind} sample"
            )
        self.count += 1
        self.total += sample.value
        if self.kind == TREND:
            self.values.append(sample.value)
        elif self.kind == RATE and sample.value != 0:
            self.hits += 1

    @property
    def rate(self) -> float:
        """Fraction of non-zero observations; ``0.0`` when nothing was observed."""
        if self.count == 0:
            return 0.0
        return self.hits / self.count

    def percentile(self, pct: float) -> float:
        """
        Linear-interpolated percentile of a trend's values.

        Raises:
            ValueError: If the metric has no values or ``pct`` is outside 0-100.
        """
        if not 0 <= pct <= 100:
            raise ValueError(f"Percentile must be between 0 and 100, got {pct}")
        if not self.values:
            raise ValueError(f"Metric {self.name} has no values")

        ordered = sorted(self.values)
        position = (len(ordered) - 1) * pct / 100.0
        lower = math.floor(position)
        upper = math.ceil(position)
        if lower == upper:
            return ordered[lower]
        weight = position - lower
        return ordered[lower] + (ordered[upper] - ordered[lower]) * weight

    def value(self, aggregation: str) -> float | None:
        """
        Return the aggregate named by ``aggregation`` or ``None`` without data.

        Supported aggregations: ``count`` for every kind, ``rate`` for
        rates, ``avg``/``min``/``med``/``max``/``p(N)`` for trends.

        Raises:
            ValueError: If the aggregation does not apply to this metric kind.
        """
        if aggregation == "count":
            return float(self.count) if self.kind != COUNTER else self.total

        if self.kind == RATE:
            if aggregation != "rate":
                raise ValueError(f"Rate metric {self.name} does not support {aggregation}")
            return self.rate if self.count else None

        if self.kind == COUNTER:
            raise ValueError(f"Counter metric {self.name} does not support {aggregation}")

        if aggregation not in ("avg", "min", "med", "max") and not _PERCENTILE.match(aggregation):
            raise ValueError(f"Trend metric {self.name} does not support {aggregation}")
        if not self.values:
            return None

        if aggregation == "avg":
            return self.total / self.count
        if aggregation == "min":
            return min(self.values)
        if aggregation == "max":
            return max(self.values)
        if aggregation == "med":
            return self.percentile(50)
        return self.percentile(float(_PERCENTILE.match(aggregation).group(1)))

    def describe(self) -> dict[str, float]:
        """Headline aggregates used by the summary report."""
        if self.kind == RATE:
            return {"rate": self.rate, "count": float(self.count)}
        if self.kind == COUNTER:
            return {"count": self.total}
        if not self.values:
            return {"count": 0.0}
        return {
            "avg": self.total / self.count,
            "min": min(self.values),
            "med": self.percentile(50),
            "max": max(self.values),
            "p(90)": self.percentile(90),
            "p(95)": self.percentile(95),
            "count": float(self.count),
        }


class MetricsAggregator:
    """
    Merge point for every virtual user's :class:`SampleBuffer`.

    Buffers are registered once per user and kept for the lifetime of
    the run so that a final :meth:`flush` collects samples from users
    that were stopped before they could merge on their own.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buffers: list[SampleBuffer] = []
        self._summaries: dict[str, MetricSummary] = {}

    def register(self) -> SampleBuffer:
        buffer = SampleBuffer()
        with self._lock:
            self._buffers.append(buffer)
        return buffer

    def merge(self, buffer: SampleBuffer) -> int:
        """Fold one buffer's pending samples into the summaries."""
        samples = buffer.drain()
        with self._lock:
            self._merge_samples(samples)
        return len(samples)

    def flush(self) -> int:
        """Fold every registered buffer's pending samples into the summaries."""
        with self._lock:
            buffers = list(self._buffers)
        return sum(self.merge(buffer) for buffer in buffers)

    def summaries(self) -> dict[str, MetricSummary]:
        with self._lock:
            return dict(self._summaries)

    def get(self, name: str) -> MetricSummary | None:
        with self._lock:
            return self._summaries.get(name)

    def _merge_samples(self, samples: list[MetricSample]) -> None:
        for sample in samples:
            summary = self._summaries.get(sample.name)
            if summary is None:
                summary = MetricSummary(name=sample.name, kind=sample.kind)
                self._summaries[sample.name] = summary
            summary.add(sample)
