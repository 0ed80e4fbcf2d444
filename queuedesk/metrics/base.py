"""Counter and distribution primitives held by the metrics registry.

Each metric keeps one series per combination of label values. A series is a
plain float for counters and a :class:`DistributionStats` for distributions.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, replace
from threading import Lock
from time import perf_counter
from typing import Dict, Generic, Iterable, Iterator, Mapping, Tuple, TypeVar

LabelValues = Tuple[str, ...]
SeriesT = TypeVar("SeriesT")


class Metric(ABC, Generic[SeriesT]):
    """Named family of labelled series; ``prometheus_type`` names it on export."""

    prometheus_type = "untyped"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        self.name = name
        self.description = description
        self.label_names: Tuple[str, ...] = tuple(label_names or ())
        self._series: Dict[LabelValues, SeriesT] = {}
        self._lock = Lock()

    def series_key(self, labels: Mapping[str, object] | None = None) -> LabelValues:
        if not self.label_names:
            if labels:
                raise ValueError(f"Metric '{self.name}' does not accept labels")
            return ()
        if labels is None:
            raise ValueError(f"Metric '{self.name}' requires labels {self.label_names}")
        missing = [label for label in self.label_names if label not in labels]
        if missing:
            raise ValueError(f"Missing labels {missing} for metric '{self.name}'")
        return tuple(str(labels[label]) for label in self.label_names)

    @abstractmethod
    def _sample(self, series: SeriesT) -> Mapping[str, float]:
        """Flatten one series into named sample values."""

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: self._sample(series) for key, series in self._series.items()}

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


class CounterMetric(Metric[float]):
    prometheus_type = "counter"

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, object] | None = None) -> None:
        if amount < 0:
            raise ValueError(f"Counter '{self.name}' cannot decrease")
        key = self.series_key(labels)
        with self._lock:
            self._series[key] = self._series.get(key, 0.0) + amount

    def value(self, *, labels: Mapping[str, object] | None = None) -> float:
        key = self.series_key(labels)
        with self._lock:
            return self._series.get(key, 0.0)

    def _sample(self, series: float) -> Mapping[str, float]:
        return {"value": series}


@dataclass
class DistributionStats:
    count: int = 0
    total: float = 0.0
    min: float | None = None
    max: float | None = None

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min = value if self.min is None else min(self.min, value)
        self.max = value if self.max is None else max(self.max, value)

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0

    def to_mapping(self) -> Mapping[str, float]:
        return {
            "count": float(self.count),
            "sum": self.total,
            "min": self.min or 0.0,
            "max": self.max or 0.0,
            "avg": self.average,
        }


class DistributionMetric(Metric[DistributionStats]):
    """Count, sum and bounds of observed values such as minutes or seconds."""

    prometheus_type = "summary"

    def observe(self, value: float, *, labels: Mapping[str, object] | None = None) -> None:
        key = self.series_key(labels)
        with self._lock:
            self._series.setdefault(key, DistributionStats()).observe(float(value))

    def stats(self, *, labels: Mapping[str, object] | None = None) -> DistributionStats:
        """Copy of the series for ``labels``; empty stats when nothing was observed."""

        key = self.series_key(labels)
        with self._lock:
            current = self._series.get(key)
            return replace(current) if current is not None else DistributionStats()

    def _sample(self, series: DistributionStats) -> Mapping[str, float]:
        return series.to_mapping()


@contextmanager
def track_duration(metric: DistributionMetric, *, labels: Mapping[str, object] | None = None) -> Iterator[None]:
    """Observe the wall-clock seconds spent inside the block, even on error."""

    start = perf_counter()
    try:
        yield
    finally:
        metric.observe(perf_counter() - start, labels=labels)
