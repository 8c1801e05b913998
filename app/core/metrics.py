from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Mapping

LabelSet = tuple[tuple[str, str], ...]
SeriesKey = tuple[str, LabelSet]


def _series(name: str, labels: Mapping[str, str] | None) -> SeriesKey:
    return name, tuple(sorted((labels or {}).items()))


def _render(series: SeriesKey, suffix: str = "") -> str:
    name, labels = series
    if not labels:
        return f"{name}{suffix}"
    joined = ",".join(f"{key}={value}" for key, value in labels)
    return f"{name}{suffix}{{{joined}}}"


class MetricRegistry:
    """Process-local chat counters, gauges and latency summaries."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: Counter[SeriesKey] = Counter()
        self._gauges: dict[SeriesKey, float] = {}
        self._latency: dict[SeriesKey, list[float]] = {}

    def inc(self, name: str, labels: Mapping[str, str] | None = None, value: int = 1) -> None:
        series = _series(name, labels)
        with self._lock:
            self._counters[series] += value

    def gauge(self, name: str, value: float, labels: Mapping[str, str] | None = None) -> None:
        series = _series(name, labels)
        with self._lock:
            self._gauges[series] = float(value)

    def observe(self, name: str, value_ms: float, labels: Mapping[str, str] | None = None) -> None:
        series = _series(name, labels)
        with self._lock:
            # [count, sum, max]
            stats = self._latency.setdefault(series, [0, 0.0, 0.0])
            stats[0] += 1
            stats[1] += value_ms
            stats[2] = max(stats[2], value_ms)

    def count(self, name: str, labels: Mapping[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(_series(name, labels), 0)

    def snapshot(self) -> dict[str, float | int]:
        with self._lock:
            out: dict[str, float | int] = {_render(series): value for series, value in self._counters.items()}
            out.update((_render(series), value) for series, value in self._gauges.items())
            for series, (total, summed, peak) in self._latency.items():
                out[_render(series, "_count")] = int(total)
                out[_render(series, "_sum")] = round(summed, 3)
                out[_render(series, "_max")] = round(peak, 3)
            return out

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._latency.clear()


metrics = MetricRegistry()
