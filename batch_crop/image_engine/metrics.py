"""In-process metrics for a batch run.

Counters track per-file outcomes of the batch driver; timings track how long
each render stage took on the compositor. The CLI logs `metrics.summary()` at
DEBUG when a run finishes.

Usage:
    from batch_crop.image_engine.metrics import metrics
    metrics.inc("batch.written")
    with metrics.timed("render.composite"):
        ...
    snapshot = metrics.snapshot()
"""

from __future__ import annotations

import time
from collections import defaultdict
from contextlib import contextmanager
from threading import RLock
from typing import Any


class _Metrics:
    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._timings: dict[str, list[float]] = defaultdict(list)
        self._lock = RLock()

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[key] += int(amount)

    def count(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    @contextmanager
    def timed(self, key: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                self._timings[key].append(elapsed)

    def total_time(self, key: str) -> float:
        with self._lock:
            return sum(self._timings.get(key, ()))

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {k: list(v) for k, v in self._timings.items()},
            }

    def summary(self) -> dict[str, Any]:
        """Counters plus total seconds per timing key, for the end-of-run log."""
        with self._lock:
            totals = {k: round(sum(v), 4) for k, v in self._timings.items()}
            return {"counters": dict(self._counters), "seconds": totals}

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()


metrics = _Metrics()
