"""Throughput and ETA tracking for long ingestion runs."""

from __future__ import annotations

import time
from typing import Callable


def format_duration(seconds: float) -> str:
    """Render *seconds* as ``"1h 5m"``, ``"3m 12s"`` or ``"42s"``."""
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class ProgressTracker:
    """Counts finished documents against a known total.

    Parameters
    ----------
    total:
        Documents in the work list.
    clock:
        Monotonic time source; injected for tests.
    """

    def __init__(self, total: int, clock: Callable[[], float] = time.monotonic) -> None:
        self._total = max(0, total)
        self._clock = clock
        self._started = clock()
        self._done = 0

    @property
    def total(self) -> int:
        return self._total

    @property
    def done(self) -> int:
        return self._done

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    @property
    def rate(self) -> float:
        """Documents per second since the tracker was created."""
        elapsed = self.elapsed
        if elapsed <= 0:
            return 0.0
        return self._done / elapsed

    @property
    def eta_seconds(self) -> float | None:
        """Estimated seconds remaining, or ``None`` before any progress."""
        rate = self.rate
        if rate <= 0:
            return None
        return (self._total - self._done) / rate

    @property
    def percent(self) -> float:
        if not self._total:
            return 100.0
        return 100.0 * self._done / self._total

    def advance(self, count: int = 1) -> None:
        self._done = min(self._total, self._done + count) if self._total else self._done + count

    def snapshot(self) -> dict[str, object]:
        """Key/value fields for a progress log line."""
        eta = self.eta_seconds
        return {
            "done": self._done,
            "total": self._total,
            "percent": round(self.percent, 1),
            "rate_per_s": round(self.rate, 2),
            "elapsed": format_duration(self.elapsed),
            "eta": format_duration(eta) if eta is not None else "unknown",
        }
