"""Rolling cost-per-minute estimate.

One tracker exists per process. The tick loop is its only writer, so no
locking is needed under the single-threaded event loop.
"""

from __future__ import annotations

import time
from collections.abc import Callable

DEFAULT_WINDOW_S = 30.0
SMOOTHING = 0.3


class CostRateTracker:
    """Smoothed cost-per-minute derived from a rolling window of totals.

    Each ``sample()`` appends ``(now, total_cost)``, drops samples older than
    the window, computes the raw rate between the oldest and newest sample,
    and blends it into the previous value with an exponential moving average.
    """

    def __init__(
        self,
        window_s: float = DEFAULT_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
        smoothing: float = SMOOTHING,
    ) -> None:
        self._window_s = window_s
        self._clock = clock
        self._smoothing = smoothing
        self._samples: list[tuple[float, float]] = []
        self._smoothed = 0.0

    @property
    def current(self) -> float:
        """Last smoothed rate in USD per minute."""
        return self._smoothed

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    def sample(self, total_cost: float) -> float:
        """Record the current total cost and return the updated rate."""
        now = self._clock()
        self._samples.append((now, total_cost))
        cutoff = now - self._window_s
        self._samples = [s for s in self._samples if s[0] >= cutoff]

        oldest_at, oldest_cost = self._samples[0]
        elapsed_min = (now - oldest_at) / 60.0
        if elapsed_min <= 0:
            return self._smoothed

        # Totals can drop on a source switch; never report a negative rate
        raw = max(0.0, (total_cost - oldest_cost) / elapsed_min)
        blended = self._smoothing * raw + (1 - self._smoothing) * self._smoothed
        self._smoothed = round(blended, 4)
        return self._smoothed

    def reset(self) -> None:
        """Forget all samples (used when the data source changes)."""
        self._samples.clear()
        self._smoothed = 0.0
