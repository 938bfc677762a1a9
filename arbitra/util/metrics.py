"""Rolling sample windows behind the pipeline's timing and count metrics."""

import numpy as np


class RollingStats:
    """Summary statistics over the last ``window`` recorded samples.

    Samples go into a fixed numpy ring; once full, each new sample overwrites
    the oldest one.
    """

    def __init__(self, window: int = 1000) -> None:
        if window < 1:
            raise ValueError(f"window must be at least 1, got {window}")
        self.window = window
        self._ring = np.zeros(window, dtype=np.float64)
        self._recorded = 0

    def record(self, value: float) -> None:
        self._ring[self._recorded % self.window] = value
        self._recorded += 1

    @property
    def total_recorded(self) -> int:
        """Samples recorded since creation, including ones already evicted."""
        return self._recorded

    @property
    def sample_count(self) -> int:
        return min(self._recorded, self.window)

    def samples(self) -> np.ndarray:
        """Retained samples, oldest first."""
        if self._recorded <= self.window:
            return self._ring[: self._recorded]
        start = self._recorded % self.window
        return np.roll(self._ring, -start)

    @property
    def mean(self) -> float:
        if self._recorded == 0:
            return 0.0
        return float(self.samples().mean())

    def percentiles(self, *qs: float) -> tuple[float, ...]:
        """Percentiles of the retained samples; zeros while empty."""
        qs = qs or (50, 95, 99)
        if self._recorded == 0:
            return tuple(0.0 for _ in qs)
        return tuple(float(p) for p in np.percentile(self.samples(), qs))

    def summary(self) -> str:
        if self._recorded == 0:
            return "No samples"
        p50, p95, p99 = self.percentiles(50, 95, 99)
        return f"mean={self.mean:.2f} p50={p50:.2f} p95={p95:.2f} p99={p99:.2f}"
