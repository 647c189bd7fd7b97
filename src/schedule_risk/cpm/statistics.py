"""Summary statistics over simulated samples."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from schedule_risk.config import DEFAULT_HISTOGRAM_BINS


def _as_array(data) -> np.ndarray:
    return np.asarray(data, dtype=float).ravel()


def mean(data) -> float:
    arr = _as_array(data)
    return float(arr.mean()) if arr.size else float("nan")


def population_std(data) -> float:
    """Standard deviation dividing by n (not n - 1)."""
    arr = _as_array(data)
    return float(arr.std(ddof=0)) if arr.size else float("nan")


# ---------------------------------------------------------
# Percentiles
# ---------------------------------------------------------

def percentile(data, p: float) -> float:
    """Linear-interpolated percentile; NaN for empty data.

    ``p`` outside [0, 100] is clamped, giving the smallest or largest value.
    """
    arr = _as_array(data)
    if arr.size == 0:
        return float("nan")
    return float(np.percentile(arr, np.clip(p, 0, 100), method="linear"))


def get_percentiles(data, percentiles: Iterable[float] = (10, 50, 90)) -> Dict[float, float]:
    """{p: value} for each requested percentile."""
    arr = _as_array(data)
    ps = list(percentiles)
    if arr.size == 0:
        return {p: float("nan") for p in ps}
    values = np.percentile(arr, np.clip(ps, 0, 100), method="linear")
    return {p: float(v) for p, v in zip(ps, np.atleast_1d(values))}


def value_at_confidence(data, level: float) -> float:
    """Outcome not exceeded with probability ``level`` percent."""
    return percentile(data, level)


def s_curve(data) -> Tuple[np.ndarray, np.ndarray]:
    """Sorted outcomes and their cumulative probability (i + 1) / n."""
    arr = np.sort(_as_array(data))
    n = arr.size
    return arr, np.arange(1, n + 1, dtype=float) / max(n, 1)


# ---------------------------------------------------------
# Histogram
# ---------------------------------------------------------

@dataclass(frozen=True)
class Histogram:
    edges: Tuple[float, ...]
    counts: Tuple[int, ...]
    labels: Tuple[str, ...]

    @property
    def bins(self) -> List[Tuple[float, float, int]]:
        """(low, high, count) per bin."""
        return [
            (self.edges[i], self.edges[i + 1], c) for i, c in enumerate(self.counts)
        ]


def histogram(data, bin_count: int = DEFAULT_HISTOGRAM_BINS) -> Histogram:
    """
    Equal-width bins over [min, max], the last bin closed on the right.
    Identical values collapse into one bin.
    """
    arr = _as_array(data)
    if arr.size == 0:
        return Histogram((), (), ())

    lo, hi = float(arr.min()), float(arr.max())
    if lo == hi:
        return Histogram((lo, hi), (int(arr.size),), (f"{lo:.2f}",))

    bin_count = max(1, int(bin_count))
    counts, edges = np.histogram(arr, bins=bin_count, range=(lo, hi))
    labels = tuple(
        f"{edges[i]:.1f}-{edges[i + 1]:.1f}" for i in range(bin_count)
    )
    return Histogram(
        tuple(float(e) for e in edges), tuple(int(c) for c in counts), labels
    )


# ---------------------------------------------------------
# Correlation
# ---------------------------------------------------------

def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Sample Pearson correlation clamped to [-1, 1].

    Returns 0 for fewer than two points, mismatched lengths or a constant
    input.
    """
    xa = _as_array(x)
    ya = _as_array(y)
    n = xa.size
    if n <= 1 or ya.size != n:
        return 0.0
    if np.ptp(xa) == 0 or np.ptp(ya) == 0:
        return 0.0

    dx = xa - xa.mean()
    dy = ya - ya.mean()
    sd_x = np.sqrt((dx * dx).sum() / (n - 1))
    sd_y = np.sqrt((dy * dy).sum() / (n - 1))
    denom = (n - 1) * sd_x * sd_y
    if sd_x == 0 or sd_y == 0 or denom == 0:
        return 0.0
    r = float((dx * dy).sum() / denom)
    return max(-1.0, min(1.0, r))
