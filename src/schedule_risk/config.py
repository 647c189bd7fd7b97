"""Configuration for schedule risk simulations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

DEFAULT_SIMULATION_RUNS = 500
MIN_SLACK_TOLERANCE = 1e-6
MAX_TASKS = 100

DEFAULT_PERCENTILES: Tuple[float, ...] = (10, 25, 50, 75, 80, 90, 95)
GANTT_PERCENTILES: Tuple[float, ...] = (10, 50, 90)

DEFAULT_HISTOGRAM_BINS = 20
DEFAULT_CONFIDENCE_LEVEL = 80
TORNADO_TOP_N = 10

# Shape weight of the mode in the PERT (modified Beta) distribution
PERT_GAMMA = 4.0


@dataclass
class SimulationConfig:
    """Knobs for a single Monte Carlo batch."""

    num_runs: int = DEFAULT_SIMULATION_RUNS
    percentiles: Tuple[float, ...] = field(default=DEFAULT_PERCENTILES)

    # None means a fresh, non-reproducible entropy source
    seed: Optional[int] = None

    # Number of worker threads trials are partitioned across
    workers: int = 1

    slack_tolerance: float = MIN_SLACK_TOLERANCE
    histogram_bins: int = DEFAULT_HISTOGRAM_BINS
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL

    def validate(self) -> "SimulationConfig":
        if self.num_runs < 1:
            raise ValueError(f"num_runs must be >= 1, got {self.num_runs}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.histogram_bins < 1:
            raise ValueError(f"histogram_bins must be >= 1, got {self.histogram_bins}")
        bad = [p for p in self.percentiles if not 0 <= p <= 100]
        if bad:
            raise ValueError(f"Percentiles must lie in [0, 100]: {bad}")
        if not 0 <= self.confidence_level <= 100:
            raise ValueError(
                f"confidence_level must lie in [0, 100], got {self.confidence_level}"
            )
        return self

    @property
    def gantt_percentiles(self) -> Tuple[float, float, float]:
        """Percentiles bracketing the confidence level, as the Gantt view uses them."""
        c = float(self.confidence_level)
        return (max(c - 5, 0.0), c, min(c + 5, 100.0))
