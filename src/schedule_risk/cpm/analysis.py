"""Sensitivity and aggregation over the accepted Monte Carlo trials."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from schedule_risk.config import (
    DEFAULT_CONFIDENCE_LEVEL,
    DEFAULT_HISTOGRAM_BINS,
    DEFAULT_PERCENTILES,
    TORNADO_TOP_N,
)
from schedule_risk.cpm.model import Task
from schedule_risk.cpm.statistics import (
    Histogram,
    get_percentiles,
    histogram,
    mean,
    pearson_correlation,
    population_std,
    value_at_confidence,
)


@dataclass(frozen=True)
class Analysis:
    """Project and per-task statistics for one batch."""

    valid_runs: int

    mean_duration: float
    std_dev_duration: float
    mean_cost: float
    std_dev_cost: float

    percentiles_duration: Dict[float, float]
    percentiles_cost: Dict[float, float]

    duration_sensitivity: Dict[str, float]
    cost_sensitivity: Dict[str, float]
    criticality_index: Dict[str, float]
    cruciality: Dict[str, float]

    # stdDev / mean of total duration
    schedule_sensitivity_index: float

    confidence_level: float
    duration_at_confidence: float
    cost_at_confidence: float

    duration_histogram: Histogram
    cost_histogram: Histogram


def analyze(
    task_ids: Sequence[str],
    total_durations: np.ndarray,
    total_costs: np.ndarray,
    duration_samples: np.ndarray,
    cost_samples: np.ndarray,
    critical_counts: np.ndarray,
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
    histogram_bins: int = DEFAULT_HISTOGRAM_BINS,
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
) -> Optional[Analysis]:
    """
    Aggregate V accepted trials.

    ``duration_samples`` and ``cost_samples`` are (V, n_tasks) arrays aligned
    with ``task_ids``; ``critical_counts`` holds, per task, the number of
    trials where it was critical. Returns None when V == 0.
    """
    total_durations = np.asarray(total_durations, dtype=float)
    total_costs = np.asarray(total_costs, dtype=float)
    v = int(total_durations.size)
    if v == 0:
        return None

    mean_dur = mean(total_durations)
    std_dur = population_std(total_durations)

    dur_sens: Dict[str, float] = {}
    cost_sens: Dict[str, float] = {}
    crit: Dict[str, float] = {}
    cruc: Dict[str, float] = {}
    for k, tid in enumerate(task_ids):
        dur_sens[tid] = pearson_correlation(duration_samples[:, k], total_durations)
        cost_sens[tid] = pearson_correlation(cost_samples[:, k], total_costs)
        crit[tid] = float(critical_counts[k]) / v
        cruc[tid] = crit[tid] * dur_sens[tid]

    return Analysis(
        valid_runs=v,
        mean_duration=mean_dur,
        std_dev_duration=std_dur,
        mean_cost=mean(total_costs),
        std_dev_cost=population_std(total_costs),
        percentiles_duration=get_percentiles(total_durations, percentiles),
        percentiles_cost=get_percentiles(total_costs, percentiles),
        duration_sensitivity=dur_sens,
        cost_sensitivity=cost_sens,
        criticality_index=crit,
        cruciality=cruc,
        schedule_sensitivity_index=std_dur / mean_dur if mean_dur > 0 else 0.0,
        confidence_level=float(confidence_level),
        duration_at_confidence=value_at_confidence(total_durations, confidence_level),
        cost_at_confidence=value_at_confidence(total_costs, confidence_level),
        duration_histogram=histogram(total_durations, histogram_bins),
        cost_histogram=histogram(total_costs, histogram_bins),
    )


# ---------------------------------------------------------
# Views consumed by charts
# ---------------------------------------------------------

@dataclass(frozen=True)
class TornadoBar:
    task_id: str
    label: str
    correlation: float


def tornado_ranking(
    tasks: Sequence[Task],
    sensitivity: Mapping[str, float],
    top_n: int = TORNADO_TOP_N,
) -> List[TornadoBar]:
    """
    Top ``top_n`` tasks by absolute correlation, returned in ascending
    signed order so the strongest positive driver ends up on top of a
    horizontal bar chart.
    """
    bars = [
        TornadoBar(t.id, t.label, float(sensitivity.get(t.id, 0.0) or 0.0))
        for t in tasks
    ]
    bars = [b for b in bars if not np.isnan(b.correlation)]
    bars.sort(key=lambda b: abs(b.correlation), reverse=True)
    top = bars[:top_n]
    top.sort(key=lambda b: b.correlation)
    return top


@dataclass(frozen=True)
class GanttBar:
    task_id: str
    label: str
    start: Dict[float, float]
    finish: Dict[float, float]
    low: float
    high: float

    @property
    def offset(self) -> float:
        """Start of the bar: the low-percentile earliest start."""
        return self.start[self.low]

    @property
    def width(self) -> float:
        """High-percentile finish minus low-percentile start, at least 0.1."""
        return max(0.1, self.finish[self.high] - self.start[self.low])


def timing_percentiles(
    tasks: Sequence[Task],
    starts: Mapping[str, np.ndarray],
    finishes: Mapping[str, np.ndarray],
    percentiles: Sequence[float],
) -> List[GanttBar]:
    """Per-task percentiles of earliest start / finish for a probabilistic Gantt."""
    ps = list(percentiles)
    low, high = min(ps), max(ps)
    bars = []
    for t in tasks:
        if t.id not in starts:
            continue
        bars.append(
            GanttBar(
                task_id=t.id,
                label=t.label,
                start=get_percentiles(starts[t.id], ps),
                finish=get_percentiles(finishes[t.id], ps),
                low=low,
                high=high,
            )
        )
    return bars


def confidence_query(analysis: Analysis) -> Tuple[float, float]:
    """(duration, cost) not exceeded with probability ``confidence_level``."""
    return analysis.duration_at_confidence, analysis.cost_at_confidence
