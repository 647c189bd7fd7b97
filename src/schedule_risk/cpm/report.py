"""Result assembly: the structures handed to charts, tables and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from schedule_risk.config import GANTT_PERCENTILES
from schedule_risk.cpm.analysis import Analysis, GanttBar, timing_percentiles
from schedule_risk.cpm.model import Task
from schedule_risk.cpm.statistics import s_curve


@dataclass(frozen=True)
class SimulationRun:
    total_duration: float
    total_cost: float
    critical_path_tasks: FrozenSet[str]


@dataclass(frozen=True)
class TaskTimingSamples:
    """Earliest start / finish of one task, one entry per accepted trial."""

    starts: np.ndarray
    finishes: np.ndarray


@dataclass
class SimulationResult:
    tasks: Tuple[Task, ...]
    requested_runs: int
    simulation_runs: List[SimulationRun] = field(default_factory=list)
    analysis: Optional[Analysis] = None
    all_task_timings: Dict[str, TaskTimingSamples] = field(default_factory=dict)
    task_duration_samples: Dict[str, np.ndarray] = field(default_factory=dict)
    task_cost_samples: Dict[str, np.ndarray] = field(default_factory=dict)
    seed: Optional[int] = None

    # Sampler fallbacks by kind, e.g. {"pert_degenerate": 500}
    recoveries: Dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.analysis is None

    @property
    def valid_runs(self) -> int:
        return len(self.simulation_runs)

    @property
    def total_durations(self) -> np.ndarray:
        return np.array([r.total_duration for r in self.simulation_runs], dtype=float)

    @property
    def total_costs(self) -> np.ndarray:
        return np.array([r.total_cost for r in self.simulation_runs], dtype=float)

    # ---------------------------------------------------------
    # Derived views
    # ---------------------------------------------------------

    def s_curve(self, which: str = "duration") -> Tuple[np.ndarray, np.ndarray]:
        if which == "duration":
            return s_curve(self.total_durations)
        if which == "cost":
            return s_curve(self.total_costs)
        raise ValueError(f"Unknown outcome {which!r}; expected 'duration' or 'cost'")

    def gantt_bars(self, percentiles: Sequence[float] = GANTT_PERCENTILES) -> List[GanttBar]:
        if self.is_empty:
            return []
        return timing_percentiles(
            self.tasks,
            {k: v.starts for k, v in self.all_task_timings.items()},
            {k: v.finishes for k, v in self.all_task_timings.items()},
            percentiles,
        )

    def summary(self) -> Dict[str, Any]:
        """Headline project numbers, empty-safe."""
        out: Dict[str, Any] = {
            "requested_runs": int(self.requested_runs),
            "valid_runs": int(self.valid_runs),
            "task_count": len(self.tasks),
        }
        a = self.analysis
        if a is None:
            return out

        out.update(
            {
                "mean_duration": a.mean_duration,
                "std_dev_duration": a.std_dev_duration,
                "mean_cost": a.mean_cost,
                "std_dev_cost": a.std_dev_cost,
                "schedule_sensitivity_index": a.schedule_sensitivity_index,
                "confidence_level": a.confidence_level,
                "duration_at_confidence": a.duration_at_confidence,
                "cost_at_confidence": a.cost_at_confidence,
            }
        )
        for p, v in a.percentiles_duration.items():
            out[f"duration_p{p:g}"] = v
        for p, v in a.percentiles_cost.items():
            out[f"cost_p{p:g}"] = v
        return out

    def task_table(self) -> pd.DataFrame:
        """One row per task with its sensitivity and criticality figures."""
        columns = [
            "TaskID", "Name", "WBS",
            "MeanDuration", "MeanCost", "MeanStart", "MeanFinish",
            "CriticalityIndex", "DurationSensitivity", "CostSensitivity", "Cruciality",
        ]
        if self.is_empty:
            return pd.DataFrame(columns=columns)

        a = self.analysis
        rows = []
        for t in self.tasks:
            timing = self.all_task_timings[t.id]
            rows.append(
                {
                    "TaskID": t.id,
                    "Name": t.name,
                    "WBS": t.wbs or "",
                    "MeanDuration": float(np.mean(self.task_duration_samples[t.id])),
                    "MeanCost": float(np.mean(self.task_cost_samples[t.id])),
                    "MeanStart": float(np.mean(timing.starts)),
                    "MeanFinish": float(np.mean(timing.finishes)),
                    "CriticalityIndex": a.criticality_index[t.id],
                    "DurationSensitivity": a.duration_sensitivity[t.id],
                    "CostSensitivity": a.cost_sensitivity[t.id],
                    "Cruciality": a.cruciality[t.id],
                }
            )
        return pd.DataFrame(rows, columns=columns)

    def runs_frame(self) -> pd.DataFrame:
        """One row per accepted trial."""
        return pd.DataFrame(
            {
                "Run": np.arange(1, self.valid_runs + 1),
                "TotalDuration": self.total_durations,
                "TotalCost": self.total_costs,
                "CriticalTasks": [
                    ",".join(sorted(r.critical_path_tasks)) for r in self.simulation_runs
                ],
            }
        )


def empty_result(tasks: Sequence[Task], requested_runs: int, seed: Optional[int] = None) -> SimulationResult:
    """The explicit "no result" outcome: no tasks or no accepted trial."""
    return SimulationResult(tasks=tuple(tasks), requested_runs=requested_runs, seed=seed)
