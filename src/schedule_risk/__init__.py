"""Monte Carlo schedule and cost risk analysis over a CPM network."""

from schedule_risk.config import SimulationConfig
from schedule_risk.cpm.analysis import Analysis, analyze, timing_percentiles, tornado_ranking
from schedule_risk.cpm.distributions import Sampler
from schedule_risk.cpm.errors import (
    CycleError,
    InvalidTaskError,
    ScheduleError,
    SimulationCancelled,
)
from schedule_risk.cpm.model import (
    END,
    START,
    Dependency,
    DependencyType,
    DistributionType,
    LogNormalParams,
    NormalParams,
    Task,
    ThreePointEstimate,
)
from schedule_risk.cpm.monte_carlo import MonteCarloEngine, run_monte_carlo
from schedule_risk.cpm.report import SimulationResult, SimulationRun, TaskTimingSamples
from schedule_risk.cpm.scheduler import CpmResult, build_graph, compute_cpm, schedule
from schedule_risk.cpm.statistics import (
    Histogram,
    get_percentiles,
    histogram,
    pearson_correlation,
    percentile,
    value_at_confidence,
)
from schedule_risk.loaders.task_loader import (
    load_tasks_from_dataframe,
    parse_predecessor_cell,
    read_tasks_csv,
)
from schedule_risk.validation.task_validator import validate_tasks

__all__ = [
    "Analysis",
    "CpmResult",
    "CycleError",
    "Dependency",
    "DependencyType",
    "DistributionType",
    "END",
    "Histogram",
    "InvalidTaskError",
    "LogNormalParams",
    "MonteCarloEngine",
    "NormalParams",
    "Sampler",
    "ScheduleError",
    "SimulationCancelled",
    "SimulationConfig",
    "SimulationResult",
    "SimulationRun",
    "START",
    "Task",
    "TaskTimingSamples",
    "ThreePointEstimate",
    "analyze",
    "build_graph",
    "compute_cpm",
    "get_percentiles",
    "histogram",
    "load_tasks_from_dataframe",
    "parse_predecessor_cell",
    "pearson_correlation",
    "percentile",
    "read_tasks_csv",
    "run_monte_carlo",
    "schedule",
    "timing_percentiles",
    "tornado_ranking",
    "validate_tasks",
    "value_at_confidence",
]
