"""Monte Carlo driver: sample, schedule, accumulate."""

from __future__ import annotations

import math
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from time import perf_counter
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from schedule_risk.config import DEFAULT_PERCENTILES, DEFAULT_SIMULATION_RUNS, SimulationConfig
from schedule_risk.cpm.analysis import analyze
from schedule_risk.cpm.distributions import Sampler
from schedule_risk.cpm.errors import SimulationCancelled
from schedule_risk.cpm.model import Task
from schedule_risk.cpm.report import (
    SimulationResult,
    SimulationRun,
    TaskTimingSamples,
    empty_result,
)
from schedule_risk.cpm.scheduler import ScheduleGraph, build_graph, compute_cpm
from schedule_risk.logging import get_logger

logger = get_logger(__name__)

# Trials per random stream. Fixed so a seeded batch gives the same numbers
# whatever the worker count.
CHUNK_SIZE = 250


@dataclass
class TrialBuffers:
    """Preallocated (runs, tasks) storage, one row per trial."""

    durations: np.ndarray
    costs: np.ndarray
    starts: np.ndarray
    finishes: np.ndarray
    critical: np.ndarray
    total_duration: np.ndarray
    total_cost: np.ndarray
    valid: np.ndarray

    @classmethod
    def allocate(cls, runs: int, n_tasks: int) -> "TrialBuffers":
        shape = (runs, n_tasks)
        return cls(
            durations=np.zeros(shape),
            costs=np.zeros(shape),
            starts=np.zeros(shape),
            finishes=np.zeros(shape),
            critical=np.zeros(shape, dtype=bool),
            total_duration=np.zeros(runs),
            total_cost=np.zeros(runs),
            valid=np.zeros(runs, dtype=bool),
        )


def partition_runs(num_runs: int, chunk_size: int = CHUNK_SIZE) -> List[Tuple[int, int]]:
    """Contiguous [lo, hi) trial ranges covering 0..num_runs."""
    return [(lo, min(lo + chunk_size, num_runs)) for lo in range(0, num_runs, chunk_size)]


class MonteCarloEngine:
    """
    Runs a batch of independent trials over a fixed task list.

    The dependency graph is validated and topologically ordered once before
    the first trial; a cyclic graph raises CycleError without sampling
    anything. Each chunk of trials draws from its own generator spawned
    from ``SeedSequence(config.seed)`` and writes into its own rows of the
    shared buffers.
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = config if config is not None else SimulationConfig()

    def run(
        self,
        tasks: Iterable[Task],
        cancel_event: Optional[threading.Event] = None,
    ) -> SimulationResult:
        cfg = self.config.validate()
        tasks = tuple(tasks)

        if not tasks:
            logger.info("No tasks supplied; nothing to simulate.")
            return empty_result(tasks, cfg.num_runs, cfg.seed)

        graph = build_graph(tasks)

        t0 = perf_counter()
        logger.info(
            f"Starting Monte Carlo batch: {cfg.num_runs} runs, {len(tasks)} tasks, "
            f"workers={cfg.workers}, seed={cfg.seed}"
        )

        buffers = TrialBuffers.allocate(cfg.num_runs, len(tasks))
        chunks = partition_runs(cfg.num_runs)
        streams = np.random.SeedSequence(cfg.seed).spawn(len(chunks))

        recoveries: Counter = Counter()
        if cfg.workers > 1 and len(chunks) > 1:
            with ThreadPoolExecutor(max_workers=cfg.workers) as executor:
                futures = [
                    executor.submit(
                        self._run_chunk, tasks, graph, buffers, lo, hi, stream, cancel_event
                    )
                    for (lo, hi), stream in zip(chunks, streams)
                ]
                for future in futures:
                    recoveries.update(future.result())
        else:
            for (lo, hi), stream in zip(chunks, streams):
                recoveries.update(
                    self._run_chunk(tasks, graph, buffers, lo, hi, stream, cancel_event)
                )

        if recoveries:
            logger.info(
                "Distribution parameter recoveries during batch: "
                + ", ".join(f"{k}={v}" for k, v in sorted(recoveries.items()))
            )

        result = self._assemble(tasks, buffers)
        result.recoveries = dict(recoveries)
        logger.info(
            f"Monte Carlo batch finished: {result.valid_runs}/{cfg.num_runs} valid runs "
            f"in {perf_counter() - t0:.2f}s"
        )
        return result

    # ---------------------------------------------------------
    # Trials
    # ---------------------------------------------------------

    def _run_chunk(
        self,
        tasks: Sequence[Task],
        graph: ScheduleGraph,
        buffers: TrialBuffers,
        lo: int,
        hi: int,
        stream: np.random.SeedSequence,
        cancel_event: Optional[threading.Event],
    ) -> Counter:
        logger.debug(f"Running trials {lo + 1}..{hi}")
        sampler = Sampler(np.random.default_rng(stream))
        tolerance = self.config.slack_tolerance
        task_ids = graph.task_ids

        for r in range(lo, hi):
            if cancel_event is not None and cancel_event.is_set():
                raise SimulationCancelled(f"Simulation cancelled before run {r + 1}")

            for k, task in enumerate(tasks):
                buffers.durations[r, k] = self._draw_duration(sampler, task, r)
                buffers.costs[r, k] = sampler.sample_cost(task)

            cpm = compute_cpm(graph, dict(zip(task_ids, buffers.durations[r])), tolerance)
            total_cost = float(buffers.costs[r].sum())
            finite = (
                math.isfinite(cpm.total_duration)
                and math.isfinite(total_cost)
                and np.isfinite(buffers.durations[r]).all()
            )
            if not finite:
                logger.debug(f"Discarding run {r + 1}: non-finite duration, schedule or cost")
                continue

            buffers.total_duration[r] = cpm.total_duration
            buffers.total_cost[r] = total_cost
            for k, tid in enumerate(task_ids):
                buffers.starts[r, k] = cpm.es[tid]
                buffers.finishes[r, k] = cpm.ef[tid]
                buffers.critical[r, k] = tid in cpm.critical_path_tasks
            buffers.valid[r] = True

        return sampler.recoveries

    @staticmethod
    def _draw_duration(sampler: Sampler, task: Task, run: int) -> float:
        """One duration draw; an overflow becomes inf so the trial is discarded."""
        try:
            return sampler.sample_duration(task)
        except OverflowError:
            logger.warning(f"Duration overflow for task {task.name} in run {run + 1}; discarding run.")
            return math.inf
        except (ValueError, ArithmeticError) as e:
            logger.error(f"Sampling error for task {task.name} in run {run + 1}: {e}")
            return 0.0

    # ---------------------------------------------------------
    # Reduction
    # ---------------------------------------------------------

    def _assemble(self, tasks: Tuple[Task, ...], buffers: TrialBuffers) -> SimulationResult:
        cfg = self.config
        mask = buffers.valid
        if not mask.any():
            logger.warning("No simulation run produced a valid schedule.")
            return empty_result(tasks, cfg.num_runs, cfg.seed)

        task_ids = [t.id for t in tasks]
        durations = buffers.durations[mask]
        costs = buffers.costs[mask]
        starts = buffers.starts[mask]
        finishes = buffers.finishes[mask]
        critical = buffers.critical[mask]
        total_duration = buffers.total_duration[mask]
        total_cost = buffers.total_cost[mask]

        analysis = analyze(
            task_ids,
            total_duration,
            total_cost,
            durations,
            costs,
            critical.sum(axis=0),
            percentiles=cfg.percentiles,
            histogram_bins=cfg.histogram_bins,
            confidence_level=cfg.confidence_level,
        )

        runs = [
            SimulationRun(
                float(total_duration[i]),
                float(total_cost[i]),
                frozenset(task_ids[k] for k in np.flatnonzero(critical[i])),
            )
            for i in range(total_duration.size)
        ]

        return SimulationResult(
            tasks=tasks,
            requested_runs=cfg.num_runs,
            simulation_runs=runs,
            analysis=analysis,
            all_task_timings={
                tid: TaskTimingSamples(starts[:, k].copy(), finishes[:, k].copy())
                for k, tid in enumerate(task_ids)
            },
            task_duration_samples={tid: durations[:, k].copy() for k, tid in enumerate(task_ids)},
            task_cost_samples={tid: costs[:, k].copy() for k, tid in enumerate(task_ids)},
            seed=cfg.seed,
        )


def run_monte_carlo(
    tasks: Iterable[Task],
    num_runs: int = DEFAULT_SIMULATION_RUNS,
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
    seed: Optional[int] = None,
    workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
    **config_kwargs,
) -> SimulationResult:
    """Convenience wrapper around ``MonteCarloEngine``."""
    config = SimulationConfig(
        num_runs=num_runs,
        percentiles=tuple(percentiles),
        seed=seed,
        workers=workers,
        **config_kwargs,
    )
    return MonteCarloEngine(config).run(tasks, cancel_event=cancel_event)
