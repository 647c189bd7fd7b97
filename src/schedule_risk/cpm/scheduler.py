"""Critical Path Method over a typed, lagged dependency graph."""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Sequence, Tuple

from schedule_risk.config import MIN_SLACK_TOLERANCE
from schedule_risk.cpm.errors import CycleError, InvalidTaskError
from schedule_risk.cpm.model import END, RESERVED_IDS, START, DependencyType, Task
from schedule_risk.logging import get_logger

logger = get_logger(__name__)

# (node, dependency type, lag)
Link = Tuple[str, DependencyType, float]


# ---------------------------------------------------------
# TIMING RULES
# ---------------------------------------------------------

def required_start(
    dep_type: DependencyType, lag: float, pred_es: float, pred_ef: float, duration: float
) -> float:
    """Earliest start a successor may take given one incoming link."""
    if dep_type is DependencyType.SS:
        return pred_es + lag
    if dep_type is DependencyType.FF:
        return pred_ef + lag - duration
    if dep_type is DependencyType.SF:
        return pred_es + lag - duration
    return pred_ef + lag


def required_finish(
    dep_type: DependencyType, lag: float, succ_ls: float, succ_lf: float, duration: float
) -> float:
    """Latest finish a predecessor may take given one outgoing link."""
    if dep_type is DependencyType.SS:
        return succ_ls - lag + duration
    if dep_type is DependencyType.FF:
        return succ_lf - lag
    if dep_type is DependencyType.SF:
        return succ_lf - lag + duration
    return succ_ls - lag


# ---------------------------------------------------------
# GRAPH CONSTRUCTION
# ---------------------------------------------------------

@dataclass
class ScheduleGraph:
    """
    Dependency DAG over task ids plus the START and END sentinels.

    nodes:      [START, task ids in input order..., END]
    edges_from: {pred: [(succ, dep_type, lag), ...]}
    edges_to:   {succ: [(pred, dep_type, lag), ...]}
    order:      topological order of ``nodes``
    """

    task_ids: Tuple[str, ...]
    nodes: List[str]
    edges_from: Dict[str, List[Link]]
    edges_to: Dict[str, List[Link]]
    order: List[str] = field(default_factory=list)


def _check_task_ids(tasks: Sequence[Task]) -> None:
    seen = set()
    dups = []
    for t in tasks:
        if t.id in RESERVED_IDS:
            raise InvalidTaskError(f"Task id {t.id!r} is reserved.")
        if t.id in seen:
            dups.append(t.id)
        seen.add(t.id)
    if dups:
        raise InvalidTaskError(f"Duplicate task ids detected: {sorted(set(dups))}")

    for t in tasks:
        if t.id in t.predecessor_ids:
            raise InvalidTaskError(f"Task {t.id!r} ({t.name}) cannot depend on itself.")


def build_graph(tasks: Sequence[Task]) -> ScheduleGraph:
    """
    Build the dependency graph and its topological order.

    - a link to an unknown predecessor is logged and ignored
    - a task without a real predecessor hangs off START
    - a task that nothing depends on feeds END

    Raises InvalidTaskError for duplicate/reserved ids or self links and
    CycleError when the links are not acyclic.
    """
    _check_task_ids(tasks)

    task_ids = tuple(t.id for t in tasks)
    known = set(task_ids)
    nodes = [START, *task_ids, END]

    edges_from: Dict[str, List[Link]] = defaultdict(list)
    edges_to: Dict[str, List[Link]] = defaultdict(list)

    for t in tasks:
        has_real_pred = False
        has_start_link = False
        for dep in t.dependencies:
            pred = dep.predecessor_id
            if pred == START:
                has_start_link = True
            elif pred in known:
                has_real_pred = True
            else:
                logger.warning(f"Invalid predecessor ID {pred} for task {t.name}; ignoring link.")
                continue
            edges_from[pred].append((t.id, dep.type, dep.lag))
            edges_to[t.id].append((pred, dep.type, dep.lag))

        if not has_real_pred and not has_start_link:
            edges_from[START].append((t.id, DependencyType.FS, 0.0))
            edges_to[t.id].append((START, DependencyType.FS, 0.0))

    for tid in task_ids:
        if not edges_from.get(tid):
            edges_from[tid].append((END, DependencyType.FS, 0.0))
            edges_to[END].append((tid, DependencyType.FS, 0.0))

    if not task_ids:
        edges_from[START].append((END, DependencyType.FS, 0.0))
        edges_to[END].append((START, DependencyType.FS, 0.0))

    graph = ScheduleGraph(task_ids, nodes, dict(edges_from), dict(edges_to))
    graph.order = topological_order(graph.nodes, graph.edges_from, graph.edges_to)
    return graph


def topological_order(
    nodes: Sequence[str],
    edges_from: Mapping[str, List[Link]],
    edges_to: Mapping[str, List[Link]],
) -> List[str]:
    """Kahn's algorithm; raises CycleError if some nodes are never freed."""
    indeg = {n: len(edges_to.get(n, ())) for n in nodes}

    q = deque(n for n in nodes if indeg[n] == 0)
    topo = []
    while q:
        n = q.popleft()
        topo.append(n)
        for succ, _, _ in edges_from.get(n, ()):
            indeg[succ] -= 1
            if indeg[succ] == 0:
                q.append(succ)

    if len(topo) != len(nodes):
        ordered = set(topo)
        raise CycleError(n for n in nodes if n not in ordered)
    return topo


# ---------------------------------------------------------
# CPM ALGORITHM
# ---------------------------------------------------------

@dataclass(frozen=True)
class TaskTiming:
    earliest_start: float
    earliest_finish: float


@dataclass
class CpmResult:
    """ES/EF/LS/LF/slack per node (sentinels included) and the critical set."""

    total_duration: float
    critical_path_tasks: FrozenSet[str]
    es: Dict[str, float]
    ef: Dict[str, float]
    ls: Dict[str, float]
    lf: Dict[str, float]
    slack: Dict[str, float]

    @property
    def task_timings(self) -> Dict[str, TaskTiming]:
        return {
            n: TaskTiming(self.es[n], self.ef[n])
            for n in self.es
            if n not in RESERVED_IDS
        }


def compute_cpm(
    graph: ScheduleGraph,
    durations: Mapping[str, float],
    tolerance: float = MIN_SLACK_TOLERANCE,
) -> CpmResult:
    """
    Forward and backward pass for one set of task durations.

    Negative durations are scheduled as zero. Earliest starts never fall
    below the project start.
    """
    dur = {n: 0.0 for n in graph.nodes}
    for tid in graph.task_ids:
        dur[tid] = max(float(durations.get(tid, 0.0)), 0.0)

    # Forward pass
    es: Dict[str, float] = {}
    ef: Dict[str, float] = {}
    for j in graph.order:
        d = dur[j]
        start = 0.0
        for i, dep_type, lag in graph.edges_to.get(j, ()):
            start = max(start, required_start(dep_type, lag, es[i], ef[i], d))
        es[j] = start
        ef[j] = start + d

    total = ef[END]

    # Backward pass
    ls: Dict[str, float] = {}
    lf: Dict[str, float] = {}
    for i in reversed(graph.order):
        d = dur[i]
        finish = total
        for j, dep_type, lag in graph.edges_from.get(i, ()):
            finish = min(finish, required_finish(dep_type, lag, ls[j], lf[j], d))
        lf[i] = finish
        ls[i] = finish - d

    slack = {n: ls[n] - es[n] for n in graph.nodes}

    # Zero slack, or finishing with the project; the second test absorbs
    # drift accumulated along long chains.
    critical = frozenset(
        tid
        for tid in graph.task_ids
        if abs(slack[tid]) < tolerance or abs(ef[tid] - total) < tolerance
    )

    return CpmResult(total, critical, es, ef, ls, lf, slack)


def schedule(
    tasks: Sequence[Task],
    durations: Mapping[str, float],
    tolerance: float = MIN_SLACK_TOLERANCE,
) -> CpmResult:
    """Build the graph for ``tasks`` and run one CPM pass."""
    return compute_cpm(build_graph(tasks), durations, tolerance)
