from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from schedule_risk.config import MAX_TASKS
from schedule_risk.cpm.errors import CycleError
from schedule_risk.cpm.model import RESERVED_IDS, START, DistributionType, Task
from schedule_risk.cpm.scheduler import build_graph

BLOCKING_SEVERITIES = ("critical", "error")


# ------------------------------------------------------------------
# Helper: make a consistent issue dictionary
# ------------------------------------------------------------------
def make_issue(task_id, name, severity, issue_type, description, suggestion) -> Dict[str, Any]:
    return {
        "TaskID": task_id,
        "Name": name,
        "Severity": severity,
        "IssueType": issue_type,
        "Description": description,
        "SuggestedFix": suggestion,
    }


def has_blocking_issues(issues: Sequence[Dict[str, Any]]) -> bool:
    return any(i["Severity"] in BLOCKING_SEVERITIES for i in issues)


# ------------------------------------------------------------------
# Per-task estimate checks
# ------------------------------------------------------------------
def _estimate_issues(task: Task) -> List[Dict[str, Any]]:
    issues = []
    dist = task.dist_type

    if dist in (DistributionType.TRIANGULAR, DistributionType.PERT) and not task.duration.is_ordered:
        d = task.duration
        issues.append(make_issue(
            task.id, task.name, "warning", "DurationOrder",
            f"Duration values must satisfy Min <= Likely <= Max (got {d.min}/{d.likely}/{d.max}).",
            "Reorder the three-point estimate; sampling falls back to a nominal value otherwise."
        ))

    if dist is DistributionType.NORMAL and task.normal_params.std_dev < 0:
        issues.append(make_issue(
            task.id, task.name, "warning", "NegativeStdDev",
            f"Normal std dev is negative ({task.normal_params.std_dev}).",
            "Use a non-negative standard deviation; the mean is used otherwise."
        ))

    if dist is DistributionType.LOGNORMAL and task.lognormal_params.sigma < 0:
        issues.append(make_issue(
            task.id, task.name, "warning", "NegativeSigma",
            f"LogNormal sigma is negative ({task.lognormal_params.sigma}).",
            "Use a non-negative sigma; exp(mu) is used otherwise."
        ))

    if not task.cost.is_ordered:
        c = task.cost
        issues.append(make_issue(
            task.id, task.name, "warning", "CostOrder",
            f"Cost values must satisfy Min <= Likely <= Max (got {c.min}/{c.likely}/{c.max}).",
            "Reorder the cost estimate."
        ))

    return issues


# ------------------------------------------------------------------
# MAIN VALIDATION ENGINE
# ------------------------------------------------------------------
def validate_tasks(tasks: Sequence[Task], max_tasks: Optional[int] = MAX_TASKS) -> List[Dict[str, Any]]:
    """
    Check a task list before simulating it.

    Severities: "critical" blocks scheduling outright (cycles, duplicate
    ids), "error" blocks a run (self links, unknown predecessors, task
    limit), "warning" is recovered at sampling time.
    """
    issues = []

    if not tasks:
        issues.append(make_issue(
            None, None, "error", "NoTasks",
            "The task list is empty.",
            "Add at least one task before running a simulation."
        ))
        return issues

    # ------------------------------------------------------------------
    # 1. Task limit
    # ------------------------------------------------------------------
    if max_tasks is not None and len(tasks) > max_tasks:
        issues.append(make_issue(
            None, None, "error", "TooManyTasks",
            f"{len(tasks)} tasks exceed the limit of {max_tasks}.",
            "Merge or remove tasks."
        ))

    # ------------------------------------------------------------------
    # 2. Task ids
    # ------------------------------------------------------------------
    counts = Counter(t.id for t in tasks)
    dups = sorted(tid for tid, n in counts.items() if n > 1)
    if dups:
        issues.append(make_issue(
            ", ".join(dups), "",
            "critical", "DuplicateTaskID",
            f"Duplicate TaskIDs detected: {dups}",
            "Give every task a unique TaskID."
        ))

    for t in tasks:
        if t.id in RESERVED_IDS:
            issues.append(make_issue(
                t.id, t.name, "critical", "ReservedTaskID",
                f"TaskID {t.id!r} is reserved for the project start/end nodes.",
                "Rename the task."
            ))

    # ------------------------------------------------------------------
    # 3. Dependencies
    # ------------------------------------------------------------------
    all_ids = set(counts)
    for t in tasks:
        for dep in t.dependencies:
            pid = dep.predecessor_id
            if pid == t.id:
                issues.append(make_issue(
                    t.id, t.name, "error", "SelfDependency",
                    "A task cannot depend on itself.",
                    "Remove the self-referencing predecessor."
                ))
            elif pid != START and pid not in all_ids:
                issues.append(make_issue(
                    t.id, t.name, "error", "MissingPredecessorTask",
                    f"Task depends on missing TaskID {pid}.",
                    "Fix dependency: remove or correct missing TaskID."
                ))

    # ------------------------------------------------------------------
    # 4. Estimates
    # ------------------------------------------------------------------
    for t in tasks:
        issues.extend(_estimate_issues(t))

    # ------------------------------------------------------------------
    # 5. Cycles (only meaningful once ids are sound)
    # ------------------------------------------------------------------
    if not any(i["IssueType"] in ("DuplicateTaskID", "ReservedTaskID", "SelfDependency") for i in issues):
        try:
            build_graph(tasks)
        except CycleError as e:
            issues.append(make_issue(
                ", ".join(e.unordered), "",
                "critical", "DependencyCycle",
                str(e),
                "Break the loop by removing one of the predecessor links."
            ))

    return issues
