"""Task table import: CSV / DataFrame rows into Task records."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from schedule_risk.config import MAX_TASKS
from schedule_risk.cpm.errors import InvalidTaskError
from schedule_risk.cpm.model import (
    START,
    Dependency,
    DistributionType,
    LogNormalParams,
    NormalParams,
    Task,
    ThreePointEstimate,
)

DISTRIBUTION_COLUMNS = {
    DistributionType.TRIANGULAR: ("Min", "Likely", "Max"),
    DistributionType.PERT: ("Min", "Likely", "Max"),
    DistributionType.NORMAL: ("Mean", "StdDev"),
    DistributionType.LOGNORMAL: ("Mu", "Sigma"),
}
COST_COLUMNS = ("CostMin", "CostLikely", "CostMax")

TASK_COLUMNS = [
    "TaskID", "Name", "WBS", "Distribution",
    "Min", "Likely", "Max", "Mean", "StdDev", "Mu", "Sigma",
    "CostMin", "CostLikely", "CostMax",
    "Predecessors",
]


# ---------------------------------------------------------
# PREDECESSOR PARSING
# ---------------------------------------------------------

# Lag with an optional day suffix, e.g. "+3d" or "- 2"
_LAG = r"(?:(?P<lag>[+-]\s*\d+(?:\.\d+)?)\s*[dD]?)?"

# Numeric ids take the type code directly: "5FS+3d", "12SS-2"
_NUMERIC_PRED = re.compile(
    rf"^\s*(?P<pred>\d+)\s*(?P<type>FS|SS|FF|SF)?\s*{_LAG}\s*$"
)

# Other ids need a space before the type code: "AD FF+1d", "Build+2d"
_NAMED_PRED = re.compile(
    rf"^\s*(?P<pred>[A-Za-z0-9_]+)(?:\s+(?P<type>FS|SS|FF|SF))?\s*{_LAG}\s*$"
)


def parse_predecessor_cell(cell) -> List[Tuple[str, str, float]]:
    """
    Parse a Predecessors cell like:
      "5"
      "5FS+3d"
      "12SS-2"
      "7FF+1d, 9SS"
      "Design SS+2d, Build"
    into a list of tuples:
      [("5", "FS", 3.0), ("12", "SS", -2.0), ...]

    A non-numeric id is read whole, so "BuildSS" names task "BuildSS";
    write "Build SS" for a start-to-start link on "Build".

    Raises ValueError for an entry that does not match the notation.
    """
    if cell is None:
        return []
    if isinstance(cell, float) and pd.isna(cell):
        return []
    if isinstance(cell, float) and cell.is_integer():
        cell = int(cell)

    text = str(cell).strip()
    if not text:
        return []

    results = []
    for raw in re.split(r"[;,]", text):
        s = raw.strip()
        if not s:
            continue
        m = _NUMERIC_PRED.match(s) or _NAMED_PRED.match(s)
        if not m:
            raise ValueError(
                f"Invalid predecessor entry {s!r}. Valid examples: 5, 12FS, 12FS+2d, 5SS-3, Design SS+2d"
            )
        lag_str = m.group("lag")
        lag = float(lag_str.replace(" ", "")) if lag_str else 0.0
        results.append((m.group("pred"), m.group("type") or "FS", lag))

    return results


def format_predecessor_cell(dependencies: Sequence[Dependency]) -> str:
    """Inverse of parse_predecessor_cell, e.g. ``"5, 7FF+1d, Design SS"``."""
    parts = []
    for dep in dependencies:
        s = dep.predecessor_id
        if dep.type.value != "FS" or dep.lag:
            s += (dep.type.value if s.isdigit() else " " + dep.type.value)
        if dep.lag:
            s += f"{dep.lag:+g}d"
        parts.append(s)
    return ", ".join(parts)


# ---------------------------------------------------------
# TABLE NORMALIZATION
# ---------------------------------------------------------

def _normalize_id(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _numeric(df: pd.DataFrame, col: str, rows: pd.Series) -> pd.Series:
    values = pd.to_numeric(df[col], errors="coerce")
    bad = df[rows & values.isna()]
    if not bad.empty:
        raise ValueError(
            f"Non-numeric or missing '{col}' values found. Example rows:\n"
            f"{bad[['TaskID', 'Name', col]].head().to_string(index=False)}"
        )
    return values


def process_task_dataframe(df_input: pd.DataFrame) -> pd.DataFrame:
    """
    Clean and normalize a task table.

    Guarantees:
      - TaskID is a non-empty string
      - Distribution holds a canonical distribution name
      - the parameter columns of each row's distribution are numeric
      - Cost columns are numeric (default 0)
      - Name/WBS/Predecessors exist or are safely defaulted

    A plain ``Duration`` column is accepted in place of Min/Likely/Max and
    yields a fixed-duration triangular task.
    """
    df = df_input.copy()
    df.columns = [str(c).strip() for c in df.columns]

    # ---- TaskID ----
    if "TaskID" not in df.columns:
        raise ValueError("Missing required column: 'TaskID'")
    df["TaskID"] = [_normalize_id(v) for v in df["TaskID"]]
    if (df["TaskID"] == "").any():
        raise ValueError("Some TaskID values are blank.")

    # ---- Name / WBS / Predecessors ----
    if "Name" not in df.columns:
        df["Name"] = "Task " + df["TaskID"]
    df["Name"] = df["Name"].fillna("").astype(str)

    if "WBS" not in df.columns:
        df["WBS"] = ""
    df["WBS"] = df["WBS"].fillna("").astype(str).str.strip()

    if "Predecessors" not in df.columns:
        df["Predecessors"] = ""

    # ---- Distribution ----
    if "Distribution" not in df.columns:
        df["Distribution"] = DistributionType.TRIANGULAR.value
    df["Distribution"] = [
        DistributionType.parse("" if pd.isna(v) else v).value for v in df["Distribution"]
    ]

    # ---- Duration shortcut ----
    if "Duration" in df.columns:
        for col in ("Min", "Likely", "Max"):
            if col not in df.columns:
                df[col] = df["Duration"]
            else:
                df[col] = df[col].fillna(df["Duration"])

    # ---- Distribution parameters ----
    for dist, cols in DISTRIBUTION_COLUMNS.items():
        rows = df["Distribution"] == dist.value
        if not rows.any():
            continue
        for col in cols:
            if col not in df.columns:
                raise ValueError(
                    f"Missing column '{col}' required by {dist.value} tasks."
                )
            _numeric(df, col, rows)

    # Parameters not used by a row's distribution are ignored
    for cols in DISTRIBUTION_COLUMNS.values():
        for col in cols:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors="coerce")

    # ---- Cost ----
    for col in COST_COLUMNS:
        if col not in df.columns:
            df[col] = 0.0
        df[col] = df[col].fillna(0.0)
        df[col] = _numeric(df, col, pd.Series(True, index=df.index))

    return df


def _float(row, col) -> float:
    v = row.get(col, 0.0)
    return 0.0 if v is None or pd.isna(v) else float(v)


def load_tasks_from_dataframe(
    df_input: pd.DataFrame,
    enforce_limit: bool = False,
    max_tasks: int = MAX_TASKS,
) -> List[Task]:
    """Build Task records from a task table (see TASK_COLUMNS)."""
    df = process_task_dataframe(df_input)

    if enforce_limit and len(df) > max_tasks:
        raise InvalidTaskError(f"Cannot load more than {max_tasks} tasks (got {len(df)}).")

    tasks = []
    for _, row in df.iterrows():
        dist = DistributionType.parse(row["Distribution"])
        deps = [
            Dependency(pred, dep_type, lag)
            for pred, dep_type, lag in parse_predecessor_cell(row["Predecessors"])
        ]
        tasks.append(
            Task(
                id=row["TaskID"],
                name=row["Name"],
                wbs=row["WBS"] or None,
                dist_type=dist,
                duration=ThreePointEstimate(
                    _float(row, "Min"), _float(row, "Likely"), _float(row, "Max")
                ),
                normal_params=NormalParams(_float(row, "Mean"), _float(row, "StdDev")),
                lognormal_params=LogNormalParams(_float(row, "Mu"), _float(row, "Sigma")),
                cost=ThreePointEstimate(
                    _float(row, "CostMin"), _float(row, "CostLikely"), _float(row, "CostMax")
                ),
                dependencies=deps,
            )
        )
    return tasks


def read_tasks_csv(path_or_buffer, enforce_limit: bool = False) -> List[Task]:
    """Read a task CSV (path or file-like) into Task records."""
    df = pd.read_csv(path_or_buffer, dtype={"TaskID": str, "Predecessors": str, "WBS": str})
    return load_tasks_from_dataframe(df, enforce_limit=enforce_limit)


def tasks_to_dataframe(tasks: Sequence[Task]) -> pd.DataFrame:
    """Task records back into the tabular layout read by load_tasks_from_dataframe."""
    rows = []
    for t in tasks:
        rows.append(
            {
                "TaskID": t.id,
                "Name": t.name,
                "WBS": t.wbs or "",
                "Distribution": t.dist_type.value,
                "Min": t.duration.min,
                "Likely": t.duration.likely,
                "Max": t.duration.max,
                "Mean": t.normal_params.mean,
                "StdDev": t.normal_params.std_dev,
                "Mu": t.lognormal_params.mu,
                "Sigma": t.lognormal_params.sigma,
                "CostMin": t.cost.min,
                "CostLikely": t.cost.likely,
                "CostMax": t.cost.max,
                "Predecessors": format_predecessor_cell(t.dependencies),
            }
        )
    return pd.DataFrame(rows, columns=TASK_COLUMNS)


# ---------------------------------------------------------
# DISPLAY HELPERS
# ---------------------------------------------------------

def wbs_sort_key(wbs: Optional[str]) -> Tuple[int, ...]:
    """Numeric WBS key: "1.10" after "1.2"; missing WBS sorts last."""
    if not wbs:
        return (999999,)
    parts = []
    for part in str(wbs).split("."):
        part = part.strip()
        parts.append(int(part) if part.isdigit() else 0)
    return tuple(parts)


def sort_tasks_by_wbs(tasks: Sequence[Task]) -> List[Task]:
    return sorted(tasks, key=lambda t: wbs_sort_key(t.wbs))


def format_dependencies(task: Task, tasks: Sequence[Task]) -> str:
    """Human-readable predecessor list, e.g. ``"Design (FS Lag: 0.0)"``."""
    if not task.dependencies:
        return "None (Start Task)"
    names = {t.id: t.name for t in tasks}

    def name_of(pid: str) -> str:
        if pid == START:
            return "Project Start"
        return names.get(pid, "Unknown")

    return "; ".join(
        f"{name_of(d.predecessor_id)} ({d.type.value} Lag: {d.lag})" for d in task.dependencies
    )
