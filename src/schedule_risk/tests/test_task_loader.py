import io

import numpy as np
import pandas as pd
import pytest

from schedule_risk.cpm.errors import InvalidTaskError
from schedule_risk.cpm.model import Dependency, DependencyType, DistributionType, Task
from schedule_risk.loaders.task_loader import (
    format_dependencies,
    format_predecessor_cell,
    load_tasks_from_dataframe,
    parse_predecessor_cell,
    process_task_dataframe,
    read_tasks_csv,
    sort_tasks_by_wbs,
    tasks_to_dataframe,
    wbs_sort_key,
)


# ----------------------------------------------------------------
# 1. PARSING TESTS
# ----------------------------------------------------------------
def test_parse_predecessor_cell():
    # Test Standard FS
    assert parse_predecessor_cell("10") == [("10", "FS", 0.0)]
    assert parse_predecessor_cell("10FS") == [("10", "FS", 0.0)]

    # Test Lags (Positive/Negative)
    assert parse_predecessor_cell("10FS+2d") == [("10", "FS", 2.0)]
    assert parse_predecessor_cell("10FS - 3 d") == [("10", "FS", -3.0)]
    assert parse_predecessor_cell("10FS+1.5") == [("10", "FS", 1.5)]

    # Test Types (SS, FF, SF)
    assert parse_predecessor_cell("20SS+5") == [("20", "SS", 5.0)]
    assert parse_predecessor_cell("30FF") == [("30", "FF", 0.0)]
    assert parse_predecessor_cell("40SF-1") == [("40", "SF", -1.0)]

    # Test Multiple Dependencies
    res = parse_predecessor_cell("10FS, 20SS+2; 30")
    assert res == [("10", "FS", 0.0), ("20", "SS", 2.0), ("30", "FS", 0.0)]


def test_parse_predecessor_cell_blank_values():
    assert parse_predecessor_cell(None) == []
    assert parse_predecessor_cell(np.nan) == []
    assert parse_predecessor_cell("  ") == []
    # integer-valued floats come from numeric CSV columns
    assert parse_predecessor_cell(7.0) == [("7", "FS", 0.0)]


def test_parse_predecessor_cell_start_sentinel():
    assert parse_predecessor_cell("START") == [("START", "FS", 0.0)]


def test_parse_predecessor_cell_named_ids():
    # trailing "d" or a type code belongs to the id unless spaced off
    assert parse_predecessor_cell("AD") == [("AD", "FS", 0.0)]
    assert parse_predecessor_cell("Build") == [("Build", "FS", 0.0)]
    assert parse_predecessor_cell("BSS") == [("BSS", "FS", 0.0)]
    assert parse_predecessor_cell("Build+2d") == [("Build", "FS", 2.0)]
    assert parse_predecessor_cell("AD FF") == [("AD", "FF", 0.0)]
    assert parse_predecessor_cell("Design SS-1.5d; BSS SF") == [
        ("Design", "SS", -1.5), ("BSS", "SF", 0.0)
    ]


def test_parse_predecessor_cell_rejects_garbage():
    with pytest.raises(ValueError, match="Invalid predecessor entry"):
        parse_predecessor_cell("10FS+x")


def test_format_predecessor_cell():
    deps = [Dependency("5"), Dependency("7", "FF", 1), Dependency("9", "SS", -2)]
    text = format_predecessor_cell(deps)

    assert text == "5, 7FF+1d, 9SS-2d"
    assert parse_predecessor_cell(text) == [
        ("5", "FS", 0.0), ("7", "FF", 1.0), ("9", "SS", -2.0)
    ]


# ----------------------------------------------------------------
# 2. TABLE NORMALIZATION
# ----------------------------------------------------------------
def test_process_task_dataframe_defaults():
    df = pd.DataFrame({"TaskID": [1.0, 2.0], "Duration": [5, 3]})
    out = process_task_dataframe(df)

    assert list(out["TaskID"]) == ["1", "2"]
    assert list(out["Name"]) == ["Task 1", "Task 2"]
    assert list(out["Distribution"]) == ["Triangular", "Triangular"]
    assert list(out["Min"]) == [5, 3] and list(out["Max"]) == [5, 3]
    assert list(out["CostMin"]) == [0.0, 0.0]


def test_process_task_dataframe_requires_task_id():
    with pytest.raises(ValueError, match="TaskID"):
        process_task_dataframe(pd.DataFrame({"Name": ["A"]}))


def test_process_task_dataframe_blank_task_id():
    with pytest.raises(ValueError, match="blank"):
        process_task_dataframe(pd.DataFrame({"TaskID": ["1", None], "Duration": [1, 2]}))


def test_missing_parameter_column_for_distribution():
    df = pd.DataFrame({"TaskID": ["1"], "Distribution": ["Normal"], "Mean": [4]})
    with pytest.raises(ValueError, match="StdDev"):
        process_task_dataframe(df)


def test_non_numeric_parameter_reported():
    df = pd.DataFrame(
        {"TaskID": ["1", "2"], "Min": [1, 2], "Likely": [2, "abc"], "Max": [3, 4]}
    )
    with pytest.raises(ValueError, match="Non-numeric or missing 'Likely'"):
        process_task_dataframe(df)


def test_unknown_distribution_rejected():
    df = pd.DataFrame({"TaskID": ["1"], "Distribution": ["Weibull"], "Duration": [3]})
    with pytest.raises(ValueError, match="Unknown distribution"):
        process_task_dataframe(df)


# ----------------------------------------------------------------
# 3. TASK RECORDS
# ----------------------------------------------------------------
CSV = """TaskID,Name,WBS,Distribution,Min,Likely,Max,Mean,StdDev,Mu,Sigma,CostMin,CostLikely,CostMax,Predecessors
1,Design,1.1,PERT,2,4,10,,,,,1000,1500,3000,
2,Build,1.2,triangular,5,8,15,,,,,4000,5000,9000,1
3,Docs,1.10,LogNormal,,,,,,1.0,0.3,200,300,400,1SS+1
4,Test,2,Normal,,,,3,0.5,,,500,600,800,"2, 3FF"
"""


def test_read_tasks_csv():
    tasks = read_tasks_csv(io.StringIO(CSV))

    assert [t.id for t in tasks] == ["1", "2", "3", "4"]
    design, build, docs, test = tasks
    assert design.dist_type is DistributionType.PERT
    assert design.duration.likely == 4
    assert build.dist_type is DistributionType.TRIANGULAR
    assert docs.wbs == "1.10"
    assert docs.lognormal_params.sigma == pytest.approx(0.3)
    assert docs.dependencies == (Dependency("1", DependencyType.SS, 1.0),)
    assert test.normal_params.mean == 3
    assert test.predecessor_ids == ("2", "3")
    assert test.dependencies[1].type is DependencyType.FF
    assert test.cost.max == 800


def test_named_ids_survive_table_round_trip(fixed_task):
    """
    A, AD, BSS, Build
    X depends on AD (FS), BSS (FF) and Build (SS+2)
    Reloading must keep X linked to AD, not A.
    """
    tasks = [
        fixed_task("A", 1),
        fixed_task("AD", 2),
        fixed_task("BSS", 3),
        fixed_task("Build", 4),
        Task(
            id="X",
            dependencies=[
                Dependency("AD"),
                Dependency("BSS", "FF"),
                Dependency("Build", "SS", 2),
            ],
        ),
    ]
    df = tasks_to_dataframe(tasks)

    assert df.loc[4, "Predecessors"] == "AD, BSS FF, Build SS+2d"
    assert load_tasks_from_dataframe(df) == tasks


def test_task_limit_enforced():
    df = pd.DataFrame({"TaskID": [str(i) for i in range(5)], "Duration": [1] * 5})

    assert len(load_tasks_from_dataframe(df)) == 5
    with pytest.raises(InvalidTaskError, match="more than 3 tasks"):
        load_tasks_from_dataframe(df, enforce_limit=True, max_tasks=3)


def test_tasks_to_dataframe_reloads(uncertain_tasks):
    df = tasks_to_dataframe(uncertain_tasks)
    reloaded = load_tasks_from_dataframe(df)

    assert reloaded == list(uncertain_tasks)


# ----------------------------------------------------------------
# 4. DISPLAY HELPERS
# ----------------------------------------------------------------
def test_wbs_sort_key():
    assert wbs_sort_key("1.10") > wbs_sort_key("1.2")
    assert wbs_sort_key("1.a") == (1, 0)
    assert wbs_sort_key(None) == (999999,)


def test_sort_tasks_by_wbs():
    tasks = [
        Task(id="a", wbs="2"),
        Task(id="b"),
        Task(id="c", wbs="1.10"),
        Task(id="d", wbs="1.2"),
    ]
    assert [t.id for t in sort_tasks_by_wbs(tasks)] == ["d", "c", "a", "b"]


def test_format_dependencies(uncertain_tasks):
    docs = uncertain_tasks[2]
    test = uncertain_tasks[3]

    assert format_dependencies(uncertain_tasks[0], uncertain_tasks) == "None (Start Task)"
    assert format_dependencies(docs, uncertain_tasks) == "Design (SS Lag: 1.0)"
    assert format_dependencies(test, uncertain_tasks) == "Build (FS Lag: 0.0); Docs (FF Lag: 0.0)"

    odd = Task(id="9", dependencies=[Dependency("START"), Dependency("42")])
    assert format_dependencies(odd, uncertain_tasks) == (
        "Project Start (FS Lag: 0.0); Unknown (FS Lag: 0.0)"
    )
