import numpy as np
import pytest

from schedule_risk import run_monte_carlo
from schedule_risk.cpm.report import empty_result


@pytest.fixture
def chain_result(chain_tasks):
    return run_monte_carlo(chain_tasks, num_runs=40, seed=3, percentiles=[10, 50, 90])


def test_summary_headline_numbers(chain_result):
    s = chain_result.summary()

    assert s["requested_runs"] == 40
    assert s["valid_runs"] == 40
    assert s["task_count"] == 3
    assert s["mean_duration"] == 12.0
    assert s["duration_p50"] == 12.0
    assert s["cost_p90"] == 600.0
    assert s["duration_at_confidence"] == 12.0


def test_task_table(chain_result):
    table = chain_result.task_table()

    assert list(table["TaskID"]) == ["A", "B", "C"]
    assert list(table["MeanStart"]) == [0.0, 5.0, 8.0]
    assert list(table["MeanFinish"]) == [5.0, 8.0, 12.0]
    assert list(table["CriticalityIndex"]) == [1.0, 1.0, 1.0]
    assert list(table["MeanCost"]) == [100.0, 200.0, 300.0]


def test_runs_frame(chain_result):
    runs = chain_result.runs_frame()

    assert len(runs) == 40
    assert runs["Run"].iloc[0] == 1
    assert runs["CriticalTasks"].iloc[0] == "A,B,C"


def test_s_curve_outcomes(chain_result):
    xs, ps = chain_result.s_curve("cost")

    assert np.all(xs == 600.0)
    assert ps[-1] == 1.0
    with pytest.raises(ValueError, match="Unknown outcome"):
        chain_result.s_curve("risk")


def test_gantt_bars(chain_result):
    bars = chain_result.gantt_bars((75, 80, 85))

    assert [b.task_id for b in bars] == ["A", "B", "C"]
    assert bars[1].offset == 5.0
    assert bars[1].width == 3.0


def test_empty_result_views(chain_tasks):
    res = empty_result(chain_tasks, requested_runs=100, seed=9)

    assert res.is_empty
    assert res.summary() == {"requested_runs": 100, "valid_runs": 0, "task_count": 3}
    assert res.gantt_bars() == []
    assert res.task_table().empty
    assert list(res.task_table().columns)[:2] == ["TaskID", "Name"]
    assert res.runs_frame().empty
    assert res.total_durations.size == 0


def test_task_table_cruciality_column(uncertain_tasks):
    res = run_monte_carlo(uncertain_tasks, num_runs=200, seed=8)
    table = res.task_table().set_index("TaskID")

    expected = table["CriticalityIndex"] * table["DurationSensitivity"]
    assert list(table["Cruciality"]) == pytest.approx(list(expected))
    assert table.loc["2", "Cruciality"] == pytest.approx(res.analysis.cruciality["2"])
