import pandas as pd
import pytest

from schedule_risk.cli import build_parser, main

CSV = """TaskID,Name,Distribution,Min,Likely,Max,CostMin,CostLikely,CostMax,Predecessors
1,Design,PERT,2,4,10,1000,1500,3000,
2,Build,Triangular,5,8,15,4000,5000,9000,1
3,Test,Triangular,1,2,4,500,600,800,2
"""


@pytest.fixture
def task_csv(tmp_path):
    path = tmp_path / "tasks.csv"
    path.write_text(CSV)
    return path


def test_parser_defaults(task_csv):
    args = build_parser().parse_args([str(task_csv)])

    assert args.runs == 500
    assert args.seed is None
    assert args.percentiles == [10, 25, 50, 75, 80, 90, 95]


def test_parser_rejects_bad_percentiles(task_csv):
    with pytest.raises(SystemExit):
        build_parser().parse_args([str(task_csv), "--percentiles", "10,abc"])


def test_main_prints_summary_and_writes_table(task_csv, tmp_path, capsys):
    out_csv = tmp_path / "table.csv"
    code = main(
        [str(task_csv), "--runs", "200", "--seed", "1", "--percentiles", "10,50,90",
         "--confidence", "90", "--output", str(out_csv)]
    )
    captured = capsys.readouterr()

    assert code == 0
    assert "Simulation Results (200/200 valid runs)" in captured.out
    assert "P50" in captured.out
    assert "At a 90% confidence level" in captured.out

    table = pd.read_csv(out_csv, dtype={"TaskID": str})
    assert list(table["TaskID"]) == ["1", "2", "3"]
    assert (table["CriticalityIndex"] == 1.0).all()


def test_main_seeded_output_repeats(task_csv, capsys):
    main([str(task_csv), "--runs", "50", "--seed", "4"])
    first = capsys.readouterr().out
    main([str(task_csv), "--runs", "50", "--seed", "4", "--workers", "2"])
    second = capsys.readouterr().out

    assert first == second


def test_main_rejects_cycle(tmp_path, capsys):
    path = tmp_path / "cycle.csv"
    path.write_text("TaskID,Duration,Predecessors\n1,3,2\n2,4,1\n")

    assert main([str(path)]) == 1
    assert "DependencyCycle" in capsys.readouterr().err


def test_main_reports_load_errors(tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text("Name,Duration\nA,3\n")

    assert main([str(path)]) == 1
    assert "Missing required column" in capsys.readouterr().err


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.csv")]) == 1
    assert "Error loading tasks" in capsys.readouterr().err
