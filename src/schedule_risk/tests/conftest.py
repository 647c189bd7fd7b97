import pytest

from schedule_risk.cpm.model import (
    Dependency,
    LogNormalParams,
    NormalParams,
    Task,
    ThreePointEstimate,
)


def _fixed_task(tid, duration, preds=(), cost=0.0, name=None, dep_type="FS", lag=0.0, wbs=None):
    """Task with a deterministic Triangular(d, d, d) duration."""
    return Task(
        id=tid,
        name=name or f"Task {tid}",
        duration=ThreePointEstimate.fixed(duration),
        cost=ThreePointEstimate.fixed(cost),
        dependencies=[Dependency(p, dep_type, lag) for p in preds],
        wbs=wbs,
    )


@pytest.fixture
def fixed_task():
    return _fixed_task


@pytest.fixture
def chain_tasks():
    """A (5) -> B (3) -> C (4)"""
    return [
        _fixed_task("A", 5, cost=100),
        _fixed_task("B", 3, ["A"], cost=200),
        _fixed_task("C", 4, ["B"], cost=300),
    ]


@pytest.fixture
def parallel_tasks():
    """
    START -> A (5) -> C (2)
    START -> B (8) -> C (2)
    """
    return [
        _fixed_task("A", 5, ["START"]),
        _fixed_task("B", 8, ["START"]),
        _fixed_task("C", 2, ["A", "B"]),
    ]


@pytest.fixture
def uncertain_tasks():
    """
    Design (PERT) -> Build (Triangular) -> Test (Normal)
    Design -SS+1-> Docs (LogNormal) -FF-> Test
    """
    return [
        Task(
            id="1",
            name="Design",
            wbs="1.1",
            dist_type="PERT",
            duration=ThreePointEstimate(2, 4, 10),
            cost=ThreePointEstimate(1000, 1500, 3000),
        ),
        Task(
            id="2",
            name="Build",
            wbs="1.2",
            dist_type="Triangular",
            duration=ThreePointEstimate(5, 8, 15),
            cost=ThreePointEstimate(4000, 5000, 9000),
            dependencies=[Dependency("1")],
        ),
        Task(
            id="3",
            name="Docs",
            wbs="1.3",
            dist_type="LogNormal",
            lognormal_params=LogNormalParams(1.0, 0.3),
            cost=ThreePointEstimate(200, 300, 400),
            dependencies=[Dependency("1", "SS", 1)],
        ),
        Task(
            id="4",
            name="Test",
            wbs="2",
            dist_type="Normal",
            normal_params=NormalParams(3, 0.5),
            cost=ThreePointEstimate(500, 600, 800),
            dependencies=[Dependency("2"), Dependency("3", "FF", 0)],
        ),
    ]
