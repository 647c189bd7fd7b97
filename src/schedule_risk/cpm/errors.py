"""Exceptions raised by the scheduling and simulation engine."""

from typing import Iterable, Tuple


class ScheduleError(Exception):
    """Base class for schedule_risk errors."""


class InvalidTaskError(ScheduleError, ValueError):
    """The task list cannot form a schedule (duplicate ids, self links, ...)."""


class CycleError(ScheduleError, ValueError):
    """The dependency graph contains a cycle."""

    def __init__(self, unordered: Iterable[str] = ()):
        self.unordered: Tuple[str, ...] = tuple(unordered)
        msg = "Graph is not acyclic; cannot compute CPM."
        if self.unordered:
            msg += " Tasks on or behind a cycle: " + ", ".join(self.unordered)
        super().__init__(msg)


class SimulationCancelled(ScheduleError):
    """A batch was cancelled between trials."""
