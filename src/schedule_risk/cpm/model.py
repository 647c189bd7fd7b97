"""Task records consumed by the scheduler and the Monte Carlo engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

START = "START"
END = "END"
RESERVED_IDS = frozenset({START, END})


class DependencyType(str, Enum):
    """Precedence relation between a predecessor and a successor."""

    FS = "FS"  # finish-to-start
    SS = "SS"  # start-to-start
    FF = "FF"  # finish-to-finish
    SF = "SF"  # start-to-finish

    @classmethod
    def parse(cls, value) -> "DependencyType":
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        if not text:
            return cls.FS
        try:
            return cls(text)
        except ValueError:
            raise ValueError(
                f"Unknown dependency type {value!r}; expected one of FS, SS, FF, SF"
            ) from None


class DistributionType(str, Enum):
    """Families a task duration can be drawn from."""

    TRIANGULAR = "Triangular"
    PERT = "PERT"
    NORMAL = "Normal"
    LOGNORMAL = "LogNormal"

    @classmethod
    def parse(cls, value) -> "DistributionType":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if not text:
            return cls.TRIANGULAR
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(
            f"Unknown distribution {value!r}; expected one of "
            + ", ".join(m.value for m in cls)
        )


@dataclass(frozen=True)
class ThreePointEstimate:
    """Optimistic / most likely / pessimistic values."""

    min: float = 0.0
    likely: float = 0.0
    max: float = 0.0

    @classmethod
    def fixed(cls, value: float) -> "ThreePointEstimate":
        return cls(value, value, value)

    @property
    def is_ordered(self) -> bool:
        return self.min <= self.likely <= self.max


@dataclass(frozen=True)
class NormalParams:
    mean: float = 0.0
    std_dev: float = 0.0


@dataclass(frozen=True)
class LogNormalParams:
    """Parameters of the underlying normal on the log scale."""

    mu: float = 0.0
    sigma: float = 0.0


@dataclass(frozen=True)
class Dependency:
    predecessor_id: str
    type: DependencyType = DependencyType.FS
    lag: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "predecessor_id", str(self.predecessor_id))
        object.__setattr__(self, "type", DependencyType.parse(self.type))
        object.__setattr__(self, "lag", float(self.lag))


@dataclass(frozen=True)
class Task:
    """A schedulable activity with uncertain duration and cost.

    Only the parameter record matching ``dist_type`` is read when sampling
    the duration; cost is always drawn from the triangular ``cost`` estimate.
    """

    id: str
    name: str = ""
    dist_type: DistributionType = DistributionType.TRIANGULAR
    duration: ThreePointEstimate = field(default_factory=ThreePointEstimate)
    normal_params: NormalParams = field(default_factory=NormalParams)
    lognormal_params: LogNormalParams = field(default_factory=LogNormalParams)
    cost: ThreePointEstimate = field(default_factory=ThreePointEstimate)
    dependencies: Tuple[Dependency, ...] = ()
    wbs: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "dist_type", DistributionType.parse(self.dist_type))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        if not self.name:
            object.__setattr__(self, "name", f"Task {self.id}")

    @property
    def label(self) -> str:
        """Display label, e.g. ``"Design (1.2)"``."""
        return f"{self.name} ({self.wbs})" if self.wbs else self.name

    @property
    def predecessor_ids(self) -> Tuple[str, ...]:
        return tuple(d.predecessor_id for d in self.dependencies)
