"""Random draws for task durations and costs.

Every draw goes through a ``Sampler`` that owns its own
``numpy.random.Generator``; there is no module-level random state.
Out-of-domain parameters never raise. The sampler falls back to a nominal
value, logs a warning (once per distinct parameter set) and counts the
recovery in ``Sampler.recoveries``.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Optional

import numpy as np

from schedule_risk.config import PERT_GAMMA
from schedule_risk.cpm.model import DistributionType, Task
from schedule_risk.logging import get_logger

logger = get_logger(__name__)


class Sampler:
    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.recoveries: Counter = Counter()
        self._warned: set = set()

    # ---------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------

    def _recover(self, kind: str, key: tuple, message: str) -> None:
        self.recoveries[kind] += 1
        if (kind, key) not in self._warned:
            self._warned.add((kind, key))
            logger.warning(message)

    def uniform(self) -> float:
        """Uniform draw in [0, 1)."""
        return float(self.rng.random())

    def uniform_open(self) -> float:
        """Uniform draw in (0, 1)."""
        u = 0.0
        while u == 0.0:
            u = float(self.rng.random())
        return u

    # ---------------------------------------------------------
    # Families
    # ---------------------------------------------------------

    def triangular(self, low: float, mode: float, high: float) -> float:
        if high == low:
            return low
        span = high - low
        mode = max(low, min(mode, high))
        c = (mode - low) / span
        u = self.uniform()
        if u < c:
            return low + math.sqrt(u * span * (mode - low))
        return high - math.sqrt((1 - u) * span * (high - mode))

    def normal(self, mean: float, std_dev: float) -> float:
        if std_dev < 0:
            self._recover(
                "normal_negative_std",
                (mean, std_dev),
                f"Standard deviation cannot be negative ({std_dev}); returning mean {mean}.",
            )
            return mean
        if std_dev == 0:
            return mean
        # Box-Muller
        u = self.uniform_open()
        v = self.uniform_open()
        z = math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)
        return mean + std_dev * z

    def lognormal(self, mu: float, sigma: float) -> float:
        if sigma < 0:
            self._recover(
                "lognormal_negative_sigma",
                (mu, sigma),
                f"LogNormal sigma cannot be negative ({sigma}); returning exp(mu).",
            )
            return math.exp(mu)
        if sigma == 0:
            return math.exp(mu)
        return math.exp(self.normal(mu, sigma))

    def pert(self, low: float, likely: float, high: float, gamma: float = PERT_GAMMA) -> float:
        if high == low:
            return low
        if high < low or likely < low or likely > high:
            self._recover(
                "pert_invalid_order",
                (low, likely, high),
                f"Invalid PERT params (min={low}, likely={likely}, max={high}); returning likely.",
            )
            return likely

        span = high - low
        mu = (low + gamma * likely + high) / (gamma + 2)
        mu_minus_min = mu - low
        likely_minus_mu = likely - mu
        if likely_minus_mu == 0 or mu_minus_min == 0:
            self._recover(
                "pert_degenerate",
                (low, likely, high),
                f"PERT calculation instability for (min={low}, likely={likely}, max={high}); "
                "falling back to Triangular.",
            )
            return self.triangular(low, likely, high)

        alpha = (mu_minus_min * (2 * likely - low - high)) / (likely_minus_mu * span)
        beta = (alpha * (high - mu)) / mu_minus_min
        if not (math.isfinite(alpha) and math.isfinite(beta)) or alpha <= 0 or beta <= 0:
            self._recover(
                "pert_invalid_shape",
                (low, likely, high),
                f"Invalid Beta params (alpha={alpha}, beta={beta}); falling back to Triangular.",
            )
            return self.triangular(low, likely, high)

        return low + float(self.rng.beta(alpha, beta)) * span

    # ---------------------------------------------------------
    # Task-level dispatch
    # ---------------------------------------------------------

    def sample_duration(self, task: Task) -> float:
        dist = task.dist_type
        if dist is DistributionType.NORMAL:
            p = task.normal_params
            return self.normal(p.mean, p.std_dev)
        if dist is DistributionType.LOGNORMAL:
            p = task.lognormal_params
            return self.lognormal(p.mu, p.sigma)
        d = task.duration
        if dist is DistributionType.PERT:
            return self.pert(d.min, d.likely, d.max)
        return self.triangular(d.min, d.likely, d.max)

    def sample_cost(self, task: Task) -> float:
        c = task.cost
        return self.triangular(c.min, c.likely, c.max)
