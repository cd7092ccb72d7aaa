"""Beta posterior over a learner's proficiency.

The prior is uniform, Beta(1, 1).  Each response contributes a fractional
success ``w`` in [0, 1]: alpha gains ``w`` and beta gains ``1 - w``.  After
N responses the posterior is Beta(1 + sum(w), 1 + N - sum(w)) whatever the
order of the responses.

Like the conversion-rate model this is built on, the state is immutable:
``update()`` returns a *new* ``PosteriorState``.
"""

from __future__ import annotations

import math

import numpy as np
from scipy import stats as sp_stats

PRIOR_ALPHA = 1.0
PRIOR_BETA = 1.0


def hdi_from_samples(samples: np.ndarray, credible_mass: float = 0.95) -> tuple[float, float]:
    """Highest Density Interval from Monte Carlo samples.

    Shortest interval among the sorted samples containing ``credible_mass``
    of them.
    """
    sorted_samples = np.sort(samples)
    n = len(sorted_samples)
    interval_size = int(np.ceil(credible_mass * n))
    if interval_size >= n:
        return (float(sorted_samples[0]), float(sorted_samples[-1]))

    widths = sorted_samples[interval_size:] - sorted_samples[: n - interval_size]
    best_idx = int(np.argmin(widths))
    return (float(sorted_samples[best_idx]), float(sorted_samples[best_idx + interval_size - 1]))


class PosteriorState:
    """Immutable Beta(alpha, beta) posterior.

    Parameters
    ----------
    alpha : float
        Prior plus accumulated success weight.  Must be >= 1.
    beta : float
        Prior plus accumulated failure weight.  Must be >= 1.
    """

    __slots__ = ("alpha", "beta")

    def __init__(self, alpha: float = PRIOR_ALPHA, beta: float = PRIOR_BETA) -> None:
        if not (math.isfinite(alpha) and math.isfinite(beta)):
            raise ValueError("alpha and beta must be finite")
        if alpha < PRIOR_ALPHA or beta < PRIOR_BETA:
            raise ValueError("alpha and beta must be at least 1")
        self.alpha = float(alpha)
        self.beta = float(beta)

    @classmethod
    def prior(cls) -> PosteriorState:
        """The uniform Beta(1, 1) prior."""
        return cls(PRIOR_ALPHA, PRIOR_BETA)

    @classmethod
    def from_observations(cls, weight_sum: float, n: int) -> PosteriorState:
        """Closed-form posterior after ``n`` observations totalling ``weight_sum``."""
        if n < 0:
            raise ValueError("n must be non-negative")
        if not 0 <= weight_sum <= n:
            raise ValueError("weight_sum must lie in [0, n]")
        return cls(PRIOR_ALPHA + weight_sum, PRIOR_BETA + n - weight_sum)

    # ------------------------------------------------------------------
    # Posterior update (returns new instance)
    # ------------------------------------------------------------------

    def update(self, weight: float) -> PosteriorState:
        """Return a **new** state with one weighted observation folded in."""
        if not 0.0 <= weight <= 1.0:
            raise ValueError("weight must lie in [0, 1]")
        return PosteriorState(self.alpha + weight, self.beta + (1.0 - weight))

    def reset(self) -> PosteriorState:
        return PosteriorState.prior()

    @property
    def is_prior(self) -> bool:
        return self.alpha == PRIOR_ALPHA and self.beta == PRIOR_BETA

    # ------------------------------------------------------------------
    # Posterior summaries (0-1 scale)
    # ------------------------------------------------------------------

    def mean(self) -> float:
        """alpha / (alpha + beta)"""
        return self.alpha / (self.alpha + self.beta)

    def variance(self) -> float:
        """Var = alpha * beta / ((alpha + beta)^2 * (alpha + beta + 1))

        alpha + beta + 1 >= 3, so the denominator never vanishes.
        """
        ab = self.alpha + self.beta
        return (self.alpha * self.beta) / (ab * ab * (ab + 1))

    def std_dev(self) -> float:
        return math.sqrt(self.variance())

    def credible_interval(self, width: float = 0.95) -> tuple[float, float]:
        """Exact equal-tailed credible interval from Beta quantiles.

        Parameters
        ----------
        width : float
            Width of the credible interval, e.g. 0.95 for 95%.

        Returns
        -------
        tuple[float, float]
            (lower_bound, upper_bound) on the 0-1 scale.
        """
        if not 0 < width < 1:
            raise ValueError("width must be between 0 and 1 exclusive")
        lower_tail = (1 - width) / 2
        dist = sp_stats.beta(self.alpha, self.beta)
        return (float(dist.ppf(lower_tail)), float(dist.ppf(1 - lower_tail)))

    def sample(self, n: int, seed: int | None = None) -> np.ndarray:
        """Draw *n* proficiency samples in [0, 1] from the posterior."""
        rng = np.random.default_rng(seed)
        return rng.beta(self.alpha, self.beta, size=n)

    def hdi(self, credible_mass: float = 0.95, n_samples: int = 50_000, seed: int = 42) -> tuple[float, float]:
        """Highest Density Interval of the posterior via Monte Carlo.

        Narrower than the equal-tailed interval when the posterior is skewed,
        i.e. for learners near either end of the scale.
        """
        if not 0 < credible_mass < 1:
            raise ValueError("credible_mass must be between 0 and 1 exclusive")
        return hdi_from_samples(self.sample(n_samples, seed=seed), credible_mass)

    # ------------------------------------------------------------------
    # Comparison / repr
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PosteriorState):
            return NotImplemented
        return self.alpha == other.alpha and self.beta == other.beta

    def __hash__(self) -> int:
        return hash((self.alpha, self.beta))

    def __repr__(self) -> str:
        return f"PosteriorState(alpha={self.alpha:.3f}, beta={self.beta:.3f})"
