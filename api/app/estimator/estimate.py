"""Display-ready proficiency estimate derived from a Beta posterior.

The interval is the normal approximation ``mean +/- 1.96 * sd`` clamped to
[0, 100].  It is cheap, symmetric and what learners are shown; the exact
Beta quantiles are available from ``PosteriorState.credible_interval``.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

from app.estimator.confidence import ConfidenceLevel, classify_confidence
from app.estimator.posterior import PosteriorState

Z_95 = 1.96


@dataclass(frozen=True)
class DisplayEstimate:
    """Non-authoritative view recomputed from the posterior on every query."""

    point_estimate_pct: float
    std_dev_pct: float
    ci_lower_pct: float
    ci_upper_pct: float
    confidence: ConfidenceLevel
    sample_count: int

    @property
    def margin_of_error_pct(self) -> float:
        return Z_95 * self.std_dev_pct

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["confidence"] = self.confidence.value
        return data


def compute_estimate(state: PosteriorState, sample_count: int) -> DisplayEstimate:
    """Point estimate, spread, 95% interval and confidence label, in percent.

    Parameters
    ----------
    state : PosteriorState
        Current posterior.
    sample_count : int
        Number of responses applied so far (feeds the confidence label).

    Returns
    -------
    DisplayEstimate
    """
    ab = state.alpha + state.beta
    point = state.alpha / ab * 100
    variance = (state.alpha * state.beta) / (ab * ab * (ab + 1))
    std_dev = math.sqrt(variance) * 100
    margin = Z_95 * std_dev

    return DisplayEstimate(
        point_estimate_pct=point,
        std_dev_pct=std_dev,
        ci_lower_pct=max(0.0, point - margin),
        ci_upper_pct=min(100.0, point + margin),
        confidence=classify_confidence(sample_count, std_dev),
        sample_count=sample_count,
    )
