"""Qualitative confidence label for a proficiency estimate.

The label depends on the number of responses applied (not their weight
sum) and on the posterior standard deviation in percentage points.  The
cutoffs are fixed design constants.
"""

from __future__ import annotations

import enum

MIN_SAMPLES = 3
LOW_STD_DEV_PCT = 20.0
MEDIUM_STD_DEV_PCT = 12.0
HIGH_STD_DEV_PCT = 7.0


class ConfidenceLevel(str, enum.Enum):
    very_low = "Very Low"
    low = "Low"
    medium = "Medium"
    high = "High"
    very_high = "Very High"


def classify_confidence(sample_count: int, std_dev_pct: float) -> ConfidenceLevel:
    """First matching rule wins; too few responses overrides any spread."""
    if sample_count < MIN_SAMPLES:
        return ConfidenceLevel.very_low
    if std_dev_pct > LOW_STD_DEV_PCT:
        return ConfidenceLevel.low
    if std_dev_pct > MEDIUM_STD_DEV_PCT:
        return ConfidenceLevel.medium
    if std_dev_pct > HIGH_STD_DEV_PCT:
        return ConfidenceLevel.high
    return ConfidenceLevel.very_high
