"""Persisted record layout for a ``LearningSession``.

The record is a plain JSON-compatible dict::

    {"alpha": float, "beta": float,
     "counts": {"know_sentence": int, ...},
     "sampleCount": int}

Loading never raises: a missing or malformed record yields a session in
the prior state, so a learner sees an under-informed estimate rather than
an error.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from app.estimator.posterior import PosteriorState
from app.estimator.responses import RESPONSE_WEIGHTS, ResponseKind
from app.estimator.session import LearningSession

logger = logging.getLogger(__name__)


class MalformedRecord(ValueError):
    pass


def to_record(session: LearningSession) -> dict[str, Any]:
    return {
        "alpha": session.state.alpha,
        "beta": session.state.beta,
        "counts": {kind.value: count for kind, count in session.counts.items()},
        "sampleCount": session.sample_count,
    }


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecord(f"{name} is not a number")
    try:
        value = float(value)
    except OverflowError as exc:
        raise MalformedRecord(f"{name} is out of range") from exc
    if not math.isfinite(value):
        raise MalformedRecord(f"{name} is not finite")
    return value


def _as_count(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedRecord(f"{name} is not an integer")
    if value < 0:
        raise MalformedRecord(f"{name} is negative")
    return value


def parse_record(raw: Any) -> LearningSession:
    """Strict parse of a persisted record.

    Raises
    ------
    MalformedRecord
        If any field is missing, mistyped or inconsistent.
    """
    if not isinstance(raw, dict):
        raise MalformedRecord("record is not a mapping")

    try:
        alpha = _as_float(raw["alpha"], "alpha")
        beta = _as_float(raw["beta"], "beta")
        raw_counts = raw["counts"]
        sample_count = _as_count(raw["sampleCount"], "sampleCount")
    except KeyError as exc:
        raise MalformedRecord(f"missing field {exc.args[0]}") from exc

    if not isinstance(raw_counts, dict):
        raise MalformedRecord("counts is not a mapping")
    counts: dict[ResponseKind, int] = {}
    for key, value in raw_counts.items():
        try:
            kind = ResponseKind(key)
        except ValueError as exc:
            raise MalformedRecord(f"unknown response kind {key!r}") from exc
        counts[kind] = _as_count(value, f"counts[{key}]")

    if sum(counts.values()) != sample_count:
        raise MalformedRecord("counts do not add up to sampleCount")

    # alpha and beta are fully determined by the counts: alpha + beta = 2 + N
    # and alpha = 1 + sum(count * weight).
    if not math.isclose(alpha + beta, 2 + sample_count, rel_tol=1e-9, abs_tol=1e-9):
        raise MalformedRecord("alpha + beta does not match sampleCount")
    weight_sum = sum(count * RESPONSE_WEIGHTS[kind] for kind, count in counts.items())
    if not math.isclose(alpha, 1 + weight_sum, rel_tol=1e-9, abs_tol=1e-9):
        raise MalformedRecord("alpha does not match the response counts")

    try:
        state = PosteriorState(alpha, beta)
    except ValueError as exc:
        raise MalformedRecord(str(exc)) from exc

    return LearningSession(state=state, counts=counts, sample_count=sample_count)


def from_record(raw: Any) -> LearningSession:
    """Lenient load: falls back to the prior when the record is unusable."""
    if raw is None:
        return LearningSession()
    try:
        return parse_record(raw)
    except MalformedRecord as exc:
        logger.warning("Discarding malformed session record: %s", exc)
        return LearningSession()
