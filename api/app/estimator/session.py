"""Session-scoped owner of a learner's posterior and response counts.

A ``LearningSession`` is created in the prior phase, folds in one response
at a time, and can be reset back to the prior.  It performs no I/O;
persistence goes through ``app.estimator.records`` and
``app.estimator.store``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from app.estimator.estimate import DisplayEstimate, compute_estimate
from app.estimator.posterior import PosteriorState
from app.estimator.responses import ResponseEvent, ResponseKind, response_weight
from app.estimator.vocabulary import empty_counts, estimated_vocab


class LearningSession:
    """Posterior, per-kind counts and sample count for one learner.

    Parameters
    ----------
    state : PosteriorState | None
        Starting posterior.  Defaults to the uniform prior.
    counts : Mapping[ResponseKind, int] | None
        Starting per-kind counts.  Defaults to all zero.
    sample_count : int
        Number of responses already applied.
    """

    __slots__ = ("state", "counts", "sample_count")

    def __init__(
        self,
        state: PosteriorState | None = None,
        counts: Mapping[ResponseKind, int] | None = None,
        sample_count: int = 0,
    ) -> None:
        self.state = state if state is not None else PosteriorState.prior()
        self.counts = empty_counts()
        if counts:
            self.counts.update(counts)
        self.sample_count = sample_count

    @property
    def phase(self) -> str:
        return "prior" if self.sample_count == 0 else "updated"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def apply_kind(self, kind: ResponseKind) -> LearningSession:
        self.state = self.state.update(response_weight(kind))
        self.counts[kind] += 1
        self.sample_count += 1
        return self

    def apply(self, event: ResponseEvent) -> LearningSession:
        """Fold one response event into the session."""
        return self.apply_kind(event.kind)

    def replay(self, events: Iterable[ResponseEvent]) -> LearningSession:
        for event in events:
            self.apply(event)
        return self

    def reset(self) -> LearningSession:
        self.state = self.state.reset()
        self.counts = empty_counts()
        self.sample_count = 0
        return self

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def estimate(self) -> DisplayEstimate:
        return compute_estimate(self.state, self.sample_count)

    def estimated_vocab(self) -> int:
        return estimated_vocab(self.counts)

    def export_payload(self) -> dict[str, Any]:
        """Fields handed to the JSON exporter.

        ``level``, ``estimatedVocab`` and ``confidence`` are the export
        contract; ``sampleCount`` and ``counts`` ride along for diagnostics.
        """
        estimate = self.estimate()
        return {
            "level": estimate.point_estimate_pct,
            "estimatedVocab": self.estimated_vocab(),
            "confidence": estimate.confidence.value,
            "sampleCount": self.sample_count,
            "counts": {kind.value: count for kind, count in self.counts.items()},
        }

    def __repr__(self) -> str:
        return f"LearningSession(state={self.state!r}, sample_count={self.sample_count})"
