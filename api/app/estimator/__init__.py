"""LexiLevel proficiency estimator.

Public API:
- ResponseKind / ResponseEvent: learner self-reports and their success weights
- PosteriorState: immutable Beta posterior with a uniform Beta(1, 1) prior
- compute_estimate / DisplayEstimate: percent point estimate, spread and 95% interval
- classify_confidence / ConfidenceLevel: qualitative confidence label
- estimated_vocab: vocabulary-size figure from response counts
- LearningSession: session-scoped owner of posterior, counts and sample count
- to_record / from_record: persisted record codec with prior fallback
"""

from app.estimator.confidence import ConfidenceLevel, classify_confidence
from app.estimator.estimate import DisplayEstimate, compute_estimate
from app.estimator.posterior import PosteriorState
from app.estimator.records import from_record, parse_record, to_record
from app.estimator.responses import ResponseEvent, ResponseKind, response_weight
from app.estimator.session import LearningSession
from app.estimator.vocabulary import estimated_vocab

__all__ = [
    "ConfidenceLevel",
    "classify_confidence",
    "DisplayEstimate",
    "compute_estimate",
    "PosteriorState",
    "from_record",
    "parse_record",
    "to_record",
    "ResponseEvent",
    "ResponseKind",
    "response_weight",
    "LearningSession",
    "estimated_vocab",
]
