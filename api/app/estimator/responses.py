"""Learner response kinds and their success weights.

A learner self-reports recall quality for one vocabulary item by picking
one of four response kinds.  Each kind maps to a fixed success weight in
[0, 1] that is folded into the Beta posterior as a fractional success.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


class ResponseKind(str, enum.Enum):
    know_sentence = "know_sentence"
    know_word = "know_word"
    uncertain = "uncertain"
    dont_know = "dont_know"


RESPONSE_WEIGHTS: dict[ResponseKind, float] = {
    ResponseKind.know_sentence: 1.0,
    ResponseKind.know_word: 2.0 / 3.0,
    ResponseKind.uncertain: 1.0 / 3.0,
    ResponseKind.dont_know: 0.0,
}


def response_weight(kind: ResponseKind) -> float:
    """Success weight for a response kind: 1, 2/3, 1/3 or 0."""
    return RESPONSE_WEIGHTS[kind]


@dataclass(frozen=True)
class ResponseEvent:
    """One learner action on one word.

    ``event_id`` identifies the action so the persistence layer can apply
    it at most once when a save is retried.
    """

    word_id: str
    kind: ResponseKind
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def weight(self) -> float:
        return response_weight(self.kind)
