"""Rough vocabulary-size figure from per-kind response counts.

Independent of the Beta posterior: each response kind is credited with a
fixed number of words.
"""

from __future__ import annotations

from collections.abc import Mapping

from app.estimator.responses import ResponseKind

WORDS_PER_RESPONSE: dict[ResponseKind, int] = {
    ResponseKind.know_sentence: 150,
    ResponseKind.know_word: 100,
    ResponseKind.uncertain: 50,
    ResponseKind.dont_know: 0,
}


def empty_counts() -> dict[ResponseKind, int]:
    return {kind: 0 for kind in ResponseKind}


def estimated_vocab(counts: Mapping[ResponseKind, int]) -> int:
    """sum(count * words) over response kinds; kinds absent from ``counts`` add 0."""
    return sum(counts.get(kind, 0) * words for kind, words in WORDS_PER_RESPONSE.items())
