"""
Similarity Matcher

Decides match-or-new for a candidate against an ordered set of existing
items. The existing sequence must be in creation order: on equal scores the
earliest item wins, so repeated runs over the same input always fold into
the same principle.

Usage:
    from soulsynth.synthesis.matcher import find_best_match

    match = await find_best_match(candidate, existing, 0.85, classifier)
    if match:
        print(match.match_id, match.score)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from soulsynth.errors import InvalidInputError
from soulsynth.synthesis.classifiers import MatchCandidate, SimilarityClassifier

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.85


@dataclass(frozen=True)
class MatchResult:
    match_id: str
    score: float


def validate_threshold(threshold: float) -> float:
    if not 0.0 <= threshold <= 1.0:
        raise InvalidInputError(f"Similarity threshold must be within 0-1, got {threshold}")
    return threshold


async def find_best_match(
    candidate: MatchCandidate | None,
    existing: Sequence[MatchCandidate],
    threshold: float,
    classifier: SimilarityClassifier,
) -> MatchResult | None:
    """
    Find the highest-scoring existing item at or above the threshold.

    Args:
        candidate: Item to place
        existing: Items to compare against, oldest first
        threshold: Minimum score for a match (0-1)
        classifier: Scoring source

    Returns:
        MatchResult for the best item, or None when nothing clears the threshold

    Raises:
        InvalidInputError: Empty candidate or out-of-range threshold
        DimensionMismatchError: Vector lengths differ (cosine scoring)
    """
    if candidate is None or not candidate.id or not candidate.text or not candidate.text.strip():
        raise InvalidInputError("Match candidate must have an id and non-empty text")
    validate_threshold(threshold)

    if not existing:
        return None

    best: MatchResult | None = None
    for item in existing:
        score = await classifier.score(candidate, item)
        # Strict > keeps the earliest item on ties
        if score >= threshold and (best is None or score > best.score):
            best = MatchResult(match_id=item.id, score=score)

    decision = "MATCH" if best else "NO_MATCH"
    logger.debug(
        f"[matching] {decision}: candidate={candidate.id} "
        f"score={best.score if best else 0.0:.3f} threshold={threshold:.2f}"
    )
    return best


__all__ = [
    "DEFAULT_MATCH_THRESHOLD",
    "MatchResult",
    "find_best_match",
    "validate_threshold",
]
