"""
Similarity Classifiers

Pluggable scoring sources for the matcher. Both implementations return a
score on the same 0-1 scale so thresholds mean the same thing whichever is
configured:

    cosine   - cosine similarity over fixed-dimension vectors (negatives clamp to 0)
    judgment - semantic-equivalence verdict from the classification collaborator

Selection happens once, from configuration, in make_classifier().

Usage:
    from soulsynth.synthesis.classifiers import make_classifier

    classifier = make_classifier("cosine")
    score = await classifier.score(candidate, existing)
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from soulsynth.errors import DimensionMismatchError, InvalidInputError
from soulsynth.synthesis.collaborators import (
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    LLMCollaborator,
    call_with_retry,
)

logger = logging.getLogger(__name__)

# Verbal confidence labels some collaborators return instead of numbers
CONFIDENCE_LABELS = {"high": 0.9, "medium": 0.7, "low": 0.5}

EQUIVALENCE_CATEGORIES = ("equivalent", "distinct")

EQUIVALENCE_PROMPT = """Compare these two statements for semantic equivalence. Do they express the same core meaning, even if worded differently?

Statement A: {left}

Statement B: {right}"""


@dataclass(frozen=True)
class MatchCandidate:
    """Anything the matcher can compare: an id, its text, and an optional vector."""

    id: str
    text: str
    vector: Sequence[float] | None = None


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def coerce_confidence(value: float | str | None) -> float:
    """Normalize a numeric or labelled confidence to 0-1."""
    if value is None:
        return 0.0
    if isinstance(value, str):
        return CONFIDENCE_LABELS.get(value.strip().lower(), 0.0)
    return max(0.0, min(1.0, float(value)))


class SimilarityClassifier(ABC):
    """Scores how strongly a candidate expresses the same idea as an existing item."""

    name: str = "base"

    @abstractmethod
    async def score(self, candidate: MatchCandidate, existing: MatchCandidate) -> float:
        """Return a 0-1 similarity score."""


class CosineSimilarityClassifier(SimilarityClassifier):
    name = "cosine"

    async def score(self, candidate: MatchCandidate, existing: MatchCandidate) -> float:
        if candidate.vector is None or existing.vector is None:
            missing = candidate.id if candidate.vector is None else existing.id
            raise InvalidInputError(f"Cosine scoring requires a vector for {missing}")
        return max(0.0, cosine_similarity(candidate.vector, existing.vector))


class JudgmentSimilarityClassifier(SimilarityClassifier):
    """
    Asks the collaborator whether two statements are equivalent.

    A "distinct" verdict scores 0 regardless of the reported confidence.
    Each comparison is bounded by the timeout and retried before raising
    CollaboratorError.
    """

    name = "judgment"

    def __init__(
        self,
        collaborator: LLMCollaborator,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retries: int = DEFAULT_RETRIES,
    ):
        self._collaborator = collaborator
        self._timeout = timeout
        self._retries = retries

    async def score(self, candidate: MatchCandidate, existing: MatchCandidate) -> float:
        prompt = EQUIVALENCE_PROMPT.format(left=candidate.text, right=existing.text)
        result = await call_with_retry(
            lambda: self._collaborator.classify(
                prompt,
                EQUIVALENCE_CATEGORIES,
                "Semantic equivalence for principle matching",
            ),
            operation=f"similarity({candidate.id})",
            timeout=self._timeout,
            retries=self._retries,
        )
        if (result.category or "").strip().lower() != "equivalent":
            return 0.0
        return coerce_confidence(result.confidence)


def make_classifier(
    kind: str,
    collaborator: LLMCollaborator | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    retries: int = DEFAULT_RETRIES,
) -> SimilarityClassifier:
    """
    Build the configured classifier.

    Args:
        kind: "cosine" or "judgment" (matching.classifier in config)
        collaborator: Required for "judgment"

    Raises:
        InvalidInputError: Unknown kind, or judgment without a collaborator
    """
    if kind == "cosine":
        return CosineSimilarityClassifier()
    if kind == "judgment":
        if collaborator is None:
            raise InvalidInputError("The judgment classifier requires a collaborator")
        return JudgmentSimilarityClassifier(collaborator, timeout=timeout, retries=retries)
    raise InvalidInputError(f"Unknown similarity classifier: {kind}")


__all__ = [
    "CONFIDENCE_LABELS",
    "CosineSimilarityClassifier",
    "JudgmentSimilarityClassifier",
    "MatchCandidate",
    "SimilarityClassifier",
    "coerce_confidence",
    "cosine_similarity",
    "make_classifier",
]
