"""
Principle Store

Owns the working set of principles and the merge decision for each
incoming signal:

- Only principles of the signal's dimension are considered
- A match folds the signal in (n_count grows, text may be re-generalized)
- No match creates a new principle with n_count = 1
- A signal id already ingested is a no-op

Ingestions for one dimension are serialized so the earliest-match
tie-break sees a stable principle order. Different dimensions may ingest
concurrently.

Usage:
    from soulsynth.synthesis.principle_store import PrincipleStore

    store = PrincipleStore(classifier, threshold=0.85)
    result = await store.ingest(signal)
    principles = store.all()
"""

from __future__ import annotations

import asyncio
import logging
import math
import uuid
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from soulsynth.errors import InvalidInputError
from soulsynth.models import Dimension, Principle, Signal, utcnow
from soulsynth.synthesis.classifiers import MatchCandidate, SimilarityClassifier
from soulsynth.synthesis.generalizer import KeepOriginalGeneralizer, TextGeneralizer
from soulsynth.synthesis.matcher import DEFAULT_MATCH_THRESHOLD, find_best_match, validate_threshold

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    principle_id: str
    created: bool
    score: float = 1.0
    duplicate: bool = False


def generate_principle_id() -> str:
    return f"pri_{uuid.uuid4().hex}"


def _normalize(vector: list[float]) -> list[float]:
    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0:
        return vector
    return [v / norm for v in vector]


def _update_centroid(centroid: list[float], count: int, new: Iterable[float]) -> list[float]:
    """Running mean of member vectors, L2-normalized."""
    merged = [(c * count + n) / (count + 1) for c, n in zip(centroid, new)]
    return _normalize(merged)


class PrincipleStore:
    def __init__(
        self,
        classifier: SimilarityClassifier,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        generalizer: TextGeneralizer | None = None,
    ):
        self._classifier = classifier
        self._threshold = validate_threshold(threshold)
        self._generalizer: TextGeneralizer = generalizer or KeepOriginalGeneralizer()
        self._principles: dict[str, Principle] = {}
        self._by_dimension: dict[Dimension, list[str]] = defaultdict(list)
        self._signal_owner: dict[str, str] = {}
        self._claimed: set[str] = set()
        self._locks: dict[Dimension, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._sequence = 0

    @property
    def threshold(self) -> float:
        return self._threshold

    def set_threshold(self, value: float) -> None:
        """Change the match threshold for future ingestions. Existing counts are kept."""
        self._threshold = validate_threshold(value)

    def all(self) -> list[Principle]:
        """Principles in creation order."""
        return sorted(self._principles.values(), key=lambda p: p.sequence)

    def get(self, principle_id: str) -> Principle | None:
        return self._principles.get(principle_id)

    def __len__(self) -> int:
        return len(self._principles)

    def restore(self, principles: Iterable[Principle]) -> None:
        """
        Seed the store with previously persisted principles.

        Their signal ids count as already ingested, so re-feeding the same
        signals on an incremental run does not double-count.
        """
        for principle in sorted(principles, key=lambda p: p.sequence):
            if principle.id in self._principles:
                continue
            self._principles[principle.id] = principle
            self._by_dimension[principle.dimension].append(principle.id)
            for signal_id in principle.signal_ids:
                self._signal_owner[signal_id] = principle.id
            self._sequence = max(self._sequence, principle.sequence + 1)

    async def ingest(self, signal: Signal) -> IngestResult:
        """
        Fold a signal into the best-matching principle or start a new one.

        Raises:
            InvalidInputError: If signal is not a Signal
            CollaboratorError: If judgment scoring exhausted its retries
        """
        if not isinstance(signal, Signal):
            raise InvalidInputError(f"Expected Signal, got {type(signal).__name__}")

        owner = self._signal_owner.get(signal.id)
        if owner is not None or signal.id in self._claimed:
            logger.debug(f"Ignoring duplicate signal {signal.id}")
            return IngestResult(principle_id=owner or "", created=False, duplicate=True)

        # Claim before the first await so a concurrent duplicate sees it
        self._claimed.add(signal.id)
        try:
            async with self._locks[signal.dimension]:
                return await self._ingest_locked(signal)
        finally:
            self._claimed.discard(signal.id)

    async def _ingest_locked(self, signal: Signal) -> IngestResult:
        existing = [
            MatchCandidate(p.id, p.text, p.vector)
            for p in (self._principles[pid] for pid in self._by_dimension[signal.dimension])
        ]
        candidate = MatchCandidate(signal.id, signal.text, signal.vector)
        match = await find_best_match(candidate, existing, self._threshold, self._classifier)

        if match is None:
            principle = self._create(signal)
            return IngestResult(principle_id=principle.id, created=True)

        principle = self._principles[match.match_id]
        await self._reinforce(principle, signal, match.score)
        return IngestResult(principle_id=principle.id, created=False, score=match.score)

    def _create(self, signal: Signal) -> Principle:
        now = utcnow()
        principle = Principle(
            id=generate_principle_id(),
            text=signal.text,
            dimension=signal.dimension,
            signal_ids=[signal.id],
            sequence=self._sequence,
            strength=signal.confidence,
            vector=_normalize(list(signal.vector)) if signal.vector is not None else None,
            similarities={signal.id: 1.0},
            history=[{
                "type": "created",
                "timestamp": now.isoformat(),
                "details": f"Created from signal {signal.id}",
            }],
            created_at=now,
            updated_at=now,
        )
        self._sequence += 1
        self._principles[principle.id] = principle
        self._by_dimension[signal.dimension].append(principle.id)
        self._signal_owner[signal.id] = principle.id
        return principle

    async def _reinforce(self, principle: Principle, signal: Signal, score: float) -> None:
        count = principle.n_count
        new_text = await self._generalizer.generalize(principle.text, signal.text, principle.dimension)

        if principle.vector is not None and signal.vector is not None:
            principle.vector = _update_centroid(principle.vector, count, signal.vector)
        principle.signal_ids.append(signal.id)
        principle.similarities[signal.id] = score
        principle.strength = min(1.0, principle.strength + signal.confidence * 0.1)
        principle.text = new_text
        principle.updated_at = utcnow()
        principle.history.append({
            "type": "reinforced",
            "timestamp": principle.updated_at.isoformat(),
            "details": f"Reinforced by signal {signal.id} (similarity: {score:.3f})",
        })
        self._signal_owner[signal.id] = principle.id


__all__ = ["IngestResult", "PrincipleStore", "generate_principle_id"]
