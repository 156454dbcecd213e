"""
Compression metrics for a synthesis run.

Token counts are a word-based approximation (words x 1.3); they are only
compared against each other, never against a model's tokenizer.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from soulsynth.models import DIMENSIONS, Axiom, Principle, Signal


def count_tokens(text: str) -> int:
    return math.ceil(len(text.split()) * 1.3)


def compression_ratio(original_tokens: int, compressed_tokens: int) -> float:
    return original_tokens / max(1, compressed_tokens)


@dataclass
class DimensionCoverage:
    dimension: str
    signals: int
    principles: int
    axioms: int


@dataclass
class SynthesisMetrics:
    signal_count: int = 0
    principle_count: int = 0
    axiom_count: int = 0
    reinforced_count: int = 0
    original_tokens: int = 0
    compressed_tokens: int = 0
    effective_floor: int | None = None
    coverage: list[DimensionCoverage] = field(default_factory=list)

    @property
    def compression_ratio(self) -> float:
        return compression_ratio(self.original_tokens, self.compressed_tokens)

    @property
    def convergence_rate(self) -> float:
        return self.reinforced_count / self.signal_count if self.signal_count else 0.0

    @property
    def dimensions_covered(self) -> int:
        return sum(1 for c in self.coverage if c.axioms > 0)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["compression_ratio"] = round(self.compression_ratio, 2)
        data["convergence_rate"] = round(self.convergence_rate, 3)
        data["dimensions_covered"] = self.dimensions_covered
        return data


def dimension_coverage(
    signals: Sequence[Signal],
    principles: Sequence[Principle],
    axioms: Sequence[Axiom],
) -> list[DimensionCoverage]:
    return [
        DimensionCoverage(
            dimension=dim.value,
            signals=sum(1 for s in signals if s.dimension == dim),
            principles=sum(1 for p in principles if p.dimension == dim),
            axioms=sum(1 for a in axioms if a.dimension == dim),
        )
        for dim in DIMENSIONS
    ]


def calculate_metrics(
    signals: Sequence[Signal],
    principles: Sequence[Principle],
    axioms: Sequence[Axiom],
    effective_floor: int | None = None,
) -> SynthesisMetrics:
    return SynthesisMetrics(
        signal_count=len(signals),
        principle_count=len(principles),
        axiom_count=len(axioms),
        reinforced_count=sum(p.n_count - 1 for p in principles),
        original_tokens=sum(count_tokens(s.text) for s in signals),
        compressed_tokens=sum(count_tokens(a.text) for a in axioms),
        effective_floor=effective_floor,
        coverage=dimension_coverage(signals, principles, axioms),
    )


__all__ = [
    "DimensionCoverage",
    "SynthesisMetrics",
    "calculate_metrics",
    "compression_ratio",
    "count_tokens",
    "dimension_coverage",
]
