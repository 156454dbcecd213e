"""
Compressor - Cascading Threshold Promotion

Turns principles into tiered axioms:

1. Try the N>=3 floor. Stop if it yields at least target_minimum_axioms.
2. Otherwise try N>=2, then N>=1 (every principle).
3. Assign each selected principle's tier from its own n_count
   (core >= 5, domain >= 3, emerging otherwise). The floor that found it
   has no say: a principle with N=6 picked up by the N>=1 pass is core.
4. Generate canonical notation per axiom; failures fall back to native.
5. Prune beyond the cognitive load cap and attach guardrail warnings.

The result is always the best available output. Thin evidence produces
warnings, never an exception.

Usage:
    from soulsynth.synthesis.compressor import promote

    result = await promote(store.all(), target_minimum_axioms=3)
    for axiom in result.axioms:
        print(axiom.tier, axiom.text)
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from soulsynth.errors import InvalidInputError
from soulsynth.models import (
    DIMENSIONS,
    Axiom,
    AxiomDerivation,
    Principle,
    tier_for_count,
    utcnow,
)
from soulsynth.synthesis.guardrails import (
    DEFAULT_COGNITIVE_LOAD_CAP,
    DEFAULT_EXPANSION_RATIO,
    GuardrailWarning,
    check_guardrails,
)
from soulsynth.synthesis.notation import NotationGenerator

logger = logging.getLogger(__name__)

# Strictest first
CASCADE_FLOORS: tuple[int, ...] = (3, 2, 1)
DEFAULT_TARGET_MINIMUM_AXIOMS = 3

NO_AXIOMS_NOTE = "no-axioms: no principles available for promotion"


@dataclass
class CascadeMetadata:
    effective_floor: int
    counts_by_floor: dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "effective_floor": self.effective_floor,
            "counts_by_floor": {str(k): v for k, v in self.counts_by_floor.items()},
        }


@dataclass
class PromotionResult:
    axioms: list[Axiom]
    warnings: list[GuardrailWarning]
    cascade: CascadeMetadata
    pruned: list[Axiom] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def has_warning(self, kind: str) -> bool:
        return any(w.kind == kind for w in self.warnings)


def generate_axiom_id() -> str:
    return f"ax_{uuid.uuid4().hex}"


def _sort_key(principle: Principle) -> tuple[int, int, int]:
    return (-principle.n_count, DIMENSIONS.index(principle.dimension), principle.sequence)


def candidates_at_floor(principles: Sequence[Principle], floor: int) -> list[Principle]:
    """Principles with n_count >= floor, in deterministic promotion order."""
    return sorted((p for p in principles if p.n_count >= floor), key=_sort_key)


def _validate(principles: Any) -> list[Principle]:
    if isinstance(principles, (str, bytes)) or not isinstance(principles, Sequence):
        raise InvalidInputError(
            f"promote() expects a sequence of principles, got {type(principles).__name__}"
        )
    for item in principles:
        if not isinstance(item, Principle):
            raise InvalidInputError(f"Expected Principle, got {type(item).__name__}")
    return list(principles)


def run_cascade(
    principles: Sequence[Principle],
    target_minimum_axioms: int = DEFAULT_TARGET_MINIMUM_AXIOMS,
    floors: Sequence[int] = CASCADE_FLOORS,
) -> tuple[list[Principle], CascadeMetadata]:
    """Select candidates by trying each floor in order until the target is met."""
    metadata = CascadeMetadata(effective_floor=floors[-1])
    selected: list[Principle] = []

    for floor in floors:
        selected = candidates_at_floor(principles, floor)
        metadata.counts_by_floor[floor] = len(selected)
        metadata.effective_floor = floor
        if len(selected) >= target_minimum_axioms:
            break

    return selected, metadata


async def _synthesize_axiom(principle: Principle, notation: NotationGenerator) -> Axiom:
    canonical = await notation.canonical_for(principle.text, principle.dimension)
    promoted_at = utcnow()
    return Axiom(
        id=generate_axiom_id(),
        text=principle.text,
        tier=tier_for_count(principle.n_count),
        dimension=principle.dimension,
        canonical=canonical,
        derivation=AxiomDerivation(principle_ids=(principle.id,), promoted_at=promoted_at),
        n_count=principle.n_count,
        history=({
            "type": "created",
            "timestamp": promoted_at.isoformat(),
            "details": f"Promoted from principle {principle.id} (N={principle.n_count})",
        },),
    )


async def promote(
    principles: Sequence[Principle],
    target_minimum_axioms: int = DEFAULT_TARGET_MINIMUM_AXIOMS,
    notation: NotationGenerator | None = None,
    expansion_ratio: float = DEFAULT_EXPANSION_RATIO,
    cognitive_load_cap: int = DEFAULT_COGNITIVE_LOAD_CAP,
) -> PromotionResult:
    """
    Promote principles to axioms with cascading evidence floors.

    Args:
        principles: Principle set from the store
        target_minimum_axioms: Stop relaxing once a floor yields this many
        notation: Notation generator (native only when None)
        expansion_ratio: Expansion guardrail ratio
        cognitive_load_cap: Maximum axioms kept; the rest are returned as pruned

    Returns:
        PromotionResult with axioms, warnings, cascade metadata and pruned axioms

    Raises:
        InvalidInputError: If principles is not a sequence of Principle
    """
    items = _validate(principles)
    if target_minimum_axioms < 1:
        raise InvalidInputError(f"target_minimum_axioms must be >= 1, got {target_minimum_axioms}")

    if not items:
        logger.info("No principles to promote")
        return PromotionResult(
            axioms=[],
            warnings=[],
            cascade=CascadeMetadata(effective_floor=CASCADE_FLOORS[0]),
            notes=[NO_AXIOMS_NOTE],
        )

    selected, cascade = run_cascade(items, target_minimum_axioms)
    logger.info(
        f"Cascade selected {len(selected)} of {len(items)} principles at N>={cascade.effective_floor}"
    )

    generator = notation or NotationGenerator(None)
    axioms = list(await asyncio.gather(*(_synthesize_axiom(p, generator) for p in selected)))

    notes: list[str] = []
    if generator.enabled:
        for axiom in axioms:
            if axiom.canonical.notated is None:
                notes.append(f"notation unavailable for {axiom.id}; native text kept")

    warnings = check_guardrails(
        axiom_count=len(axioms),
        principle_count=len(items),
        effective_floor=cascade.effective_floor,
        expansion_ratio=expansion_ratio,
        cognitive_load_cap=cognitive_load_cap,
        signal_count=sum(p.n_count for p in items),
    )

    # Selection order is already n_count descending, so the cap keeps the strongest
    pruned = axioms[cognitive_load_cap:]
    if pruned:
        axioms = axioms[:cognitive_load_cap]
        logger.info(f"Pruned {len(pruned)} axioms to meet cognitive load cap ({cognitive_load_cap})")

    return PromotionResult(
        axioms=axioms,
        warnings=warnings,
        cascade=cascade,
        pruned=pruned,
        notes=notes,
    )


__all__ = [
    "CASCADE_FLOORS",
    "CascadeMetadata",
    "DEFAULT_TARGET_MINIMUM_AXIOMS",
    "NO_AXIOMS_NOTE",
    "PromotionResult",
    "candidates_at_floor",
    "promote",
    "run_cascade",
]
