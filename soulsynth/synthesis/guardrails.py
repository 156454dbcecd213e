"""
Synthesis Guardrails

Advisory checks on a promotion result. Warnings are attached to the result
and logged; they never block synthesis.

    expansion       - more axioms than expansion_ratio x input principles
    cognitive_load  - more axioms than half the signal count, or than the cap
    fallback        - the cascade had to drop below the N>=3 floor
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_EXPANSION_RATIO = 1.0
# Identity summaries stop being useful past a couple dozen statements
DEFAULT_COGNITIVE_LOAD_CAP = 25
AXIOMS_PER_SIGNAL = 0.5
STRICT_FLOOR = 3


@dataclass(frozen=True)
class GuardrailWarning:
    kind: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


def check_guardrails(
    axiom_count: int,
    principle_count: int,
    effective_floor: int,
    expansion_ratio: float = DEFAULT_EXPANSION_RATIO,
    cognitive_load_cap: int = DEFAULT_COGNITIVE_LOAD_CAP,
    signal_count: int | None = None,
) -> list[GuardrailWarning]:
    """
    Evaluate guardrails for one promotion.

    Args:
        axiom_count: Axioms selected by the cascade, before pruning
        principle_count: Principles given to the compressor
        effective_floor: N floor that produced the selection
        signal_count: Signals behind the principles; tightens the load limit
            to signal_count x AXIOMS_PER_SIGNAL when given
    """
    warnings: list[GuardrailWarning] = []

    ceiling = principle_count * expansion_ratio
    if axiom_count > ceiling:
        warnings.append(GuardrailWarning(
            "expansion",
            f"Expansion instead of compression: {axiom_count} axioms > "
            f"{ceiling:g} (principles x {expansion_ratio:g})",
        ))

    load_limit: float = cognitive_load_cap
    if signal_count is not None:
        load_limit = min(signal_count * AXIOMS_PER_SIGNAL, cognitive_load_cap)
    if axiom_count > load_limit:
        warnings.append(GuardrailWarning(
            "cognitive_load",
            f"Exceeds cognitive load limit: {axiom_count} axioms > {load_limit:g}",
        ))

    if axiom_count > 0 and effective_floor < STRICT_FLOOR:
        warnings.append(GuardrailWarning(
            "fallback",
            f"Fell back to N>={effective_floor}: sparse evidence in input",
        ))

    for warning in warnings:
        logger.warning(f"[guardrail] {warning.message}")

    return warnings


__all__ = [
    "DEFAULT_COGNITIVE_LOAD_CAP",
    "DEFAULT_EXPANSION_RATIO",
    "GuardrailWarning",
    "check_guardrails",
]
