"""
Soul Document Generator

Renders promoted axioms into the canonical markdown document:

    # SOUL.md
    ## Core (N>=5)
    ## Domain (N>=3)
    ## Emerging (N<3)
    ## Provenance        level counts
    ## Metrics           compression and coverage

Axioms are listed in the order the compressor produced them. The
requested notation is used where an axiom has one; anything else falls
back to native text.

Usage:
    from soulsynth.soul_generator import render_document

    content = render_document(result.axioms, metrics, fmt=NotationFormat.MATH)
"""

from __future__ import annotations

import difflib
from collections.abc import Sequence
from datetime import datetime

from soulsynth.models import DIMENSIONS, Axiom, AxiomTier, NotationFormat, utcnow
from soulsynth.synthesis.guardrails import GuardrailWarning
from soulsynth.synthesis.metrics import SynthesisMetrics

DEFAULT_TITLE = "SOUL.md"

TIER_HEADINGS: dict[AxiomTier, str] = {
    AxiomTier.CORE: "Core (N>=5)",
    AxiomTier.DOMAIN: "Domain (N>=3)",
    AxiomTier.EMERGING: "Emerging (N<3)",
}


def format_axiom(axiom: Axiom, fmt: NotationFormat = NotationFormat.NATIVE) -> str:
    rendered = axiom.canonical.render(fmt)
    line = f"- {rendered} (N={axiom.n_count}, {axiom.dimension.value})"
    if fmt is not NotationFormat.NATIVE and axiom.canonical.notated:
        line += f"\n  - {axiom.canonical.native}"
    return line


def render_document(
    axioms: Sequence[Axiom],
    metrics: SynthesisMetrics,
    fmt: NotationFormat = NotationFormat.NATIVE,
    warnings: Sequence[GuardrailWarning] = (),
    title: str = DEFAULT_TITLE,
    generated_at: datetime | None = None,
) -> str:
    """Render the full document as markdown text."""
    lines: list[str] = [f"# {title}", ""]
    lines.append("*Identity distilled from accumulated memory, with provenance for every axiom.*")
    lines.append("")
    lines.append(f"Generated: {(generated_at or utcnow()).isoformat()}")
    lines.append("")

    for tier in AxiomTier:
        tier_axioms = [a for a in axioms if a.tier is tier]
        lines.append(f"## {TIER_HEADINGS[tier]}")
        lines.append("")
        if tier_axioms:
            lines.extend(format_axiom(a, fmt) for a in tier_axioms)
        else:
            lines.append("*None yet.*")
        lines.append("")

    if warnings:
        lines.append("> **Warnings**")
        for warning in warnings:
            lines.append(f"> - {warning.kind}: {warning.message}")
        lines.append("")

    lines.extend(["---", "", "## Provenance", ""])
    lines.append("Every axiom traces back to source signals. Run `soulsynth trace <axiom>` for the path.")
    lines.append("")
    lines.append("| Level | Count |")
    lines.append("|-------|-------|")
    lines.append(f"| Axioms | {metrics.axiom_count} |")
    lines.append(f"| Principles | {metrics.principle_count} |")
    lines.append(f"| Signals | {metrics.signal_count} |")
    lines.append("")

    covered = metrics.dimensions_covered
    total = len(DIMENSIONS)
    lines.extend(["## Metrics", ""])
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Compression | {metrics.compression_ratio:.1f}:1 |")
    lines.append(f"| Convergence | {metrics.convergence_rate:.0%} |")
    lines.append(f"| Dimension coverage | {covered}/{total} ({round(covered / total * 100)}%) |")
    if metrics.effective_floor is not None:
        lines.append(f"| Effective floor | N>={metrics.effective_floor} |")
    lines.append(f"| Notation format | {fmt.value} |")
    lines.append("")

    return "\n".join(lines)


def unified_diff(old: str, new: str, name: str = DEFAULT_TITLE) -> str:
    """Unified diff between two document versions (empty when identical)."""
    return "".join(
        difflib.unified_diff(
            old.splitlines(keepends=True),
            new.splitlines(keepends=True),
            fromfile=f"a/{name}",
            tofile=f"b/{name}",
        )
    )


__all__ = ["TIER_HEADINGS", "format_axiom", "render_document", "unified_diff"]
