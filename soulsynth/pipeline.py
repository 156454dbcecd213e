"""
Synthesis Pipeline

One incremental run, end to end:

    1. Load run state and check the live document against its fingerprint
    2. Content gate (skipped with force)
    3. Merge new signals with persisted ones and fold them into principles
    4. Promote principles to axioms (cascading floors)
    5. Build provenance chains and report broken links
    6. Render the document (and a diff when asked)
    7. dry_run stops here: nothing is written
    8. backup -> document -> artifacts -> state, with no suspension points
    9. Optional git commit

Usage:
    from soulsynth.pipeline import SynthesisOptions, run_synthesis

    result = await run_synthesis(paths, config, new_signals, collaborator=llm)
    if result.ran:
        print(result.metrics.compression_ratio)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from soulsynth.config import SynthesisConfig
from soulsynth.errors import CollaboratorError, InvalidInputError
from soulsynth.models import Axiom, NotationFormat, Principle, Signal
from soulsynth.ops import WorkspacePaths
from soulsynth.ops.backup import publish_document
from soulsynth.ops.persistence import load_principles, load_signals, save_records
from soulsynth.ops.state import (
    load_state,
    measure_content,
    pending_content,
    record_run,
    save_state,
    should_run_synthesis,
    verify_document,
)
from soulsynth.ops.vcs import commit_document
from soulsynth.soul_generator import render_document, unified_diff
from soulsynth.synthesis.classifiers import make_classifier
from soulsynth.synthesis.collaborators import LLMCollaborator
from soulsynth.synthesis.compressor import CascadeMetadata, promote
from soulsynth.synthesis.generalizer import CollaboratorGeneralizer, KeepOriginalGeneralizer
from soulsynth.synthesis.guardrails import GuardrailWarning
from soulsynth.synthesis.metrics import SynthesisMetrics, calculate_metrics
from soulsynth.synthesis.notation import NotationGenerator
from soulsynth.synthesis.principle_store import PrincipleStore
from soulsynth.synthesis.provenance import ProvenanceIndex

logger = logging.getLogger(__name__)


@dataclass
class SynthesisOptions:
    force: bool = False
    dry_run: bool = False
    format: NotationFormat | None = None
    diff: bool = False


@dataclass
class SynthesisResult:
    ran: bool
    content_size: int
    pending_size: int
    threshold: int
    dry_run: bool = False
    skipped_reason: str | None = None
    axioms: list[Axiom] = field(default_factory=list)
    principles: list[Principle] = field(default_factory=list)
    signal_count: int = 0
    guardrails: list[GuardrailWarning] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cascade: CascadeMetadata | None = None
    metrics: SynthesisMetrics | None = None
    document: str | None = None
    diff: str | None = None
    backup_id: str | None = None
    committed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "ran": self.ran,
            "dry_run": self.dry_run,
            "skipped_reason": self.skipped_reason,
            "content_size": self.content_size,
            "pending_size": self.pending_size,
            "threshold": self.threshold,
            "signal_count": self.signal_count,
            "principle_count": len(self.principles),
            "axiom_count": len(self.axioms),
            "axioms": [
                {
                    "id": a.id,
                    "tier": a.tier.value,
                    "dimension": a.dimension.value,
                    "n_count": a.n_count,
                    "text": a.text,
                    "notated": a.canonical.notated,
                }
                for a in self.axioms
            ],
            "guardrails": [w.to_dict() for w in self.guardrails],
            "cascade": self.cascade.to_dict() if self.cascade else None,
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "diff": self.diff,
            "backup_id": self.backup_id,
            "committed": self.committed,
        }


def merge_signals(existing: Sequence[Signal], incoming: Sequence[Signal]) -> list[Signal]:
    """Persisted signals followed by unseen incoming ones, first occurrence wins."""
    merged: dict[str, Signal] = {}
    for signal in (*existing, *incoming):
        if not isinstance(signal, Signal):
            raise InvalidInputError(f"Expected Signal, got {type(signal).__name__}")
        merged.setdefault(signal.id, signal)
    return list(merged.values())


def _require_vectors(signals: Sequence[Signal]) -> None:
    missing = [s.id for s in signals if s.vector is None]
    if missing:
        preview = ", ".join(missing[:5])
        raise InvalidInputError(
            f"Cosine matching needs a vector on every signal; missing for {len(missing)} ({preview})"
        )


async def run_synthesis(
    paths: WorkspacePaths,
    config: SynthesisConfig,
    new_signals: Sequence[Signal] = (),
    collaborator: LLMCollaborator | None = None,
    options: SynthesisOptions | None = None,
) -> SynthesisResult:
    """
    Run one synthesis pass over the workspace.

    Raises:
        StateConsistencyError: Run state or live document failed its check
        InvalidInputError: Malformed signals or configuration
    """
    options = options or SynthesisOptions()
    settings = config.synthesis
    threshold = settings.content_threshold
    timeout = settings.collaborator_timeout_seconds
    retries = settings.collaborator_retries

    state = load_state(paths.state_path)
    verify_document(state, paths.document_path)

    snapshot = measure_content(paths.memory_dir)
    pending = pending_content(snapshot.total_size, state)
    result = SynthesisResult(
        ran=False,
        content_size=snapshot.total_size,
        pending_size=pending,
        threshold=threshold,
        dry_run=options.dry_run,
    )

    if not should_run_synthesis(snapshot.total_size, state, threshold, force=options.force):
        result.skipped_reason = f"Below threshold: {pending} new chars < {threshold}"
        logger.info(result.skipped_reason)
        return result

    signals = merge_signals(load_signals(paths.signals_path), new_signals)
    if config.matching.classifier == "cosine":
        _require_vectors(signals)

    classifier = make_classifier(config.matching.classifier, collaborator, timeout=timeout, retries=retries)
    generalizer = (
        CollaboratorGeneralizer(collaborator, timeout=timeout, retries=retries)
        if collaborator is not None
        else KeepOriginalGeneralizer()
    )
    store = PrincipleStore(classifier, config.matching.similarity_threshold, generalizer)
    store.restore(load_principles(paths.principles_path))

    for signal in signals:
        try:
            await store.ingest(signal)
        except CollaboratorError as e:
            result.warnings.append(f"Skipped signal {signal.id}: {e}")
            logger.warning(f"Skipped signal {signal.id}: {e}")

    principles = store.all()
    fmt = options.format or config.notation.format
    notation = NotationGenerator(collaborator, fmt, timeout=timeout, retries=retries)
    promotion = await promote(
        principles,
        target_minimum_axioms=settings.target_minimum_axioms,
        notation=notation,
        expansion_ratio=config.guardrails.expansion_ratio,
        cognitive_load_cap=config.guardrails.cognitive_load_cap,
    )
    result.warnings.extend(promotion.notes)

    index = ProvenanceIndex(promotion.axioms, principles, signals)
    for chain in index.build_all():
        for link in chain.broken_links:
            result.warnings.append(
                f"Broken provenance: {link.kind} {link.id} referenced by {link.referenced_by}"
            )

    metrics = calculate_metrics(signals, principles, promotion.axioms, promotion.cascade.effective_floor)
    content = render_document(promotion.axioms, metrics, fmt=fmt, warnings=promotion.warnings)

    result.ran = True
    result.signal_count = len(signals)
    result.principles = principles
    result.axioms = promotion.axioms
    result.guardrails = promotion.warnings
    result.cascade = promotion.cascade
    result.metrics = metrics
    result.document = content

    if options.diff:
        previous = (
            paths.document_path.read_text(encoding="utf-8") if paths.document_path.exists() else ""
        )
        result.diff = unified_diff(previous, content, paths.document_path.name)

    if options.dry_run:
        logger.info(f"Dry run: {len(promotion.axioms)} axioms, nothing written")
        return result

    # Write phase: synchronous from here on
    result.backup_id = publish_document(paths.document_path, content, paths.backup_dir)
    save_records(paths.signals_path, signals)
    save_records(paths.principles_path, principles)
    save_records(paths.axioms_path, promotion.axioms)
    new_state = record_run(
        state,
        metrics.to_dict(),
        content_size=snapshot.total_size,
        sizes=snapshot.sizes,
        document=content,
    )
    save_state(paths.state_path, new_state)
    logger.info(
        f"Synthesis complete: {len(signals)} signals -> {len(principles)} principles "
        f"-> {len(promotion.axioms)} axioms ({metrics.compression_ratio:.1f}:1)"
    )

    if settings.auto_commit:
        result.committed = commit_document(
            paths.document_path,
            f"soulsynth: {len(promotion.axioms)} axioms from {len(signals)} signals",
        )

    return result


__all__ = ["SynthesisOptions", "SynthesisResult", "merge_signals", "run_synthesis"]
