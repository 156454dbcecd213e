"""
Command surface for soulsynth.

Each command returns a result dict:

    {"success": True, "data": {...}, "warnings": [...]}
    {"success": False, "error": "...", "recommendation": "..."}

so the CLI and any host integration (skill runner, scheduler) share one
implementation. Commands never print.

Usage:
    from soulsynth.commands import synthesize, status, rollback, audit, trace

    result = await synthesize(Path("~/agent"), signals_file=Path("signals.json"))
    result = status(Path("~/agent"), verbose=True)
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any

from soulsynth.config import SynthesisConfig, load_config
from soulsynth.errors import StateConsistencyError, SynthesisError
from soulsynth.models import DIMENSIONS, Axiom, AxiomTier, NotationFormat
from soulsynth.ops import WorkspacePaths
from soulsynth.ops.backup import describe_age, list_backups, resolve_backup
from soulsynth.ops.backup import rollback as restore_backup
from soulsynth.ops.persistence import load_axioms, load_principles, load_signals, read_signal_file
from soulsynth.ops.state import (
    RunState,
    acknowledge_document,
    load_state,
    measure_content,
    pending_content,
    save_state,
    verify_document,
)
from soulsynth.pipeline import SynthesisOptions, run_synthesis
from soulsynth.synthesis.collaborators import LLMCollaborator
from soulsynth.synthesis.provenance import ProvenanceIndex

logger = logging.getLogger(__name__)


def _ok(data: dict[str, Any], warnings: list[str] | None = None) -> dict[str, Any]:
    return {"success": True, "data": data, "warnings": warnings or []}


def _fail(error: Exception | str) -> dict[str, Any]:
    result: dict[str, Any] = {"success": False, "error": str(error)}
    if isinstance(error, StateConsistencyError):
        result["recommendation"] = error.recommendation
    return result


def open_workspace(
    workspace: Path,
    config: SynthesisConfig | None = None,
    config_path: Path | None = None,
) -> tuple[SynthesisConfig, WorkspacePaths]:
    """Resolve configuration and artifact paths for a workspace."""
    config = config or load_config(config_path)
    return config, WorkspacePaths.from_config(workspace, config.paths)


# =============================================================================
# synthesize
# =============================================================================


async def synthesize(
    workspace: Path,
    signals_file: Path | None = None,
    force: bool = False,
    dry_run: bool = False,
    fmt: NotationFormat | str | None = None,
    diff: bool = False,
    config: SynthesisConfig | None = None,
    config_path: Path | None = None,
    collaborator: LLMCollaborator | None = None,
) -> dict[str, Any]:
    """
    Run an incremental synthesis.

    Args:
        workspace: Agent workspace root
        signals_file: JSON array of newly extracted signals
        force: Bypass the content-threshold gate
        dry_run: Compute everything, write nothing
        fmt: Notation format override
        diff: Include a unified diff against the current document
    """
    try:
        config, paths = open_workspace(workspace, config, config_path)
        new_signals = read_signal_file(signals_file) if signals_file else []
        options = SynthesisOptions(
            force=force,
            dry_run=dry_run,
            format=NotationFormat(fmt) if fmt else None,
            diff=diff,
        )
        result = await run_synthesis(paths, config, new_signals, collaborator, options)
    except (SynthesisError, ValueError) as e:
        # ValueError: unknown notation name
        return _fail(e)

    warnings = [w.message for w in result.guardrails] + result.warnings
    return _ok(result.to_dict(), warnings)


# =============================================================================
# status
# =============================================================================


def _changed_files(state: RunState, sizes: dict[str, int]) -> tuple[list[str], list[str]]:
    new_files = [name for name in sizes if name not in state.checkpoints]
    modified = [
        name for name, size in sizes.items()
        if name in state.checkpoints and state.checkpoints[name].size != size
    ]
    return new_files, modified


def status(
    workspace: Path,
    verbose: bool = False,
    config: SynthesisConfig | None = None,
    config_path: Path | None = None,
) -> dict[str, Any]:
    """Last run, pending content against the threshold, artifact counts."""
    try:
        config, paths = open_workspace(workspace, config, config_path)
        state = load_state(paths.state_path)
        snapshot = measure_content(paths.memory_dir)
        signals = load_signals(paths.signals_path)
        principles = load_principles(paths.principles_path)
        axioms = load_axioms(paths.axioms_path)
    except SynthesisError as e:
        return _fail(e)

    warnings: list[str] = []
    try:
        verify_document(state, paths.document_path)
        integrity = "ok"
    except StateConsistencyError as e:
        integrity = "mismatch"
        warnings.append(f"{e} {e.recommendation}")

    threshold = config.synthesis.content_threshold
    pending = pending_content(snapshot.total_size, state)
    data: dict[str, Any] = {
        "last_run_at": state.last_run_at.isoformat() if state.last_run_at else None,
        "run_count": state.run_count,
        "content_size": snapshot.total_size,
        "pending_size": pending,
        "threshold": threshold,
        "ready": pending >= threshold,
        "counts": {
            "signals": len(signals),
            "principles": len(principles),
            "axioms": len(axioms),
            "backups": len(list_backups(paths.backup_dir, paths.document_path.name)),
        },
        "document": str(paths.document_path),
        "integrity": integrity,
    }

    if verbose:
        new_files, modified = _changed_files(state, snapshot.sizes)
        data["new_files"] = new_files
        data["modified_files"] = modified
        data["coverage"] = {
            dim.value: sum(1 for a in axioms if a.dimension == dim) for dim in DIMENSIONS
        }
        data["last_metrics"] = state.metrics

    return _ok(data, warnings)


# =============================================================================
# rollback
# =============================================================================


def rollback(
    workspace: Path,
    list_only: bool = False,
    backup_id: str | None = None,
    force: bool = False,
    config: SynthesisConfig | None = None,
    config_path: Path | None = None,
) -> dict[str, Any]:
    """
    List backups, or restore one (latest by default).

    Restoring requires force; without it the result names the backup that
    would be restored.
    """
    try:
        config, paths = open_workspace(workspace, config, config_path)
        document_name = paths.document_path.name

        if list_only:
            backups = list_backups(paths.backup_dir, document_name)
            return _ok({
                "backups": [
                    {**b.to_dict(), "age": describe_age(b)} for b in backups
                ],
            })

        target = resolve_backup(paths.backup_dir, backup_id or "latest", document_name)
        if not force:
            return {
                "success": False,
                "error": f"Rollback requires --force for confirmation (would restore {target.id})",
                "data": {"backup": target.to_dict()},
            }

        content = restore_backup(paths.backup_dir, paths.document_path, target.id)
    except SynthesisError as e:
        return _fail(e)

    warnings: list[str] = []
    try:
        state = load_state(paths.state_path)
    except StateConsistencyError as e:
        warnings.append(f"Run state was unreadable and has been reset: {e}")
        state = RunState()
    save_state(paths.state_path, acknowledge_document(state, content))

    return _ok({"restored": target.id, "document": str(paths.document_path), "size": len(content)}, warnings)


# =============================================================================
# audit / trace
# =============================================================================


def _load_index(paths: WorkspacePaths) -> ProvenanceIndex:
    return ProvenanceIndex(
        load_axioms(paths.axioms_path),
        load_principles(paths.principles_path),
        load_signals(paths.signals_path),
    )


def _axiom_summary(axiom: Axiom) -> dict[str, Any]:
    return {
        "id": axiom.id,
        "tier": axiom.tier.value,
        "dimension": axiom.dimension.value,
        "n_count": axiom.n_count,
        "text": axiom.text,
        "notated": axiom.canonical.notated,
    }


def audit(
    workspace: Path,
    list_only: bool = False,
    stats: bool = False,
    axiom_id: str | None = None,
    config: SynthesisConfig | None = None,
    config_path: Path | None = None,
) -> dict[str, Any]:
    """
    Inspect axioms and their provenance.

    With axiom_id, returns the full axiom -> principles -> signals chain.
    With stats, returns tier/dimension distributions and chain integrity.
    Otherwise lists every axiom.
    """
    try:
        _, paths = open_workspace(workspace, config, config_path)
        index = _load_index(paths)

        if axiom_id:
            axiom = index.resolve(axiom_id)
            chain = index.build_chain(axiom)
            warnings = [
                f"Broken provenance: {b.kind} {b.id} referenced by {b.referenced_by}"
                for b in chain.broken_links
            ]
            return _ok({"axiom": _axiom_summary(axiom), "chain": chain.to_dict()}, warnings)
    except SynthesisError as e:
        return _fail(e)

    if stats and not list_only:
        chains = index.build_all()
        tiers = Counter(a.tier.value for a in index.axioms)
        dimensions = Counter(a.dimension.value for a in index.axioms)
        return _ok({
            "axioms": len(index.axioms),
            "principles": len(index.principles),
            "signals": len(index.signals),
            "by_tier": {t.value: tiers.get(t.value, 0) for t in AxiomTier},
            "by_dimension": {d.value: dimensions.get(d.value, 0) for d in DIMENSIONS},
            "intact_chains": sum(1 for c in chains if c.intact),
            "broken_links": sum(len(c.broken_links) for c in chains),
        })

    return _ok({"axioms": [_axiom_summary(a) for a in index.axioms]})


def trace(
    workspace: Path,
    axiom_key: str,
    config: SynthesisConfig | None = None,
    config_path: Path | None = None,
) -> dict[str, Any]:
    """Fast path from an axiom (id or notation symbol) to its strongest source."""
    try:
        _, paths = open_workspace(workspace, config, config_path)
        path = _load_index(paths).trace(axiom_key)
    except SynthesisError as e:
        return _fail(e)

    warnings = [
        f"Broken provenance: {b.kind} {b.id} referenced by {b.referenced_by}"
        for b in path.broken_links
    ]
    return _ok(path.to_dict(), warnings)


__all__ = ["audit", "open_workspace", "rollback", "status", "synthesize", "trace"]
