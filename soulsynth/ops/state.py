"""
Incremental Run State

Tracks what the last completed synthesis saw, so a new run only proceeds
once enough new memory content has accumulated.

State is replaced wholesale at the end of each successful (or forced) run
and written atomically; a crash mid-run leaves the previous state intact.
The state also fingerprints the document it produced. On the next run a
document that no longer matches (truncated write, crash between document
and state) halts synthesis with a rollback recommendation.

Usage:
    from soulsynth.ops.state import load_state, should_run_synthesis, record_run

    state = load_state(paths.state_path)
    if should_run_synthesis(current_size, state, threshold=2000, force=args.force):
        ...
        state = record_run(state, metrics, content_size=current_size, document=content)
        save_state(paths.state_path, state)
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from soulsynth.errors import InvalidInputError, StateConsistencyError
from soulsynth.models import utcnow
from soulsynth.ops.persistence import write_file_atomic

logger = logging.getLogger(__name__)

STATE_VERSION = 1
DEFAULT_CONTENT_THRESHOLD = 2000
MEMORY_SUFFIXES = (".md", ".txt")


@dataclass(frozen=True)
class SourceCheckpoint:
    size: int
    processed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"size": self.size, "processed_at": self.processed_at.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceCheckpoint:
        return cls(size=int(data["size"]), processed_at=datetime.fromisoformat(data["processed_at"]))


@dataclass(frozen=True)
class DocumentFingerprint:
    sha256: str
    size: int

    @classmethod
    def of(cls, content: str | bytes) -> DocumentFingerprint:
        data = content.encode("utf-8") if isinstance(content, str) else content
        return cls(sha256=hashlib.sha256(data).hexdigest(), size=len(data))

    def to_dict(self) -> dict[str, Any]:
        return {"sha256": self.sha256, "size": self.size}


@dataclass(frozen=True)
class RunState:
    last_run_at: datetime | None = None
    processed_size: int = 0
    checkpoints: dict[str, SourceCheckpoint] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)
    document: DocumentFingerprint | None = None
    run_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "processed_size": self.processed_size,
            "checkpoints": {k: v.to_dict() for k, v in self.checkpoints.items()},
            "metrics": self.metrics,
            "document": self.document.to_dict() if self.document else None,
            "run_count": self.run_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunState:
        last_run = data.get("last_run_at")
        document = data.get("document")
        return cls(
            last_run_at=datetime.fromisoformat(last_run) if last_run else None,
            processed_size=int(data.get("processed_size", 0)),
            checkpoints={
                k: SourceCheckpoint.from_dict(v) for k, v in (data.get("checkpoints") or {}).items()
            },
            metrics=dict(data.get("metrics") or {}),
            document=DocumentFingerprint(str(document["sha256"]), int(document["size"])) if document else None,
            run_count=int(data.get("run_count", 0)),
        )


@dataclass(frozen=True)
class ContentSnapshot:
    """Sizes of the memory sources at the start of a run."""

    total_size: int
    sizes: dict[str, int]


def load_state(path: Path) -> RunState:
    """
    Load run state.

    Returns:
        Stored state, or a fresh RunState when none exists

    Raises:
        StateConsistencyError: If the file exists but cannot be trusted
    """
    if not path.exists():
        return RunState()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("expected a JSON object")
        state = RunState.from_dict(raw)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise StateConsistencyError(f"Run state at {path} failed its sanity check: {e}") from e

    if state.processed_size < 0:
        raise StateConsistencyError(f"Run state at {path} has negative processed size")
    return state


def save_state(path: Path, state: RunState) -> None:
    write_file_atomic(path, json.dumps(state.to_dict(), indent=2))


def measure_content(memory_dir: Path) -> ContentSnapshot:
    """Character counts of every memory text file under memory_dir."""
    sizes: dict[str, int] = {}
    if memory_dir.is_dir():
        for file in sorted(memory_dir.rglob("*")):
            if file.is_file() and file.suffix.lower() in MEMORY_SUFFIXES:
                rel = file.relative_to(memory_dir).as_posix()
                sizes[rel] = len(file.read_text(encoding="utf-8", errors="replace"))
    return ContentSnapshot(total_size=sum(sizes.values()), sizes=sizes)


def should_run_synthesis(
    current_content_size: int,
    state: RunState,
    threshold: int = DEFAULT_CONTENT_THRESHOLD,
    force: bool = False,
) -> bool:
    """
    Content gate: proceed when enough new content arrived, or when forced.

    Raises:
        InvalidInputError: Negative size or threshold
    """
    if current_content_size < 0 or threshold < 0:
        raise InvalidInputError("Content size and threshold must be non-negative")
    if force:
        return True
    return current_content_size - state.processed_size >= threshold


def pending_content(current_content_size: int, state: RunState) -> int:
    return max(0, current_content_size - state.processed_size)


def record_run(
    state: RunState,
    metrics: dict[str, Any],
    content_size: int,
    sizes: dict[str, int] | None = None,
    document: str | None = None,
    now: datetime | None = None,
) -> RunState:
    """
    Build the state snapshot for a completed run.

    The returned state replaces the previous one entirely; only the run
    counter carries over.
    """
    now = now or utcnow()
    return RunState(
        last_run_at=now,
        processed_size=content_size,
        checkpoints={name: SourceCheckpoint(size, now) for name, size in (sizes or {}).items()},
        metrics=dict(metrics),
        document=DocumentFingerprint.of(document) if document is not None else None,
        run_count=state.run_count + 1,
    )


def acknowledge_document(state: RunState, content: str | bytes) -> RunState:
    """Re-stamp the document fingerprint, e.g. after a rollback."""
    return replace(state, document=DocumentFingerprint.of(content))


def verify_document(state: RunState, document_path: Path) -> None:
    """
    Check the live document against the fingerprint of the last run.

    Raises:
        StateConsistencyError: Missing, truncated or otherwise altered document
    """
    expected = state.document
    if expected is None:
        return

    if not document_path.exists():
        raise StateConsistencyError(
            f"{document_path.name} is missing but the last run recorded writing it"
        )

    actual = DocumentFingerprint.of(document_path.read_bytes())
    if actual.size != expected.size:
        raise StateConsistencyError(
            f"{document_path.name} size {actual.size} does not match the last run ({expected.size}); "
            "the write may have been interrupted"
        )
    if actual.sha256 != expected.sha256:
        raise StateConsistencyError(
            f"{document_path.name} checksum does not match the last run; "
            "it was modified or partially written"
        )


__all__ = [
    "ContentSnapshot",
    "DEFAULT_CONTENT_THRESHOLD",
    "DocumentFingerprint",
    "RunState",
    "SourceCheckpoint",
    "acknowledge_document",
    "load_state",
    "measure_content",
    "pending_content",
    "record_run",
    "save_state",
    "should_run_synthesis",
    "verify_document",
]
