"""
Operations Module

Provides run state tracking, document backups and rollback, atomic
persistence of synthesis artifacts, and optional git commits.

Workspace layout:
    <workspace>/
        memory/                  # memory files (read by the content gate)
        SOUL.md                  # rendered document
        .soulsynth/
            state.json
            signals.json
            principles.json
            axioms.json
            backups/<timestamp>/SOUL.md
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from soulsynth.config import PathsConfig


@dataclass(frozen=True)
class WorkspacePaths:
    root: Path
    memory_dir: Path
    document_path: Path
    data_dir: Path

    @classmethod
    def from_config(cls, workspace: Path, paths: PathsConfig | None = None) -> WorkspacePaths:
        paths = paths or PathsConfig()
        root = workspace.expanduser().resolve()
        return cls(
            root=root,
            memory_dir=root / paths.memory,
            document_path=root / paths.document,
            data_dir=root / paths.data_dir,
        )

    @property
    def state_path(self) -> Path:
        return self.data_dir / "state.json"

    @property
    def signals_path(self) -> Path:
        return self.data_dir / "signals.json"

    @property
    def principles_path(self) -> Path:
        return self.data_dir / "principles.json"

    @property
    def axioms_path(self) -> Path:
        return self.data_dir / "axioms.json"

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / "backups"


__all__ = ["WorkspacePaths"]
