"""Shared test fixtures for soulsynth tests.

This module provides common fixtures used across all test modules:
- Temporary workspaces with memory/ and data directories
- A signal factory with sensible defaults
- A scripted fake of the classify/generate collaborator

Usage:
    def test_something(workspace, make_signal):
        signal = make_signal("s1", "Prefers honesty", vector=(1.0, 0.0))
        ...
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path

import pytest

from soulsynth.config import SynthesisConfig
from soulsynth.models import Dimension, Signal, SignalCategory, SignalSource
from soulsynth.ops import WorkspacePaths
from soulsynth.synthesis.collaborators import ClassificationResult, GenerationResult


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_DIR = PROJECT_ROOT / "soulsynth"

FIXED_TIME = datetime(2026, 2, 7, 10, 30, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# Workspace Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspacePaths:
    """Create an empty workspace with a memory directory.

    Returns:
        WorkspacePaths rooted at a pytest tmp_path
    """
    paths = WorkspacePaths.from_config(tmp_path)
    paths.memory_dir.mkdir(parents=True)
    return paths


@pytest.fixture
def write_memory(workspace: WorkspacePaths) -> Callable[[str, int], Path]:
    """Write a memory file of exactly `size` characters."""

    def _write(name: str, size: int) -> Path:
        path = workspace.memory_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x" * size, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config() -> SynthesisConfig:
    """Default configuration (cosine matching, native notation)."""
    return SynthesisConfig()


# ─────────────────────────────────────────────────────────────────────────────
# Signal Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_signal() -> Callable[..., Signal]:
    """Factory for signals with predictable provenance."""

    def _make(
        signal_id: str,
        text: str,
        dimension: Dimension = Dimension.HONESTY_FRAMEWORK,
        vector: Sequence[float] | None = (1.0, 0.0, 0.0),
        file: str = "memory/diary.md",
        line: int | None = 1,
        confidence: float = 0.9,
        category: SignalCategory = SignalCategory.VALUE,
    ) -> Signal:
        return Signal(
            id=signal_id,
            text=text,
            dimension=dimension,
            source=SignalSource(file=file, line=line, context=text, extracted_at=FIXED_TIME),
            category=category,
            confidence=confidence,
            vector=tuple(vector) if vector is not None else None,
        )

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Collaborator Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class FakeCollaborator:
    """Scripted stand-in for the host's classify/generate capability.

    classify() answers from `verdicts` (text-containing key -> category),
    defaulting to `default_category`. generate() pops `generations` in
    order, then repeats `default_generation`. Any entry that is an
    exception instance is raised instead.
    """

    def __init__(
        self,
        verdicts: dict[str, str] | None = None,
        default_category: str = "distinct",
        confidence: float | str = 0.9,
        generations: list[str | BaseException] | None = None,
        default_generation: str | BaseException = "誠: honesty > comfort",
    ):
        self.verdicts = verdicts or {}
        self.default_category = default_category
        self.confidence = confidence
        self.generations = list(generations or [])
        self.default_generation = default_generation
        self.classify_calls: list[str] = []
        self.generate_calls: list[str] = []

    async def classify(self, text, categories, context=None):
        self.classify_calls.append(text)
        category = self.default_category
        for needle, verdict in self.verdicts.items():
            if needle in text:
                category = verdict
                break
        return ClassificationResult(category=category, confidence=self.confidence)

    async def generate(self, prompt):
        self.generate_calls.append(prompt)
        response = self.generations.pop(0) if self.generations else self.default_generation
        if isinstance(response, BaseException):
            raise response
        return GenerationResult(text=response)


@pytest.fixture
def fake_collaborator() -> FakeCollaborator:
    return FakeCollaborator()


@pytest.fixture
def make_collaborator() -> type[FakeCollaborator]:
    """The FakeCollaborator class, for tests that script their own answers."""
    return FakeCollaborator
