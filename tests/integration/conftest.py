"""
Integration test fixtures for soulsynth.

Provides fixtures specific to end-to-end runs:
- A low-threshold configuration for end-to-end runs
- Writing extracted signals to a JSON file the way the host does
"""

import json
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from soulsynth.config import SynthesisConfig
from soulsynth.models import Signal


@pytest.fixture
def integration_config() -> SynthesisConfig:
    """Small content threshold; the cascade stops at the first floor yielding an axiom."""
    return SynthesisConfig.model_validate({
        "synthesis": {"content_threshold": 100, "target_minimum_axioms": 1},
    })


@pytest.fixture
def write_signals(tmp_path: Path) -> Callable[[Sequence[Signal], str], Path]:
    """Serialize signals into an extraction output file."""

    def _write(signals: Sequence[Signal], name: str = "signals-in.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps([s.to_dict() for s in signals], ensure_ascii=False), encoding="utf-8")
        return path

    return _write
