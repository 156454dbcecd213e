"""
Synthesis configuration (args/synthesis.yaml).

Validated with pydantic and consumed by the core as a plain structured
value. Every model allows extra keys so older config files keep loading.

Usage:
    from soulsynth.config import load_config

    config = load_config()                       # args/synthesis.yaml or defaults
    config = load_config(Path("my.yaml"))
    threshold = config.matching.similarity_threshold
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from soulsynth.errors import InvalidInputError
from soulsynth.models import NotationFormat

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_PATH = PROJECT_ROOT / "args" / "synthesis.yaml"

DEFAULT_SIMILARITY_THRESHOLD = 0.85
DEFAULT_CONTENT_THRESHOLD = 2000


class MatchingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    similarity_threshold: float = Field(default=DEFAULT_SIMILARITY_THRESHOLD, ge=0.0, le=1.0)
    classifier: Literal["cosine", "judgment"] = Field(default="cosine")


class NotationConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    format: NotationFormat = Field(default=NotationFormat.NATIVE)
    fallback: NotationFormat = Field(default=NotationFormat.NATIVE)

    @field_validator("fallback")
    @classmethod
    def _fallback_is_native(cls, value: NotationFormat) -> NotationFormat:
        if value is not NotationFormat.NATIVE:
            raise ValueError("notation fallback must be 'native'")
        return value


class SynthesisSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    content_threshold: int = Field(default=DEFAULT_CONTENT_THRESHOLD, ge=0)
    auto_commit: bool = Field(default=False)
    target_minimum_axioms: int = Field(default=3, ge=1)
    collaborator_timeout_seconds: float = Field(default=30.0, gt=0)
    collaborator_retries: int = Field(default=1, ge=0)


class GuardrailConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    expansion_ratio: float = Field(default=1.0, gt=0)
    cognitive_load_cap: int = Field(default=25, ge=1)


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    memory: str = Field(default="memory")
    document: str = Field(default="SOUL.md")
    data_dir: str = Field(default=".soulsynth")


class SynthesisConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    notation: NotationConfig = Field(default_factory=NotationConfig)
    synthesis: SynthesisSettings = Field(default_factory=SynthesisSettings)
    guardrails: GuardrailConfig = Field(default_factory=GuardrailConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)


def load_config(path: Path | None = None) -> SynthesisConfig:
    """
    Load configuration from YAML.

    Args:
        path: Config file (default: args/synthesis.yaml)

    Returns:
        Validated SynthesisConfig (defaults when the file is missing)

    Raises:
        InvalidInputError: If the YAML is unreadable or fails validation
    """
    config_path = path or CONFIG_PATH
    raw: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path) as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidInputError(f"Failed to parse config at {config_path}: {e}") from e
    else:
        logger.debug(f"No config at {config_path}, using defaults")

    try:
        return SynthesisConfig.model_validate(raw)
    except ValidationError as e:
        issues = "\n".join(
            f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidInputError(f"Invalid configuration:\n{issues}") from e


__all__ = [
    "CONFIG_PATH",
    "GuardrailConfig",
    "MatchingConfig",
    "NotationConfig",
    "PathsConfig",
    "SynthesisConfig",
    "SynthesisSettings",
    "load_config",
]
