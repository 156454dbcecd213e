"""
Core data structures for the synthesis pipeline.

Signals are immutable observations produced by the extraction collaborator.
Principles accumulate signals of one dimension. Axioms are promoted
principles carrying an evidence tier and canonical notation.

All structures serialize to plain dicts (to_dict/from_dict) for the flat
JSON artifacts under the workspace data directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from soulsynth.errors import InvalidInputError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return utcnow()


class Dimension(StrEnum):
    """The seven fixed identity dimensions."""

    IDENTITY_CORE = "identity-core"
    CHARACTER_TRAITS = "character-traits"
    VOICE_PRESENCE = "voice-presence"
    HONESTY_FRAMEWORK = "honesty-framework"
    BOUNDARIES_ETHICS = "boundaries-ethics"
    RELATIONSHIP_DYNAMICS = "relationship-dynamics"
    CONTINUITY_GROWTH = "continuity-growth"


DIMENSIONS: tuple[Dimension, ...] = tuple(Dimension)


class SignalCategory(StrEnum):
    PREFERENCE = "preference"
    CORRECTION = "correction"
    VALUE = "value"
    OTHER = "other"


class SourceType(StrEnum):
    MEMORY = "memory"
    INTERVIEW = "interview"
    TEMPLATE = "template"


class AxiomTier(StrEnum):
    CORE = "core"
    DOMAIN = "domain"
    EMERGING = "emerging"


class NotationFormat(StrEnum):
    """Axiom display notations. NATIVE is the guaranteed fallback."""

    NATIVE = "native"
    LABELED = "labeled"
    MATH = "math"
    MATH_EMOJI = "math-emoji"


CORE_TIER_MIN = 5
DOMAIN_TIER_MIN = 3


def tier_for_count(n_count: int) -> AxiomTier:
    """Tier is a pure function of evidence count."""
    if n_count >= CORE_TIER_MIN:
        return AxiomTier.CORE
    if n_count >= DOMAIN_TIER_MIN:
        return AxiomTier.DOMAIN
    return AxiomTier.EMERGING


# =============================================================================
# Signal
# =============================================================================


@dataclass(frozen=True)
class SignalSource:
    """Where a signal was extracted from."""

    file: str
    line: int | None = None
    context: str = ""
    extracted_at: datetime = field(default_factory=utcnow)
    type: SourceType = SourceType.MEMORY
    section: str | None = None

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}" if self.line else self.file

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "context": self.context,
            "extracted_at": self.extracted_at.isoformat(),
            "type": self.type.value,
            "section": self.section,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignalSource:
        return cls(
            file=data["file"],
            line=data.get("line"),
            context=data.get("context", ""),
            extracted_at=_parse_datetime(data.get("extracted_at")),
            type=SourceType(data.get("type", "memory")),
            section=data.get("section"),
        )


@dataclass(frozen=True)
class Signal:
    """An atomic extracted behavioral observation."""

    id: str
    text: str
    dimension: Dimension
    source: SignalSource
    category: SignalCategory = SignalCategory.OTHER
    confidence: float = 1.0
    vector: tuple[float, ...] | None = None

    def __post_init__(self):
        if not self.id or not self.text or not self.text.strip():
            raise InvalidInputError("Signal requires a non-empty id and text")
        if not 0.0 <= self.confidence <= 1.0:
            raise InvalidInputError(f"Signal confidence out of range: {self.confidence}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "category": self.category.value,
            "confidence": self.confidence,
            "dimension": self.dimension.value,
            "source": self.source.to_dict(),
            "vector": list(self.vector) if self.vector is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Signal:
        vector = data.get("vector")
        try:
            return cls(
                id=data["id"],
                text=data["text"],
                category=SignalCategory(data.get("category", "other")),
                confidence=float(data.get("confidence", 1.0)),
                dimension=Dimension(data["dimension"]),
                source=SignalSource.from_dict(data["source"]),
                vector=tuple(float(v) for v in vector) if vector is not None else None,
            )
        except (AttributeError, KeyError, ValueError, TypeError) as e:
            if isinstance(e, InvalidInputError):
                raise
            raise InvalidInputError(f"Malformed signal record: {e}") from e


# =============================================================================
# Principle
# =============================================================================


@dataclass
class Principle:
    """
    An evidence-backed idea formed by merging equivalent signals.

    n_count is derived from signal_ids so the two can never disagree.
    """

    id: str
    text: str
    dimension: Dimension
    signal_ids: list[str] = field(default_factory=list)
    sequence: int = 0
    strength: float = 1.0
    vector: list[float] | None = None
    similarities: dict[str, float] = field(default_factory=dict)
    history: list[dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def n_count(self) -> int:
        return len(self.signal_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "dimension": self.dimension.value,
            "n_count": self.n_count,
            "signal_ids": list(self.signal_ids),
            "sequence": self.sequence,
            "strength": self.strength,
            "vector": self.vector,
            "similarities": dict(self.similarities),
            "history": list(self.history),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Principle:
        signal_ids = list(data.get("signal_ids", []))
        if "n_count" in data and data["n_count"] != len(signal_ids):
            raise InvalidInputError(
                f"Principle {data.get('id')} has n_count={data['n_count']} "
                f"but {len(signal_ids)} contributing signals"
            )
        return cls(
            id=data["id"],
            text=data["text"],
            dimension=Dimension(data["dimension"]),
            signal_ids=signal_ids,
            sequence=int(data.get("sequence", 0)),
            strength=float(data.get("strength", 1.0)),
            vector=data.get("vector"),
            similarities=dict(data.get("similarities", {})),
            history=list(data.get("history", [])),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


# =============================================================================
# Axiom
# =============================================================================


@dataclass(frozen=True)
class CanonicalForm:
    """Native text plus at most one generated notation."""

    native: str
    notated: str | None = None
    notation: NotationFormat | None = None

    def render(self, fmt: NotationFormat) -> str:
        if fmt is NotationFormat.NATIVE or not self.notated:
            return self.native
        return self.notated

    @property
    def symbols(self) -> list[str]:
        """
        Anchor tokens of the notated form: the emoji and CJK characters
        before the first colon ("💎 誠: a > b" -> ["💎", "誠"]). Operators
        and label words are not symbols.
        """
        if not self.notated:
            return []
        head, colon, _ = self.notated.partition(":")
        tokens = head.split() if colon else self.notated.split()[:1]
        return [t for t in tokens if not t.isascii()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "native": self.native,
            "notated": self.notated,
            "notation": self.notation.value if self.notation else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanonicalForm:
        notation = data.get("notation")
        return cls(
            native=data["native"],
            notated=data.get("notated"),
            notation=NotationFormat(notation) if notation else None,
        )


@dataclass(frozen=True)
class AxiomDerivation:
    principle_ids: tuple[str, ...]
    promoted_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "principle_ids": list(self.principle_ids),
            "promoted_at": self.promoted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AxiomDerivation:
        return cls(
            principle_ids=tuple(data.get("principle_ids", [])),
            promoted_at=_parse_datetime(data.get("promoted_at")),
        )


@dataclass(frozen=True)
class Axiom:
    """A promoted principle. Immutable once written."""

    id: str
    text: str
    tier: AxiomTier
    dimension: Dimension
    canonical: CanonicalForm
    derivation: AxiomDerivation
    n_count: int
    history: tuple[dict[str, Any], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "tier": self.tier.value,
            "dimension": self.dimension.value,
            "n_count": self.n_count,
            "canonical": self.canonical.to_dict(),
            "derivation": self.derivation.to_dict(),
            "history": list(self.history),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Axiom:
        return cls(
            id=data["id"],
            text=data["text"],
            tier=AxiomTier(data["tier"]),
            dimension=Dimension(data["dimension"]),
            canonical=CanonicalForm.from_dict(data["canonical"]),
            derivation=AxiomDerivation.from_dict(data["derivation"]),
            n_count=int(data.get("n_count", 0)),
            history=tuple(data.get("history", [])),
        )


__all__ = [
    "Axiom",
    "AxiomDerivation",
    "AxiomTier",
    "CanonicalForm",
    "CORE_TIER_MIN",
    "DIMENSIONS",
    "DOMAIN_TIER_MIN",
    "Dimension",
    "NotationFormat",
    "Principle",
    "Signal",
    "SignalCategory",
    "SignalSource",
    "SourceType",
    "tier_for_count",
    "utcnow",
]
