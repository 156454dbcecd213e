"""
Provenance Builder

Reconstructs the derivation of an axiom from id-keyed indices:

    axiom -> principles -> signals -> {file, line, extracted_at}

build_chain() walks every link and reports ids that no longer resolve as
BrokenLink entries instead of dropping them. trace() is the fast partial
view: the strongest principle and up to two signals from distinct files.

Axioms can be looked up by id or by any symbol of their notated form
(e.g. "誠"), both resolving to the same record.

Usage:
    from soulsynth.synthesis.provenance import ProvenanceIndex

    index = ProvenanceIndex(axioms, principles, signals)
    chain = index.build_chain(index.resolve("誠"))
    path = index.trace("ax_1234")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from soulsynth.errors import AxiomNotFoundError
from soulsynth.models import Axiom, Principle, Signal

TRACE_SIGNAL_LIMIT = 2


@dataclass(frozen=True)
class SourceLocation:
    signal_id: str
    text: str
    file: str
    line: int | None
    extracted_at: datetime

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}" if self.line else self.file

    def to_dict(self) -> dict[str, Any]:
        return {
            "signal_id": self.signal_id,
            "text": self.text,
            "file": self.file,
            "line": self.line,
            "extracted_at": self.extracted_at.isoformat(),
        }


@dataclass(frozen=True)
class BrokenLink:
    kind: str  # "principle" | "signal"
    id: str
    referenced_by: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "id": self.id, "referenced_by": self.referenced_by}


@dataclass
class PrincipleLink:
    id: str
    text: str
    n_count: int
    sources: list[SourceLocation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "n_count": self.n_count,
            "sources": [s.to_dict() for s in self.sources],
        }


@dataclass
class ProvenanceChain:
    axiom_id: str
    axiom_text: str
    principles: list[PrincipleLink] = field(default_factory=list)
    broken_links: list[BrokenLink] = field(default_factory=list)

    @property
    def sources(self) -> list[SourceLocation]:
        return [s for p in self.principles for s in p.sources]

    @property
    def intact(self) -> bool:
        return not self.broken_links

    def to_dict(self) -> dict[str, Any]:
        return {
            "axiom": {"id": self.axiom_id, "text": self.axiom_text},
            "principles": [p.to_dict() for p in self.principles],
            "broken_links": [b.to_dict() for b in self.broken_links],
        }


@dataclass
class TracePath:
    axiom: Axiom
    principle: PrincipleLink | None
    broken_links: list[BrokenLink] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "axiom": {
                "id": self.axiom.id,
                "notated": self.axiom.canonical.notated,
                "text": self.axiom.canonical.native,
            },
            "principle": self.principle.to_dict() if self.principle else None,
            "broken_links": [b.to_dict() for b in self.broken_links],
        }


def _location(signal: Signal) -> SourceLocation:
    return SourceLocation(
        signal_id=signal.id,
        text=signal.text,
        file=signal.source.file,
        line=signal.source.line,
        extracted_at=signal.source.extracted_at,
    )


def build_chain(
    axiom: Axiom,
    principle_index: Mapping[str, Principle],
    signal_index: Mapping[str, Signal],
) -> ProvenanceChain:
    """Full reconstruction of one axiom's provenance."""
    chain = ProvenanceChain(axiom_id=axiom.id, axiom_text=axiom.text)

    for principle_id in axiom.derivation.principle_ids:
        principle = principle_index.get(principle_id)
        if principle is None:
            chain.broken_links.append(BrokenLink("principle", principle_id, axiom.id))
            continue

        link = PrincipleLink(principle.id, principle.text, principle.n_count)
        for signal_id in principle.signal_ids:
            signal = signal_index.get(signal_id)
            if signal is None:
                chain.broken_links.append(BrokenLink("signal", signal_id, principle.id))
                continue
            link.sources.append(_location(signal))
        chain.principles.append(link)

    return chain


def _distinct_sources(principle: Principle, signal_index: Mapping[str, Signal]) -> tuple[list[SourceLocation], list[BrokenLink]]:
    """Up to TRACE_SIGNAL_LIMIT signals, preferring ones from files not yet shown."""
    resolved: list[Signal] = []
    broken: list[BrokenLink] = []
    for signal_id in principle.signal_ids:
        signal = signal_index.get(signal_id)
        if signal is None:
            broken.append(BrokenLink("signal", signal_id, principle.id))
        else:
            resolved.append(signal)

    picked: list[Signal] = []
    seen_files: set[str] = set()
    for signal in resolved:
        if signal.source.file not in seen_files:
            picked.append(signal)
            seen_files.add(signal.source.file)
        if len(picked) == TRACE_SIGNAL_LIMIT:
            break

    # Same-file signals fill remaining slots when files run out
    for signal in resolved:
        if len(picked) == TRACE_SIGNAL_LIMIT:
            break
        if signal not in picked:
            picked.append(signal)

    return [_location(s) for s in picked], broken


def resolve_axiom(axioms: Iterable[Axiom], key: str) -> Axiom | None:
    """Find an axiom by id, full notated form, or a single notated symbol."""
    key = key.strip()
    if not key:
        return None
    candidates = list(axioms)
    for axiom in candidates:
        if axiom.id == key:
            return axiom
    for axiom in candidates:
        notated = axiom.canonical.notated
        if notated and (notated == key or key in axiom.canonical.symbols):
            return axiom
    return None


class ProvenanceIndex:
    """Arena of axioms, principles and signals keyed by id."""

    def __init__(
        self,
        axioms: Iterable[Axiom],
        principles: Iterable[Principle],
        signals: Iterable[Signal],
    ):
        self.axioms: list[Axiom] = list(axioms)
        self.principles: dict[str, Principle] = {p.id: p for p in principles}
        self.signals: dict[str, Signal] = {s.id: s for s in signals}

    def resolve(self, key: str) -> Axiom:
        axiom = resolve_axiom(self.axioms, key)
        if axiom is None:
            raise AxiomNotFoundError(key)
        return axiom

    def build_chain(self, axiom: Axiom | str) -> ProvenanceChain:
        if isinstance(axiom, str):
            axiom = self.resolve(axiom)
        return build_chain(axiom, self.principles, self.signals)

    def build_all(self) -> list[ProvenanceChain]:
        return [self.build_chain(a) for a in self.axioms]

    def trace(self, key: str) -> TracePath:
        """
        Fast single-path lookup.

        Picks the resolvable principle with the highest n_count (first in
        derivation order on ties) and up to two of its signals from
        distinct files.

        Raises:
            AxiomNotFoundError: If key matches no axiom
        """
        axiom = self.resolve(key)
        path = TracePath(axiom=axiom, principle=None)

        best: Principle | None = None
        for principle_id in axiom.derivation.principle_ids:
            principle = self.principles.get(principle_id)
            if principle is None:
                path.broken_links.append(BrokenLink("principle", principle_id, axiom.id))
                continue
            if best is None or principle.n_count > best.n_count:
                best = principle

        if best is not None:
            sources, broken = _distinct_sources(best, self.signals)
            path.principle = PrincipleLink(best.id, best.text, best.n_count, sources)
            path.broken_links.extend(broken)

        return path


__all__ = [
    "BrokenLink",
    "PrincipleLink",
    "ProvenanceChain",
    "ProvenanceIndex",
    "SourceLocation",
    "TracePath",
    "build_chain",
    "resolve_axiom",
]
