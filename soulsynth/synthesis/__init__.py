"""
Synthesis Module - signals to principles to axioms

Components:
    - classifiers.py: cosine and collaborator-judgment similarity scoring
    - matcher.py: best-match selection with deterministic tie-breaks
    - principle_store.py: signal merging and principle bookkeeping
    - generalizer.py: pluggable principle text generalization
    - compressor.py: cascading-threshold axiom promotion
    - notation.py: canonical notation generation with native fallback
    - guardrails.py: advisory promotion warnings
    - provenance.py: axiom -> principle -> signal -> source chains
    - metrics.py: compression and coverage metrics
    - collaborators.py: external classify/generate interface with retry
"""

from .classifiers import (
    CosineSimilarityClassifier,
    JudgmentSimilarityClassifier,
    MatchCandidate,
    SimilarityClassifier,
    make_classifier,
)
from .compressor import PromotionResult, promote
from .matcher import MatchResult, find_best_match
from .principle_store import IngestResult, PrincipleStore
from .provenance import ProvenanceChain, ProvenanceIndex, build_chain


__all__ = [
    "CosineSimilarityClassifier",
    "IngestResult",
    "JudgmentSimilarityClassifier",
    "MatchCandidate",
    "MatchResult",
    "PrincipleStore",
    "PromotionResult",
    "ProvenanceChain",
    "ProvenanceIndex",
    "SimilarityClassifier",
    "build_chain",
    "find_best_match",
    "make_classifier",
    "promote",
]
