"""
Unit tests for cascading axiom promotion.

Tests:
- Tier labels follow n_count, never the cascade floor
- Cascade floors, early stop and monotonic relaxation
- Deterministic ordering
- Guardrail warnings and cognitive-load pruning
- Notation with native fallback
"""

import pytest

from soulsynth.errors import InvalidInputError
from soulsynth.models import AxiomTier, Dimension, NotationFormat, Principle, tier_for_count
from soulsynth.synthesis.compressor import (
    NO_AXIOMS_NOTE,
    candidates_at_floor,
    promote,
    run_cascade,
)
from soulsynth.synthesis.guardrails import check_guardrails
from soulsynth.synthesis.notation import NotationGenerator


def make_principle(pid, n_count, dimension=Dimension.HONESTY_FRAMEWORK, sequence=0, text=None):
    return Principle(
        id=pid,
        text=text or f"principle {pid}",
        dimension=dimension,
        signal_ids=[f"{pid}-s{i}" for i in range(n_count)],
        sequence=sequence,
    )


# ============================================================================
# Tiers
# ============================================================================


class TestTierForCount:
    @pytest.mark.parametrize(
        "n_count,tier",
        [
            (1, AxiomTier.EMERGING),
            (2, AxiomTier.EMERGING),
            (3, AxiomTier.DOMAIN),
            (4, AxiomTier.DOMAIN),
            (5, AxiomTier.CORE),
            (12, AxiomTier.CORE),
        ],
    )
    def test_boundaries(self, n_count, tier):
        assert tier_for_count(n_count) is tier


# ============================================================================
# Cascade
# ============================================================================


class TestCascade:
    def test_stops_at_strictest_floor_that_meets_target(self):
        principles = [make_principle(f"p{i}", 3, sequence=i) for i in range(3)]
        principles.append(make_principle("weak", 1, sequence=9))

        selected, meta = run_cascade(principles, target_minimum_axioms=3)

        assert meta.effective_floor == 3
        assert meta.counts_by_floor == {3: 3}
        assert "weak" not in {p.id for p in selected}

    def test_relaxes_until_target(self):
        principles = [make_principle("a", 4), make_principle("b", 2, sequence=1), make_principle("c", 1, sequence=2)]

        selected, meta = run_cascade(principles, target_minimum_axioms=3)

        assert meta.counts_by_floor == {3: 1, 2: 2, 1: 3}
        assert meta.effective_floor == 1
        assert [p.id for p in selected] == ["a", "b", "c"]

    def test_relaxation_is_monotonic(self):
        principles = [make_principle(f"p{i}", n, sequence=i) for i, n in enumerate([5, 3, 2, 2, 1, 1])]

        sets = [{p.id for p in candidates_at_floor(principles, floor)} for floor in (3, 2, 1)]

        assert sets[0] <= sets[1] <= sets[2]

    def test_order_is_deterministic(self):
        principles = [
            make_principle("late-honesty", 2, Dimension.HONESTY_FRAMEWORK, sequence=5),
            make_principle("voice", 2, Dimension.VOICE_PRESENCE, sequence=1),
            make_principle("core", 2, Dimension.IDENTITY_CORE, sequence=9),
            make_principle("early-honesty", 2, Dimension.HONESTY_FRAMEWORK, sequence=2),
            make_principle("strong", 6, Dimension.CONTINUITY_GROWTH, sequence=3),
        ]

        ordered = [p.id for p in candidates_at_floor(principles, 1)]

        assert ordered == ["strong", "core", "voice", "early-honesty", "late-honesty"]


# ============================================================================
# promote
# ============================================================================


class TestPromote:
    @pytest.mark.asyncio
    async def test_single_strong_principle_is_core(self):
        result = await promote([make_principle("honest", 5)])

        assert len(result.axioms) == 1
        axiom = result.axioms[0]
        assert axiom.tier is AxiomTier.CORE
        assert axiom.n_count == 5
        assert axiom.derivation.principle_ids == ("honest",)

    @pytest.mark.asyncio
    async def test_sparse_evidence_falls_back_with_honest_tiers(self):
        principles = [make_principle("a", 2), make_principle("b", 2, sequence=1)]

        result = await promote(principles, target_minimum_axioms=3)

        assert result.cascade.counts_by_floor == {3: 0, 2: 2, 1: 2}
        assert result.cascade.effective_floor == 1
        assert len(result.axioms) == 2
        assert all(a.tier is AxiomTier.EMERGING for a in result.axioms)
        assert result.has_warning("fallback")

    @pytest.mark.asyncio
    async def test_strong_principle_found_at_low_floor_keeps_core_tier(self):
        principles = [make_principle("strong", 6), make_principle("weak", 1, sequence=1)]

        result = await promote(principles, target_minimum_axioms=3)

        tiers = {a.derivation.principle_ids[0]: a.tier for a in result.axioms}
        assert result.cascade.effective_floor == 1
        assert tiers == {"strong": AxiomTier.CORE, "weak": AxiomTier.EMERGING}

    @pytest.mark.asyncio
    async def test_tier_always_matches_n_count(self):
        principles = [make_principle(f"p{i}", n, sequence=i) for i, n in enumerate([1, 2, 3, 4, 5, 7])]

        result = await promote(principles, target_minimum_axioms=10)

        for axiom in result.axioms:
            assert axiom.tier is tier_for_count(axiom.n_count)

    @pytest.mark.asyncio
    async def test_empty_input_yields_note(self):
        result = await promote([])

        assert result.axioms == []
        assert result.notes == [NO_AXIOMS_NOTE]
        assert result.warnings == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", [None, "principles", {"a": 1}, [{"id": "p1"}]])
    async def test_malformed_input_rejected(self, bad):
        with pytest.raises(InvalidInputError):
            await promote(bad)

    @pytest.mark.asyncio
    async def test_no_fallback_warning_at_strict_floor(self):
        principles = [make_principle(f"p{i}", 3, sequence=i) for i in range(3)]

        result = await promote(principles)

        assert not result.has_warning("fallback")
        assert all(a.tier is AxiomTier.DOMAIN for a in result.axioms)

    @pytest.mark.asyncio
    async def test_history_records_promotion(self):
        result = await promote([make_principle("honest", 5)])

        history = result.axioms[0].history
        assert history[0]["type"] == "created"
        assert "honest" in history[0]["details"]


class TestPruning:
    @pytest.mark.asyncio
    async def test_cap_prunes_weakest(self):
        principles = [make_principle(f"p{i}", 1 + (i % 4), sequence=i) for i in range(8)]

        result = await promote(principles, target_minimum_axioms=20, cognitive_load_cap=5)

        assert len(result.axioms) == 5
        assert len(result.pruned) == 3
        assert result.has_warning("cognitive_load")
        assert min(a.n_count for a in result.axioms) >= max(a.n_count for a in result.pruned)

    @pytest.mark.asyncio
    async def test_small_corpus_flagged_without_pruning(self):
        principles = [make_principle(f"p{i}", 1, sequence=i) for i in range(4)]

        result = await promote(principles, target_minimum_axioms=4)

        assert len(result.axioms) == 4
        assert result.pruned == []
        assert result.has_warning("cognitive_load")


# ============================================================================
# Guardrails
# ============================================================================


class TestGuardrails:
    def test_expansion_relative_to_principles(self):
        warnings = check_guardrails(axiom_count=4, principle_count=4, effective_floor=3, expansion_ratio=0.5)
        assert [w.kind for w in warnings] == ["expansion"]

    def test_cognitive_load(self):
        warnings = check_guardrails(axiom_count=30, principle_count=40, effective_floor=3, cognitive_load_cap=25)
        assert [w.kind for w in warnings] == ["cognitive_load"]

    def test_cognitive_load_scales_with_signal_count(self):
        warnings = check_guardrails(axiom_count=6, principle_count=8, effective_floor=3, signal_count=10)
        assert [w.kind for w in warnings] == ["cognitive_load"]
        assert "> 5" in warnings[0].message

    def test_cap_bounds_large_corpus(self):
        assert check_guardrails(axiom_count=25, principle_count=60, effective_floor=3, signal_count=200) == []
        warnings = check_guardrails(axiom_count=26, principle_count=60, effective_floor=3, signal_count=200)
        assert [w.kind for w in warnings] == ["cognitive_load"]

    def test_fallback_only_with_output(self):
        assert check_guardrails(axiom_count=0, principle_count=0, effective_floor=1) == []

    def test_clean_result(self):
        assert check_guardrails(axiom_count=3, principle_count=10, effective_floor=3) == []


# ============================================================================
# Notation
# ============================================================================


class TestNotation:
    @pytest.mark.asyncio
    async def test_native_format_skips_collaborator(self, fake_collaborator):
        generator = NotationGenerator(fake_collaborator, NotationFormat.NATIVE)

        result = await promote([make_principle("p", 5)], notation=generator)

        assert result.axioms[0].canonical.notated is None
        assert fake_collaborator.generate_calls == []

    @pytest.mark.asyncio
    async def test_generated_notation_is_attached(self, make_collaborator):
        llm = make_collaborator(generations=['"💎 誠: honesty > comfort"'])
        generator = NotationGenerator(llm, NotationFormat.MATH_EMOJI)

        result = await promote([make_principle("p", 5)], notation=generator)

        canonical = result.axioms[0].canonical
        assert canonical.notated == "💎 誠: honesty > comfort"
        assert canonical.notation is NotationFormat.MATH_EMOJI
        assert canonical.native == "principle p"
        assert "誠" in canonical.symbols

    @pytest.mark.asyncio
    async def test_failed_notation_falls_back_to_native(self, make_collaborator):
        llm = make_collaborator(generations=[RuntimeError("down"), RuntimeError("down")])
        generator = NotationGenerator(llm, NotationFormat.MATH, timeout=1.0, retries=1)

        result = await promote([make_principle("p", 5)], notation=generator)

        axiom = result.axioms[0]
        assert axiom.canonical.notated is None
        assert axiom.canonical.render(NotationFormat.MATH) == "principle p"
        assert any("notation unavailable" in note for note in result.notes)

    @pytest.mark.asyncio
    async def test_empty_notation_falls_back(self, make_collaborator):
        generator = NotationGenerator(make_collaborator(generations=["   "]), NotationFormat.LABELED)

        canonical = await generator.canonical_for("Be honest", Dimension.HONESTY_FRAMEWORK)

        assert canonical.notated is None
        assert canonical.native == "Be honest"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ['""', '"', '" \n "'])
    async def test_quote_only_notation_falls_back(self, make_collaborator, reply):
        generator = NotationGenerator(make_collaborator(generations=[reply]), NotationFormat.LABELED)

        canonical = await generator.canonical_for("Be honest", Dimension.HONESTY_FRAMEWORK)

        assert canonical.notated is None

    @pytest.mark.asyncio
    async def test_one_bad_notation_does_not_fail_others(self, make_collaborator):
        generator = NotationGenerator(
            make_collaborator(generations=['""'], default_generation="誠: truth"),
            NotationFormat.LABELED,
        )
        principles = [make_principle(f"p{i}", 3, sequence=i) for i in range(3)]

        result = await promote(principles, notation=generator)

        notated = sorted(a.canonical.notated or "" for a in result.axioms)
        assert notated == ["", "誠: truth", "誠: truth"]
        assert len([n for n in result.notes if "notation unavailable" in n]) == 1
