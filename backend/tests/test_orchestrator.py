"""
Tests for the color selection engine.

Covers:
- exact color names and learned colors short-circuiting analysis
- anchor blending and hue range clamping
- collision handling against the previously shown color
- hash fallback when analysis yields nothing
- weight policies
"""
import pytest

from huequery.services.colors.color_math import blend, shift_hue, to_hsl
from huequery.services.colors.lexicon import COLOR_LEXICON
from huequery.services.fingerprint import generate_fallback_candidates
from huequery.services.orchestrator import (
    ColorSelectionEngine, FixedWeightPolicy, IncrementalWeightPolicy, SelectionRequest, SelectionResult,
    build_weight_policy
)

from conftest import FakeClassifier, FakeSearchProvider, build_store, image_urls

BLUE = COLOR_LEXICON["blue"]


def anchored(candidate, weight=0.8, entry=BLUE):
    return shift_hue(blend(entry.hex, candidate, weight), 0, entry.ranges)


class TestTerminalRules:
    @pytest.mark.asyncio
    async def test_exact_color_name(self, failing_engine):
        result = await failing_engine.select_color(SelectionRequest(query="Red"))
        assert result.color == "#FF0000"
        assert result.source == "raw_exact"
        assert result.to_response() == {"color": "#FF0000", "source": "raw_exact"}

    @pytest.mark.asyncio
    async def test_exact_color_ignores_refinement(self, ocean_engine, ocean_search):
        result = await ocean_engine.select_color(
            SelectionRequest(query="blue", previous_color="#0000FF", mode="refine", step=4)
        )
        assert result.color == "#0000FF"
        assert ocean_search.calls == []

    @pytest.mark.asyncio
    async def test_learned_color(self, ocean_engine, ocean_search, feedback_store):
        feedback_store.record_like("ocean blue", "#123456")
        feedback_store.record_like("Ocean Blue", "#abcdef")

        result = await ocean_engine.select_color(SelectionRequest(query="OCEAN BLUE"))

        assert result.color == "#ABCDEF"
        assert result.source == "learned"
        assert ocean_search.calls == []

    @pytest.mark.asyncio
    async def test_learned_color_skipped_when_refining(self, ocean_engine, feedback_store):
        feedback_store.record_like("ocean blue", "#123456")

        refined = await ocean_engine.select_color(SelectionRequest(query="ocean blue", mode="refine"))
        stepped = await ocean_engine.select_color(SelectionRequest(query="ocean blue", step=1))

        assert refined.source == "weighted_raw"
        assert stepped.source == "weighted_raw"


class TestAnchoredSelection:
    @pytest.mark.asyncio
    async def test_blend_toward_color_name(self, ocean_engine):
        result = await ocean_engine.select_color(SelectionRequest(query="ocean blue"))

        assert result.color == anchored("#1E90FF")
        assert result.color == "#061DFF"
        assert result.source == "weighted_raw"
        assert result.weight == 0.8
        assert result.step == 0
        assert result.to_response() == {"color": "#061DFF", "source": "weighted_raw", "weight": 0.8, "step": 0}

    @pytest.mark.asyncio
    async def test_result_stays_in_hue_range(self, ocean_engine):
        for step in range(4):
            result = await ocean_engine.select_color(SelectionRequest(query="ocean blue", step=step))
            hue = to_hsl(result.color)[0]
            assert 150 - 1.5 <= hue <= 190 + 1.5

    @pytest.mark.asyncio
    async def test_next_step_differs(self, ocean_engine):
        first = await ocean_engine.select_color(SelectionRequest(query="ocean blue"))
        second = await ocean_engine.select_color(
            SelectionRequest(query="ocean blue", previous_color=first.color, step=1)
        )
        assert second.color == anchored("#4682B4")
        assert second.color != first.color

    @pytest.mark.asyncio
    async def test_refine_searches_nudged_variant(self, ocean_engine, ocean_search):
        await ocean_engine.select_color(SelectionRequest(query="ocean blue", mode="refine", step=1))
        assert ocean_search.calls[0][0] == "ocean blue 10 percent more blue"


class TestCollisions:
    @pytest.mark.asyncio
    async def test_collision_advances_to_next_candidate(self, ocean_engine):
        result = await ocean_engine.select_color(
            SelectionRequest(query="ocean blue", previous_color="#061dff")
        )
        assert result.color == anchored("#4682B4")
        assert result.candidate_index == 1

    @pytest.mark.asyncio
    async def test_single_candidate_forces_hue_shift(self, feedback_store):
        urls = image_urls(1)
        store = build_store(FakeSearchProvider(urls), FakeClassifier({urls[0]: ["#1E90FF"]}))
        engine = ColorSelectionEngine(store, feedback_store)

        previous = anchored("#1E90FF")
        result = await engine.select_color(SelectionRequest(query="ocean blue", previous_color=previous))

        assert result.color != previous
        assert result.color == shift_hue(previous, 30, BLUE.ranges)
        hue = to_hsl(result.color)[0]
        assert 150 - 1.5 <= hue <= 190 + 1.5

    @pytest.mark.asyncio
    async def test_fallback_collision(self, failing_engine):
        candidates = generate_fallback_candidates("xyzzy")
        result = await failing_engine.select_color(
            SelectionRequest(query="xyzzy", previous_color=candidates[0])
        )
        assert result.color != candidates[0]


class TestFallback:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", [0, 3, 14])
    async def test_hash_fallback_is_reproducible(self, failing_engine, step):
        expected = generate_fallback_candidates("xyzzy")[step]

        first = await failing_engine.select_color(SelectionRequest(query="xyzzy", step=step))
        again = await failing_engine.select_color(SelectionRequest(query="xyzzy", step=step))

        assert first.color == again.color == expected
        assert first.source == "analyzed_candidate"
        assert first.degraded
        assert first.weight is None

    @pytest.mark.asyncio
    async def test_fallback_wraps_step(self, failing_engine):
        result = await failing_engine.select_color(SelectionRequest(query="xyzzy", step=17))
        assert result.color == generate_fallback_candidates("xyzzy")[2]

    @pytest.mark.asyncio
    async def test_no_images_still_anchored(self, feedback_store):
        engine = ColorSelectionEngine(build_store(FakeSearchProvider([]), FakeClassifier()), feedback_store)

        result = await engine.select_color(SelectionRequest(query="ocean blue"))

        assert result.source == "weighted_raw"
        assert result.degraded
        assert result.color == anchored(generate_fallback_candidates("ocean blue")[0])

    def test_select_fallback(self, ocean_engine, ocean_search):
        result = ocean_engine.select_fallback(SelectionRequest(query="xyzzy", step=2))
        assert result.color == generate_fallback_candidates("xyzzy")[2]
        assert ocean_search.calls == []

    def test_select_fallback_keeps_exact_names(self, ocean_engine):
        result = ocean_engine.select_fallback(SelectionRequest(query="green"))
        assert result.color == "#008000"
        assert result.source == "raw_exact"


class TestWeightPolicies:
    def test_fixed(self):
        policy = FixedWeightPolicy()
        assert [policy.weight_for(step) for step in (0, 1, 50)] == [0.8, 0.8, 0.8]

    def test_incremental_grows_then_resets(self):
        policy = IncrementalWeightPolicy()
        assert policy.weight_for(0) == 0.8
        assert policy.weight_for(1) == 0.839
        assert policy.weight_for(5) == 0.995
        assert policy.weight_for(6) == 0.01
        assert policy.weight_for(7) == 0.049

    def test_build_by_name(self):
        assert isinstance(build_weight_policy("fixed"), FixedWeightPolicy)
        assert isinstance(build_weight_policy("incremental"), IncrementalWeightPolicy)
        with pytest.raises(ValueError):
            build_weight_policy("random")

    @pytest.mark.asyncio
    async def test_engine_uses_policy(self, ocean_search, ocean_classifier, feedback_store):
        engine = ColorSelectionEngine(
            build_store(ocean_search, ocean_classifier),
            feedback_store,
            weight_policy=IncrementalWeightPolicy()
        )
        result = await engine.select_color(SelectionRequest(query="ocean blue", step=1))
        assert result.weight == 0.839
        assert result.color == anchored("#4682B4", weight=0.839)


def test_response_omits_missing_fields():
    assert SelectionResult(color="#ABCDEF", source="learned").to_response() == {
        "color": "#ABCDEF", "source": "learned"
    }
