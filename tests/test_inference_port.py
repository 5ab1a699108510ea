import asyncio
import math

import pytest

from cakecompiler.domain.inference import (
    DimensionProbability,
    PreferenceContext,
    PreferenceInferenceResult,
    PreferenceProbabilityDistribution,
    PreviousChoice,
    Season,
    StaticPreferenceProvider,
)
from cakecompiler.domain.platform import HapticKind, NoOpHapticFeedback, ShakeEvent
from cakecompiler.domain.vector import PreferenceDimension, PreferenceVector


def _context(partner_id: str = "p-1") -> PreferenceContext:
    return PreferenceContext(partner_id=partner_id, partner_name="Sam", occasion="anniversary", season=Season.WINTER)


def test_confidence_bands():
    high = PreferenceInferenceResult(inferred_preference=PreferenceVector.neutral(), confidence=0.7)
    low = PreferenceInferenceResult(inferred_preference=PreferenceVector.neutral(), confidence=0.39)

    assert high.is_high_confidence()
    assert not high.is_low_confidence()
    assert low.is_low_confidence()
    assert not low.is_high_confidence()

    with pytest.raises(ValueError):
        PreferenceInferenceResult(inferred_preference=PreferenceVector.neutral(), confidence=1.2)


def test_dimension_probability_validation_and_uncertainty():
    p = DimensionProbability(mean=0.6, variance=0.16, mode=0.7, confidence_interval=(0.2, 0.9))

    assert p.standard_deviation == pytest.approx(0.4)
    assert p.is_high_uncertainty()

    with pytest.raises(ValueError, match="lower bound"):
        DimensionProbability(mean=0.5, variance=0.01, mode=0.5, confidence_interval=(0.8, 0.2))
    with pytest.raises(ValueError):
        DimensionProbability(mean=0.5, variance=-0.01, mode=0.5, confidence_interval=(0.4, 0.6))


def test_distribution_vectors_default_missing_axes_to_half():
    dist = PreferenceProbabilityDistribution(
        distributions={
            PreferenceDimension.SWEETNESS: DimensionProbability(
                mean=0.7, variance=0.02, mode=0.8, confidence_interval=(0.6, 0.8)
            )
        }
    )

    assert dist.most_likely_vector().to_list() == [0.8, 0.5, 0.5, 0.5, 0.5]
    assert dist.expected_vector().to_list() == [0.7, 0.5, 0.5, 0.5, 0.5]


def test_previous_choice_rating_range():
    with pytest.raises(ValueError):
        PreviousChoice(
            cake_id="opera", cake_name="Opera", cake_vector=PreferenceVector.neutral(), was_enjoyed=True, rating=6
        )


def test_static_provider_returns_canned_and_default_answers():
    provider = StaticPreferenceProvider(default_preference=PreferenceVector.zero(), default_confidence=0.5)
    canned = PreferenceInferenceResult(
        inferred_preference=PreferenceVector.of(0.2, 0.8, 0.5, 0.5, 0.5), confidence=0.9, reasoning="history"
    )
    provider.set_response_for("p-1", canned)

    assert asyncio.run(provider.infer_preference(_context("p-1"))) == canned

    fallback = asyncio.run(provider.infer_preference(_context("p-2")))
    assert fallback.inferred_preference == PreferenceVector.zero()
    assert fallback.confidence == 0.5
    assert fallback.reasoning == "Static inference for Sam"

    dist = asyncio.run(provider.get_preference_probabilities(_context()))
    assert dist.expected_vector() == PreferenceVector.neutral()
    assert not dist.distributions[PreferenceDimension.TEXTURE].is_high_uncertainty()


def test_shake_event_thresholds():
    assert ShakeEvent(timestamp_ms=0, intensity=0.6, duration_ms=400).should_trigger_serendipity
    assert not ShakeEvent(timestamp_ms=0, intensity=0.5, duration_ms=400).should_trigger_serendipity
    assert not ShakeEvent(timestamp_ms=0, intensity=0.9, duration_ms=300).should_trigger_serendipity
    assert ShakeEvent(timestamp_ms=0, intensity=0.8, duration_ms=100).is_strong
    assert ShakeEvent(timestamp_ms=0, intensity=0.4, duration_ms=100).triggers_serendipity(
        min_intensity=0.3, min_duration_ms=50
    )

    with pytest.raises(ValueError, match="intensity"):
        ShakeEvent(timestamp_ms=0, intensity=math.inf, duration_ms=100)


def test_noop_haptics_accepts_every_kind():
    haptics = NoOpHapticFeedback()
    for kind in HapticKind:
        assert haptics.play(kind) is None
