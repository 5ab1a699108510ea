import pytest

from cakecompiler.domain.choice import (
    Acceptance,
    Curiosity,
    ManualOverride,
    PartnerInsight,
    Unspecified,
    can_override,
    chosen_cake_id,
)
from cakecompiler.domain.happiness import CakeCandidate
from cakecompiler.domain.vector import PreferenceVector
from cakecompiler.recommender.override import Accepted, Overridden, OverrideHandler
from cakecompiler.scoring.happiness import HappinessModel

SELF = PreferenceVector.of(0.8, 0.2, 0.5, 0.5, 0.5)
PARTNER = PreferenceVector.of(0.2, 0.8, 0.5, 0.5, 0.5)

TART = CakeCandidate(id="tart", name="Raspberry Tart", vector=PreferenceVector.of(0.3, 0.9, 0.5, 0.5, 0.5))
FROZEN = CakeCandidate(id="frozen", name="Frozen Parfait", vector=PreferenceVector.of(1.0, 0.0, 1.0, 0.0, 1.0))
CLASSIC = CakeCandidate(id="classic", name="Victoria Sponge", vector=PreferenceVector.neutral())


def _recommendation():
    return HappinessModel().rank(SELF, PARTNER, [TART, FROZEN, CLASSIC]).top_choice


def test_override_is_unconditional():
    handler = OverrideHandler()
    recommendation = _recommendation()

    assert can_override()
    override = handler.create_override(recommendation, FROZEN.id, FROZEN.name, FROZEN.vector)

    assert isinstance(override, ManualOverride)
    assert override.reason == Unspecified()
    assert chosen_cake_id(override) == "frozen"
    assert chosen_cake_id(Acceptance(recommended_cake=recommendation)) == "tart"


def test_acceptance_keeps_recommendation_score():
    handler = OverrideHandler()
    recommendation = _recommendation()

    result = handler.apply_choice(recommendation, Acceptance(recommended_cake=recommendation), SELF, PARTNER)

    assert isinstance(result, Accepted)
    assert result.final_cake_id == "tart"
    assert result.final_cake_name == "Raspberry Tart"
    assert result.original_score == recommendation.score


def test_lower_scoring_override_is_recorded_not_rejected():
    handler = OverrideHandler()
    recommendation = _recommendation()
    override = handler.create_override(recommendation, CLASSIC.id, CLASSIC.name, CLASSIC.vector, Curiosity())

    result = handler.apply_choice(recommendation, override, SELF, PARTNER)

    assert isinstance(result, Overridden)
    assert result.final_cake_id == "classic"
    # recommendation score minus chosen score: positive means the override scored lower.
    assert result.score_difference == pytest.approx(1.458 - 1.25)
    assert result.is_lower_score
    assert result.reason == Curiosity()
    assert result.triggered_serendipity is None
    assert not result.has_learning_opportunity


def test_divergent_override_triggers_serendipity():
    handler = OverrideHandler()
    recommendation = _recommendation()
    override = handler.create_override(
        recommendation, FROZEN.id, FROZEN.name, FROZEN.vector, PartnerInsight(note="loves ice cream lately")
    )

    result = handler.apply_choice(recommendation, override, SELF, PARTNER)

    assert result.chosen_score.total_score == pytest.approx(1.32)
    assert result.original_recommendation == recommendation
    assert result.has_learning_opportunity
    assert result.triggered_serendipity.expected_vector.to_list() == pytest.approx([0.32, 0.68, 0.5, 0.5, 0.5])
    assert len(result.triggered_serendipity.discovered_aspects) == 5


def test_higher_scoring_override_has_negative_difference():
    handler = OverrideHandler()
    ranking = HappinessModel().rank(SELF, PARTNER, [TART, CLASSIC])
    # Pretend the lower-ranked cake had been recommended.
    recommendation = ranking.find("classic")
    override = handler.create_override(recommendation, TART.id, TART.name, TART.vector)

    result = handler.apply_choice(recommendation, override, SELF, PARTNER)

    assert result.score_difference < 0
    assert not result.is_lower_score


def test_might_trigger_serendipity():
    handler = OverrideHandler()
    optimal = HappinessModel().optimal_vector(SELF, PARTNER)

    assert handler.might_trigger_serendipity(optimal, FROZEN.vector)
    assert not handler.might_trigger_serendipity(optimal, TART.vector)
