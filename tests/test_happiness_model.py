import math

import pytest

from cakecompiler.config.settings import Settings
from cakecompiler.domain.happiness import (
    DEFAULT_WEIGHTS,
    EQUAL_WEIGHTS,
    SELF_FOCUSED_WEIGHTS,
    CakeCandidate,
    HappinessWeights,
)
from cakecompiler.domain.vector import PreferenceVector
from cakecompiler.scoring.explain import one_line_summary, ranking_summary
from cakecompiler.scoring.happiness import HappinessModel

SELF = PreferenceVector.of(0.8, 0.2, 0.5, 0.5, 0.5)
PARTNER = PreferenceVector.of(0.2, 0.8, 0.5, 0.5, 0.5)

CANDIDATES = [
    CakeCandidate(id="neutral", name="Plain Sponge", vector=PreferenceVector.neutral()),
    CakeCandidate(id="empty", name="Air", vector=PreferenceVector.zero()),
    CakeCandidate(id="sweet-sour", name="Lemon Drizzle", vector=PreferenceVector.of(1.0, 1.0, 0.0, 0.0, 0.0)),
]


def test_default_weights_prioritize_partner():
    assert DEFAULT_WEIGHTS.self_weight == 0.2
    assert DEFAULT_WEIGHTS.partner_weight == 0.8
    assert DEFAULT_WEIGHTS.partner_priority_ratio() == pytest.approx(4.0)
    assert EQUAL_WEIGHTS.partner_priority_ratio() == pytest.approx(1.0)
    assert SELF_FOCUSED_WEIGHTS.normalized().self_weight == pytest.approx(0.6)
    assert HappinessWeights(self_weight=0.0, partner_weight=1.0).partner_priority_ratio() == math.inf


def test_weights_must_have_positive_sum():
    with pytest.raises(ValueError, match="must be positive"):
        HappinessWeights(self_weight=0.0, partner_weight=0.0)
    with pytest.raises(ValueError):
        HappinessWeights(self_weight=-0.1, partner_weight=1.0)


def test_weights_are_normalized_before_scoring():
    model = HappinessModel()
    unnormalized = HappinessWeights(self_weight=1.0, partner_weight=4.0)
    cake = PreferenceVector.of(0.3, 0.9, 0.5, 0.5, 0.5)

    a = model.score(SELF, PARTNER, cake, unnormalized)
    b = model.score(SELF, PARTNER, cake, DEFAULT_WEIGHTS)

    assert a.total_score == pytest.approx(b.total_score)


def test_rank_reproduces_the_formula_end_to_end():
    ranking = HappinessModel().rank(SELF, PARTNER, CANDIDATES)

    assert [r.cake_id for r in ranking.rankings] == ["neutral", "sweet-sour", "empty"]
    assert [r.rank for r in ranking.rankings] == [1, 2, 3]
    for ranked in ranking.rankings:
        cake = next(c for c in CANDIDATES if c.id == ranked.cake_id)
        expected = 0.2 * SELF.dot(cake.vector) + 0.8 * PARTNER.dot(cake.vector)
        assert ranked.score.total_score == pytest.approx(expected)

    assert ranking.top_choice.score.total_score == pytest.approx(1.25)
    assert ranking.find("sweet-sour").score.total_score == pytest.approx(1.0)
    assert ranking.find("empty").score.total_score == 0.0
    assert ranking.find("missing") is None


def test_rank_is_stable_on_ties_and_handles_empty_input():
    model = HappinessModel()
    twins = [
        CakeCandidate(id="first", name="Twin A", vector=PreferenceVector.neutral()),
        CakeCandidate(id="second", name="Twin B", vector=PreferenceVector.neutral()),
    ]

    ranking = model.rank(SELF, PARTNER, twins)
    assert [r.cake_id for r in ranking.rankings] == ["first", "second"]

    empty = model.rank(SELF, PARTNER, [])
    assert empty.is_empty
    assert empty.top_choice is None
    assert len(empty) == 0


def test_optimal_vector_scores_exactly_one_optimality():
    model = HappinessModel()
    optimal = model.optimal_vector(SELF, PARTNER)

    assert optimal.to_list() == pytest.approx([0.32, 0.68, 0.5, 0.5, 0.5])
    assert model.optimality(SELF, PARTNER, optimal) == 1.0


def test_optimality_is_zero_when_max_score_is_zero():
    model = HappinessModel()
    zero = PreferenceVector.zero()

    assert model.max_possible_score(zero, zero) == 0.0
    assert model.optimality(zero, zero, PreferenceVector.neutral()) == 0.0


def test_score_breakdown():
    score = HappinessModel().score(SELF, PARTNER, PreferenceVector.of(0.3, 0.9, 0.5, 0.5, 0.5))

    assert score.self_alignment == pytest.approx(1.17)
    assert score.partner_alignment == pytest.approx(1.53)
    assert score.self_contribution == pytest.approx(0.234)
    assert score.partner_contribution == pytest.approx(1.224)
    assert score.is_partner_favored()
    assert score.alignment_difference() == pytest.approx(-0.36)


def test_model_from_settings_uses_configured_weights():
    settings = Settings.model_validate({"scoring": {"self_weight": 0.5, "partner_weight": 0.5}})
    model = HappinessModel.from_settings(settings)

    cake = PreferenceVector.of(1.0, 0.0, 1.0, 0.0, 1.0)
    assert model.score(SELF, PARTNER, cake).total_score == pytest.approx(1.5)


def test_explain_summaries():
    ranking = HappinessModel().rank(SELF, PARTNER, CANDIDATES)

    line = one_line_summary(ranking.top_choice)
    assert line.startswith("#1 neutral total=1.250")
    assert "(w=0.20)" in line and "(w=0.80)" in line
    assert len(ranking_summary(ranking).splitlines()) == 3
    assert ranking_summary(HappinessModel().rank(SELF, PARTNER, [])) == "(no candidates)"
