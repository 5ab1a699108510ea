# src/cakecompiler/scoring/happiness.py
"""
Happiness model (candidate-level scoring and ranking).

This module implements the weighted happiness formula:
- `score`: H = w_self * (self . cake) + w_partner * (partner . cake), weights normalized first
- `optimal_vector`: the weighted blend of self and partner, i.e. the theoretical best-fit cake
- `rank`: score every candidate, sort by descending total score, assign ranks 1..N

Rankings are always recomputed from inputs; nothing here keeps state between calls.
"""

from __future__ import annotations

import logging
from typing import Iterable

from cakecompiler.config.settings import Settings
from cakecompiler.domain.happiness import (
    DEFAULT_WEIGHTS,
    CakeCandidate,
    CakeRanking,
    HappinessScore,
    HappinessWeights,
    RankedCake,
)
from cakecompiler.domain.vector import PreferenceVector

logger = logging.getLogger(__name__)


class HappinessModel:
    def __init__(self, default_weights: HappinessWeights = DEFAULT_WEIGHTS) -> None:
        self.default_weights = default_weights

    @classmethod
    def from_settings(cls, settings: Settings) -> "HappinessModel":
        return cls(
            HappinessWeights(
                self_weight=settings.scoring.self_weight,
                partner_weight=settings.scoring.partner_weight,
            )
        )

    def _weights(self, weights: HappinessWeights | None) -> HappinessWeights:
        return weights if weights is not None else self.default_weights

    def score(
        self,
        self_preference: PreferenceVector,
        partner_preference: PreferenceVector,
        cake_vector: PreferenceVector,
        weights: HappinessWeights | None = None,
    ) -> HappinessScore:
        return HappinessScore.calculate(
            self_preference, partner_preference, cake_vector, self._weights(weights)
        )

    def optimal_vector(
        self,
        self_preference: PreferenceVector,
        partner_preference: PreferenceVector,
        weights: HappinessWeights | None = None,
    ) -> PreferenceVector:
        normalized = self._weights(weights).normalized()
        return self_preference.blend(partner_preference, normalized.self_weight, normalized.partner_weight)

    def max_possible_score(
        self,
        self_preference: PreferenceVector,
        partner_preference: PreferenceVector,
        weights: HappinessWeights | None = None,
    ) -> float:
        """Score of the optimal vector; the ceiling used by `optimality`."""
        optimal = self.optimal_vector(self_preference, partner_preference, weights)
        return self.score(self_preference, partner_preference, optimal, weights).total_score

    def rank(
        self,
        self_preference: PreferenceVector,
        partner_preference: PreferenceVector,
        candidates: Iterable[CakeCandidate],
        weights: HappinessWeights | None = None,
    ) -> CakeRanking:
        scored = [
            (cake, self.score(self_preference, partner_preference, cake.vector, weights))
            for cake in candidates
        ]
        # sorted() is stable, so equal scores keep their input order.
        scored = sorted(scored, key=lambda pair: pair[1].total_score, reverse=True)

        ranking = CakeRanking(
            rankings=tuple(
                RankedCake(rank=i, cake_id=cake.id, cake_name=cake.name, score=score)
                for i, (cake, score) in enumerate(scored, start=1)
            )
        )
        if ranking.top_choice is not None:
            logger.debug(
                "Ranked %d candidates; top=%s (%.3f)",
                len(ranking),
                ranking.top_choice.cake_id,
                ranking.top_choice.score.total_score,
            )
        return ranking

    def optimality(
        self,
        self_preference: PreferenceVector,
        partner_preference: PreferenceVector,
        cake_vector: PreferenceVector,
        weights: HappinessWeights | None = None,
    ) -> float:
        """Actual score / max score; 0.0 when the max score is exactly zero."""
        actual = self.score(self_preference, partner_preference, cake_vector, weights).total_score
        max_score = self.max_possible_score(self_preference, partner_preference, weights)
        if max_score == 0.0:
            return 0.0
        return actual / max_score
