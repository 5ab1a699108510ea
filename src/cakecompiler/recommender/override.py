"""
Applying the user's decision.

The engine recommends; the user decides. `create_override` cannot fail for well-formed
arguments, and an override that scores lower than the recommendation is recorded as data
(`score_difference`), never reported as a mistake.

Sign convention: `score_difference = recommendation score - chosen score`, so a positive
value means the override scored *lower* than the recommendation (`is_lower_score`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

from cakecompiler.domain.choice import (
    Acceptance,
    ManualOverride,
    OverrideReason,
    Unspecified,
    UserChoice,
)
from cakecompiler.domain.happiness import HappinessScore, HappinessWeights, RankedCake
from cakecompiler.domain.serendipity import SerendipityEvent
from cakecompiler.domain.vector import PreferenceVector
from cakecompiler.scoring.happiness import HappinessModel
from cakecompiler.serendipity.detector import SerendipityDetector

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Accepted:
    final_cake_id: str
    final_cake_name: str
    original_score: HappinessScore
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class Overridden:
    final_cake_id: str
    final_cake_name: str
    original_recommendation: RankedCake
    chosen_score: HappinessScore
    score_difference: float
    reason: OverrideReason
    triggered_serendipity: SerendipityEvent | None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def is_lower_score(self) -> bool:
        """The chosen cake scored below the recommendation. Not a judgement."""
        return self.score_difference > 0

    @property
    def has_learning_opportunity(self) -> bool:
        return self.triggered_serendipity is not None


OverrideResult = Union[Accepted, Overridden]


class OverrideHandler:
    def __init__(
        self,
        model: HappinessModel | None = None,
        detector: SerendipityDetector | None = None,
    ) -> None:
        self.model = model or HappinessModel()
        self.detector = detector or SerendipityDetector()

    def create_override(
        self,
        recommendation: RankedCake,
        chosen_cake_id: str,
        chosen_cake_name: str,
        chosen_cake_vector: PreferenceVector,
        reason: OverrideReason | None = None,
    ) -> ManualOverride:
        return ManualOverride(
            recommended_cake=recommendation,
            chosen_cake_id=chosen_cake_id,
            chosen_cake_name=chosen_cake_name,
            chosen_cake_vector=chosen_cake_vector,
            reason=reason if reason is not None else Unspecified(),
        )

    def apply_choice(
        self,
        recommendation: RankedCake,
        choice: UserChoice,
        self_preference: PreferenceVector,
        partner_preference: PreferenceVector,
        weights: HappinessWeights | None = None,
    ) -> OverrideResult:
        if isinstance(choice, Acceptance):
            return Accepted(
                final_cake_id=recommendation.cake_id,
                final_cake_name=recommendation.cake_name,
                original_score=recommendation.score,
            )
        return self._apply_override(recommendation, choice, self_preference, partner_preference, weights)

    def might_trigger_serendipity(self, expected: PreferenceVector, actual: PreferenceVector) -> bool:
        return self.detector.detect(expected, actual) is not None

    def _apply_override(
        self,
        recommendation: RankedCake,
        override: ManualOverride,
        self_preference: PreferenceVector,
        partner_preference: PreferenceVector,
        weights: HappinessWeights | None,
    ) -> Overridden:
        chosen_score = self.model.score(
            self_preference, partner_preference, override.chosen_cake_vector, weights
        )
        optimal = self.model.optimal_vector(self_preference, partner_preference, weights)
        event = self.detector.detect(optimal, override.chosen_cake_vector)
        score_difference = recommendation.score.total_score - chosen_score.total_score

        logger.info(
            "Override applied: %s -> %s score_difference=%.3f serendipity=%s",
            recommendation.cake_id,
            override.chosen_cake_id,
            score_difference,
            event is not None,
        )
        return Overridden(
            final_cake_id=override.chosen_cake_id,
            final_cake_name=override.chosen_cake_name,
            original_recommendation=recommendation,
            chosen_score=chosen_score,
            score_difference=score_difference,
            reason=override.reason,
            triggered_serendipity=event,
        )
