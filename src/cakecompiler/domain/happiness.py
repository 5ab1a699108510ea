"""
Happiness scoring value types (Pydantic).

Formula:
    H_total = w_self * (V_self . V_cake) + w_partner * (V_partner . V_cake)

with (w_self, w_partner) normalized to sum to 1.0. The default weights (0.2, 0.8) prioritize
the partner's happiness.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cakecompiler.domain.vector import PreferenceVector


class HappinessWeights(BaseModel):
    """A (self, partner) weight pair; both non-negative with a positive sum."""

    model_config = ConfigDict(frozen=True)

    self_weight: float = Field(..., ge=0)
    partner_weight: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _validate_sum(self) -> "HappinessWeights":
        if self.self_weight + self.partner_weight <= 0:
            raise ValueError("At least one happiness weight must be positive")
        return self

    def normalized(self) -> "HappinessWeights":
        """Rescale so the weights sum to 1.0."""
        total = self.self_weight + self.partner_weight
        return HappinessWeights(
            self_weight=self.self_weight / total,
            partner_weight=self.partner_weight / total,
        )

    def partner_priority_ratio(self) -> float:
        """partner / self; infinite when the self weight is zero."""
        if self.self_weight == 0.0:
            return math.inf
        return self.partner_weight / self.self_weight


DEFAULT_WEIGHTS = HappinessWeights(self_weight=0.2, partner_weight=0.8)
EQUAL_WEIGHTS = HappinessWeights(self_weight=0.5, partner_weight=0.5)
SELF_FOCUSED_WEIGHTS = HappinessWeights(self_weight=0.6, partner_weight=0.4)


class HappinessScore(BaseModel):
    """Score of one candidate for a (self, partner, weights) triple, with its breakdown."""

    model_config = ConfigDict(frozen=True)

    total_score: float
    self_alignment: float
    partner_alignment: float
    weights_used: HappinessWeights
    cake_vector: PreferenceVector

    @classmethod
    def calculate(
        cls,
        self_preference: PreferenceVector,
        partner_preference: PreferenceVector,
        cake_vector: PreferenceVector,
        weights: HappinessWeights = DEFAULT_WEIGHTS,
    ) -> "HappinessScore":
        normalized = weights.normalized()
        self_alignment = self_preference.dot(cake_vector)
        partner_alignment = partner_preference.dot(cake_vector)
        total = normalized.self_weight * self_alignment + normalized.partner_weight * partner_alignment
        return cls(
            total_score=total,
            self_alignment=self_alignment,
            partner_alignment=partner_alignment,
            weights_used=weights,
            cake_vector=cake_vector,
        )

    @property
    def self_contribution(self) -> float:
        return self.weights_used.normalized().self_weight * self.self_alignment

    @property
    def partner_contribution(self) -> float:
        return self.weights_used.normalized().partner_weight * self.partner_alignment

    def is_partner_favored(self) -> bool:
        """True when the partner would enjoy this cake more than self."""
        return self.partner_alignment > self.self_alignment

    def alignment_difference(self) -> float:
        """self - partner alignment (positive means self likes it more)."""
        return self.self_alignment - self.partner_alignment


class CakeCandidate(BaseModel):
    """A cake that can be ranked: id, display name and its characteristic vector."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    vector: PreferenceVector


class RankedCake(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: int = Field(..., ge=1)
    cake_id: str
    cake_name: str
    score: HappinessScore


class CakeRanking(BaseModel):
    """Candidates ordered by descending total score; rank 1 is the recommendation."""

    model_config = ConfigDict(frozen=True)

    rankings: tuple[RankedCake, ...] = ()

    @property
    def top_choice(self) -> RankedCake | None:
        return self.rankings[0] if self.rankings else None

    @property
    def is_empty(self) -> bool:
        return not self.rankings

    def __len__(self) -> int:
        return len(self.rankings)

    def find(self, cake_id: str) -> RankedCake | None:
        for ranked in self.rankings:
            if ranked.cake_id == cake_id:
                return ranked
        return None
