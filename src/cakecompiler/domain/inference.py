"""
Preference-inference port.

The engine never calls an inference backend itself. Hosts call a `PartnerPreferenceProvider`
(a networked model, a rules engine, a test double) and inject the result into
`SelectionController.initialize(...)`. Only the contract lives here, plus an in-memory
`StaticPreferenceProvider` used by tests and offline hosts.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cakecompiler.domain.vector import DIMENSIONS, PreferenceDimension, PreferenceVector

HIGH_CONFIDENCE = 0.7
LOW_CONFIDENCE = 0.4
# Variance above which a per-axis estimate counts as highly uncertain.
HIGH_UNCERTAINTY_VARIANCE = 0.1


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"


class PreviousChoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    cake_id: str
    cake_name: str
    cake_vector: PreferenceVector
    was_enjoyed: bool
    rating: int | None = Field(default=None, ge=1, le=5)


class PreferenceContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    partner_id: str
    partner_name: str
    previous_choices: tuple[PreviousChoice, ...] = ()
    occasion: str | None = None
    time_of_day: TimeOfDay = TimeOfDay.AFTERNOON
    season: Season = Season.SPRING
    additional_context: dict[str, str] = Field(default_factory=dict)


class PreferenceInferenceResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    inferred_preference: PreferenceVector
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str | None = None
    dimension_confidences: dict[PreferenceDimension, float] = Field(default_factory=dict)

    def is_high_confidence(self, threshold: float = HIGH_CONFIDENCE) -> bool:
        return self.confidence >= threshold

    def is_low_confidence(self, threshold: float = LOW_CONFIDENCE) -> bool:
        return self.confidence < threshold


class DimensionProbability(BaseModel):
    model_config = ConfigDict(frozen=True)

    mean: float = Field(..., ge=0.0, le=1.0)
    variance: float = Field(..., ge=0.0)
    mode: float = Field(..., ge=0.0, le=1.0)
    confidence_interval: tuple[float, float]

    @model_validator(mode="after")
    def _validate_interval(self) -> "DimensionProbability":
        low, high = self.confidence_interval
        if low > high:
            raise ValueError("confidence_interval lower bound must not exceed upper bound")
        return self

    @property
    def standard_deviation(self) -> float:
        return math.sqrt(self.variance)

    def is_high_uncertainty(self) -> bool:
        return self.variance > HIGH_UNCERTAINTY_VARIANCE


class PreferenceProbabilityDistribution(BaseModel):
    """Per-axis distributions; axes the provider did not report default to 0.5."""

    model_config = ConfigDict(frozen=True)

    distributions: dict[PreferenceDimension, DimensionProbability] = Field(default_factory=dict)

    def most_likely_vector(self) -> PreferenceVector:
        return PreferenceVector.from_values(
            self.distributions[dim].mode if dim in self.distributions else 0.5 for dim in DIMENSIONS
        )

    def expected_vector(self) -> PreferenceVector:
        return PreferenceVector.from_values(
            self.distributions[dim].mean if dim in self.distributions else 0.5 for dim in DIMENSIONS
        )


class PartnerPreferenceProvider(Protocol):
    async def infer_preference(self, context: PreferenceContext) -> PreferenceInferenceResult: ...

    async def get_preference_probabilities(
        self, context: PreferenceContext
    ) -> PreferenceProbabilityDistribution: ...


class StaticPreferenceProvider:
    """In-memory provider returning canned answers (per partner id when registered)."""

    def __init__(
        self,
        default_preference: PreferenceVector | None = None,
        default_confidence: float = HIGH_CONFIDENCE,
    ) -> None:
        self._default_preference = default_preference or PreferenceVector.neutral()
        self._default_confidence = default_confidence
        self._responses: dict[str, PreferenceInferenceResult] = {}

    def set_response_for(self, partner_id: str, result: PreferenceInferenceResult) -> None:
        self._responses[partner_id] = result

    async def infer_preference(self, context: PreferenceContext) -> PreferenceInferenceResult:
        canned = self._responses.get(context.partner_id)
        if canned is not None:
            return canned
        return PreferenceInferenceResult(
            inferred_preference=self._default_preference,
            confidence=self._default_confidence,
            reasoning=f"Static inference for {context.partner_name}",
        )

    async def get_preference_probabilities(
        self, context: PreferenceContext
    ) -> PreferenceProbabilityDistribution:
        default = DimensionProbability(mean=0.5, variance=0.05, mode=0.5, confidence_interval=(0.3, 0.7))
        return PreferenceProbabilityDistribution(distributions={dim: default for dim in DIMENSIONS})
