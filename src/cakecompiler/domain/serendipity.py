"""
Serendipity value types (Pydantic).

A serendipity event records an unexpected divergence between an expected preference vector
and an actual one. It is a learning signal, never an error. Events only exist when the
divergence reaches `THRESHOLD_OF_SURPRISE`; below it there is simply no event.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from cakecompiler.domain.vector import MAX_DISTANCE, PreferenceDimension, PreferenceVector

# Euclidean distance at which a divergence counts as a surprise (~22% of MAX_DIVERGENCE).
THRESHOLD_OF_SURPRISE = 0.5
STRONG_THRESHOLD = 0.7
# Per-axis absolute difference at which an axis counts as a discovered aspect.
DIMENSION_THRESHOLD = 0.3
MAX_DIVERGENCE = MAX_DISTANCE
# Half-width of the "about the same" band when deriving an aspect's direction.
DIRECTION_DEAD_BAND = 0.1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SurpriseDirection(str, Enum):
    HIGHER_THAN_EXPECTED = "higher_than_expected"
    LOWER_THAN_EXPECTED = "lower_than_expected"
    NEUTRAL = "neutral"


class DiscoveredAspect(BaseModel):
    """One axis whose expected and actual values differ enough to be individually notable."""

    model_config = ConfigDict(frozen=True)

    dimension: PreferenceDimension
    expected_value: float = Field(..., ge=0.0, le=1.0)
    actual_value: float = Field(..., ge=0.0, le=1.0)
    surprise_level: float = Field(..., ge=0.0, le=1.0)

    @property
    def direction(self) -> SurpriseDirection:
        if self.actual_value > self.expected_value + DIRECTION_DEAD_BAND:
            return SurpriseDirection.HIGHER_THAN_EXPECTED
        if self.actual_value < self.expected_value - DIRECTION_DEAD_BAND:
            return SurpriseDirection.LOWER_THAN_EXPECTED
        return SurpriseDirection.NEUTRAL

    def describe(self) -> str:
        direction_text = {
            SurpriseDirection.HIGHER_THAN_EXPECTED: "more",
            SurpriseDirection.LOWER_THAN_EXPECTED: "less",
            SurpriseDirection.NEUTRAL: "about the same",
        }[self.direction]
        return f"Discovered preference for {self.dimension.value}: {direction_text} than expected"


class SerendipityEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    divergence_score: float = Field(..., ge=0.0)
    expected_vector: PreferenceVector
    actual_vector: PreferenceVector
    discovered_aspects: tuple[DiscoveredAspect, ...] = ()
    timestamp: datetime = Field(default_factory=_utcnow)

    def is_strong(self) -> bool:
        return self.divergence_score > STRONG_THRESHOLD

    def is_moderate(self) -> bool:
        return THRESHOLD_OF_SURPRISE <= self.divergence_score <= STRONG_THRESHOLD

    def most_surprising_aspect(self) -> DiscoveredAspect | None:
        if not self.discovered_aspects:
            return None
        return max(self.discovered_aspects, key=lambda a: a.surprise_level)
