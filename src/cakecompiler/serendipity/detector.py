"""
Serendipity detection (divergence classification).

Serendipity is not an error. When what was chosen diverges far enough from what was
expected, we have learned something about the partner:
- `detect` measures the Euclidean divergence and, at or above the surprise threshold,
  returns a `SerendipityEvent` listing the individual axes that moved.
- `analyze` grades an event and turns each discovered aspect into an insight and a
  suggested update tier. It always recommends learning.
- `divergence` / `warning_level` are side-effect-free monitoring helpers.

Below the threshold `detect` returns None: ordinary agreement, not a failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from cakecompiler.config.settings import Settings
from cakecompiler.domain.serendipity import (
    DIMENSION_THRESHOLD,
    STRONG_THRESHOLD,
    THRESHOLD_OF_SURPRISE,
    DiscoveredAspect,
    SerendipityEvent,
)
from cakecompiler.domain.vector import DIMENSIONS, PreferenceDimension, PreferenceVector
from cakecompiler.scoring.composite import clamp01

logger = logging.getLogger(__name__)

# Per-aspect surprise levels separating slight / moderate / significant updates.
MODERATE_ASPECT_SURPRISE = 0.3
SIGNIFICANT_ASPECT_SURPRISE = 0.5


class SignificanceLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class SuggestedAction(str, Enum):
    UPDATE_SLIGHTLY = "update_slightly"
    UPDATE_MODERATELY = "update_moderately"
    UPDATE_SIGNIFICANTLY = "update_significantly"


@dataclass(frozen=True)
class AspectInsight:
    dimension: PreferenceDimension
    insight: str
    suggested_action: SuggestedAction


@dataclass(frozen=True)
class SerendipityAnalysis:
    event: SerendipityEvent
    significance_level: SignificanceLevel
    insights: tuple[AspectInsight, ...]
    overall_recommendation: str
    should_trigger_learning: bool


class SerendipityDetector:
    def __init__(
        self,
        surprise_threshold: float = THRESHOLD_OF_SURPRISE,
        strong_threshold: float = STRONG_THRESHOLD,
        dimension_threshold: float = DIMENSION_THRESHOLD,
    ) -> None:
        self.surprise_threshold = surprise_threshold
        self.strong_threshold = strong_threshold
        self.dimension_threshold = dimension_threshold

    @classmethod
    def from_settings(cls, settings: Settings) -> "SerendipityDetector":
        cfg = settings.serendipity
        return cls(
            surprise_threshold=cfg.surprise_threshold,
            strong_threshold=cfg.strong_threshold,
            dimension_threshold=cfg.dimension_threshold,
        )

    def detect(self, expected: PreferenceVector, actual: PreferenceVector) -> SerendipityEvent | None:
        divergence = expected.distance_to(actual)
        if divergence < self.surprise_threshold:
            return None

        event = SerendipityEvent(
            divergence_score=divergence,
            expected_vector=expected,
            actual_vector=actual,
            discovered_aspects=tuple(self._diverged_dimensions(expected, actual)),
        )
        logger.info(
            "Serendipity detected: divergence=%.3f aspects=%s",
            divergence,
            [a.dimension.value for a in event.discovered_aspects],
        )
        return event

    def analyze(self, event: SerendipityEvent) -> SerendipityAnalysis:
        if event.divergence_score > self.strong_threshold:
            level = SignificanceLevel.HIGH
        elif event.divergence_score >= self.surprise_threshold:
            level = SignificanceLevel.MODERATE
        else:
            # Only reachable for events built by hand; `detect` never emits one.
            level = SignificanceLevel.LOW

        insights = tuple(
            AspectInsight(
                dimension=aspect.dimension,
                insight=_insight_text(aspect),
                suggested_action=_suggest_action(aspect),
            )
            for aspect in event.discovered_aspects
        )

        if level == SignificanceLevel.HIGH:
            recommendation = (
                "Major preference shift detected! Consider updating the preference model significantly."
            )
        elif any(i.dimension == PreferenceDimension.SWEETNESS for i in insights):
            recommendation = (
                "Sweetness preference has changed. This is a core taste preference worth tracking."
            )
        else:
            recommendation = (
                "Preference evolution detected. Learning from this discovery will improve future recommendations."
            )

        return SerendipityAnalysis(
            event=event,
            significance_level=level,
            insights=insights,
            overall_recommendation=recommendation,
            should_trigger_learning=True,
        )

    def divergence(self, expected: PreferenceVector, actual: PreferenceVector) -> float:
        return expected.distance_to(actual)

    def warning_level(self, expected: PreferenceVector, actual: PreferenceVector) -> float:
        """0.0 = no concern, 1.0 = at (or past) the surprise threshold."""
        return clamp01(self.divergence(expected, actual) / self.surprise_threshold)

    def _diverged_dimensions(
        self, expected: PreferenceVector, actual: PreferenceVector
    ) -> list[DiscoveredAspect]:
        aspects: list[DiscoveredAspect] = []
        for dim in DIMENSIONS:
            expected_value = expected.get(dim)
            actual_value = actual.get(dim)
            difference = abs(actual_value - expected_value)
            if difference >= self.dimension_threshold:
                aspects.append(
                    DiscoveredAspect(
                        dimension=dim,
                        expected_value=expected_value,
                        actual_value=actual_value,
                        # Components live in [0, 1], so the difference is already normalized.
                        surprise_level=clamp01(difference),
                    )
                )
        return aspects


def _insight_text(aspect: DiscoveredAspect) -> str:
    if aspect.actual_value > aspect.expected_value:
        direction = "higher"
    elif aspect.actual_value < aspect.expected_value:
        direction = "lower"
    else:
        direction = "different"
    return (
        f"{aspect.dimension.value.capitalize()} preference is {direction} than expected "
        f"(expected: {aspect.expected_value:.2f}, actual: {aspect.actual_value:.2f})"
    )


def _suggest_action(aspect: DiscoveredAspect) -> SuggestedAction:
    if aspect.surprise_level > SIGNIFICANT_ASPECT_SURPRISE:
        return SuggestedAction.UPDATE_SIGNIFICANTLY
    if aspect.surprise_level > MODERATE_ASPECT_SURPRISE:
        return SuggestedAction.UPDATE_MODERATELY
    return SuggestedAction.UPDATE_SLIGHTLY
