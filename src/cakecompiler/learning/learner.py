"""
Adaptive preference learning for partner profiles.

Every update returns a new `PartnerProfile`; the input profile is never touched.
- `learn_from_serendipity`: move each discovered axis by (actual - expected) * rate.
- `learn_from_observation`: blend the current estimate toward an observed cake vector.
- `adaptive_learning_rate`: uncertain profiles and surprising data both move estimates more.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from cakecompiler.config.settings import Settings
from cakecompiler.domain.profile import (
    LearningEntry,
    PartnerProfile,
    PreferenceHistoryEntry,
    PreferenceSource,
)
from cakecompiler.domain.serendipity import SerendipityEvent
from cakecompiler.domain.vector import PreferenceDimension, PreferenceVector
from cakecompiler.scoring.composite import clamp, clamp01

logger = logging.getLogger(__name__)

DEFAULT_LEARNING_RATE = 0.3
MIN_LEARNING_RATE = 0.1
MAX_LEARNING_RATE = 0.5
SIGNIFICANT_CHANGE = 0.1
# Confidence assumed when suggesting per-aspect rates without a profile.
DEFAULT_TARGET_CONFIDENCE = 0.5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LearningPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class DimensionChange:
    dimension: PreferenceDimension
    previous_value: float
    new_value: float
    change_amount: float


@dataclass(frozen=True)
class LearningTarget:
    dimension: PreferenceDimension
    current_value: float
    target_value: float
    priority: LearningPriority
    suggested_learning_rate: float


@dataclass(frozen=True)
class LearnResult:
    original_profile: PartnerProfile
    updated_profile: PartnerProfile
    serendipity_event: SerendipityEvent
    dimension_changes: tuple[DimensionChange, ...]
    learning_rate_used: float
    significant_change: float = SIGNIFICANT_CHANGE
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def has_significant_changes(self) -> bool:
        return any(abs(c.change_amount) > self.significant_change for c in self.dimension_changes)

    def summarize(self) -> str:
        if not self.dimension_changes:
            return "No significant changes learned."
        parts = []
        for change in self.dimension_changes:
            direction = "increased" if change.change_amount > 0 else "decreased"
            parts.append(f"{change.dimension.value} {direction} by {abs(change.change_amount):.2f}")
        return "; ".join(parts)


class PreferenceLearner:
    def __init__(
        self,
        default_rate: float = DEFAULT_LEARNING_RATE,
        min_rate: float = MIN_LEARNING_RATE,
        max_rate: float = MAX_LEARNING_RATE,
        significant_change: float = SIGNIFICANT_CHANGE,
    ) -> None:
        if min_rate > max_rate:
            raise ValueError(f"min_rate ({min_rate}) must not exceed max_rate ({max_rate})")
        self.default_rate = default_rate
        self.min_rate = min_rate
        self.max_rate = max_rate
        self.significant_change = significant_change

    @classmethod
    def from_settings(cls, settings: Settings) -> "PreferenceLearner":
        cfg = settings.learning
        return cls(
            default_rate=cfg.default_rate,
            min_rate=cfg.min_rate,
            max_rate=cfg.max_rate,
            significant_change=cfg.significant_change,
        )

    def _effective_rate(self, rate: float | None) -> float:
        return clamp(self.default_rate if rate is None else rate, self.min_rate, self.max_rate)

    def learn_from_serendipity(
        self,
        profile: PartnerProfile,
        event: SerendipityEvent,
        rate: float | None = None,
    ) -> LearnResult:
        effective_rate = self._effective_rate(rate)
        current = profile.current_preference

        values = {dim: current.get(dim) for dim in PreferenceDimension}
        learnings: list[LearningEntry] = []
        changes: list[DimensionChange] = []
        for aspect in event.discovered_aspects:
            previous = values[aspect.dimension]
            updated = clamp01(previous + (aspect.actual_value - aspect.expected_value) * effective_rate)
            values[aspect.dimension] = updated
            learnings.append(
                LearningEntry(
                    dimension=aspect.dimension,
                    previous_value=previous,
                    learned_value=updated,
                    confidence_gain=aspect.surprise_level * effective_rate,
                    source_event=event,
                )
            )
            changes.append(
                DimensionChange(
                    dimension=aspect.dimension,
                    previous_value=previous,
                    new_value=updated,
                    change_amount=updated - previous,
                )
            )

        new_preference = PreferenceVector(**{dim.value: v for dim, v in values.items()})
        updated_profile = profile.derive(
            new_preference,
            PreferenceHistoryEntry(
                preference=new_preference,
                source=PreferenceSource.SERENDIPITY,
                notes=f"Updated from serendipity event with {len(learnings)} discoveries",
            ),
            tuple(learnings),
        )

        result = LearnResult(
            original_profile=profile,
            updated_profile=updated_profile,
            serendipity_event=event,
            dimension_changes=tuple(changes),
            learning_rate_used=effective_rate,
            significant_change=self.significant_change,
        )
        logger.info(
            "Learned from serendipity for profile=%s rate=%.2f: %s",
            profile.id,
            effective_rate,
            result.summarize(),
        )
        return result

    def learn_from_observation(
        self,
        profile: PartnerProfile,
        observed: PreferenceVector,
        cake_id: str,
        rate: float | None = None,
    ) -> PartnerProfile:
        effective_rate = self._effective_rate(rate)
        new_preference = profile.current_preference.blend(observed, 1.0 - effective_rate, effective_rate)
        logger.debug("Observed choice %s for profile=%s rate=%.2f", cake_id, profile.id, effective_rate)
        return profile.derive(
            new_preference,
            PreferenceHistoryEntry(
                preference=new_preference,
                source=PreferenceSource.OBSERVED_CHOICE,
                cake_id=cake_id,
            ),
        )

    def adaptive_learning_rate(self, confidence: float, surprise: float) -> float:
        """0.5 * (1 - confidence) + 0.5 * surprise, clamped to the configured bounds."""
        rate = (1.0 - confidence) * 0.5 + surprise * 0.5
        return clamp(rate, self.min_rate, self.max_rate)

    def identify_learning_targets(self, event: SerendipityEvent) -> list[LearningTarget]:
        targets: list[LearningTarget] = []
        for aspect in event.discovered_aspects:
            if aspect.surprise_level > 0.5:
                priority = LearningPriority.HIGH
            elif aspect.surprise_level > 0.3:
                priority = LearningPriority.MEDIUM
            else:
                priority = LearningPriority.LOW
            targets.append(
                LearningTarget(
                    dimension=aspect.dimension,
                    current_value=aspect.expected_value,
                    target_value=aspect.actual_value,
                    priority=priority,
                    suggested_learning_rate=self.adaptive_learning_rate(
                        DEFAULT_TARGET_CONFIDENCE, aspect.surprise_level
                    ),
                )
            )
        return targets
