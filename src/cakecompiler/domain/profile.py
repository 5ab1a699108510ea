"""
Partner profiles (Pydantic).

A profile holds the current best estimate of a partner's preferences plus an append-only
history of observations and a log of what was learned from serendipity. Profiles are never
edited in place: every update derives a new profile from the old one plus one new history
entry (and zero or more learning entries).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from cakecompiler.domain.serendipity import SerendipityEvent
from cakecompiler.domain.vector import DIMENSIONS, PreferenceDimension, PreferenceVector, average_vector

# History depth at which the history-based confidence saturates.
HISTORY_SATURATION = 10
HISTORY_CONFIDENCE_WEIGHT = 0.7
LEARNING_CONFIDENCE_CAP = 0.3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PreferenceSource(str, Enum):
    INITIAL = "initial"
    USER_INPUT = "user_input"
    OBSERVED_CHOICE = "observed_choice"
    SERENDIPITY = "serendipity"
    API_INFERENCE = "api_inference"


class PreferenceHistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    preference: PreferenceVector
    source: PreferenceSource
    cake_id: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)
    notes: str | None = None


class PreferenceHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    entries: tuple[PreferenceHistoryEntry, ...] = ()

    def add(self, entry: PreferenceHistoryEntry) -> "PreferenceHistory":
        return PreferenceHistory(entries=(*self.entries, entry))

    def average_preference(self) -> PreferenceVector | None:
        return average_vector(e.preference for e in self.entries)

    def entries_from_source(self, source: PreferenceSource) -> list[PreferenceHistoryEntry]:
        return [e for e in self.entries if e.source == source]


class LearningEntry(BaseModel):
    """What one axis learned from one serendipity event."""

    model_config = ConfigDict(frozen=True)

    dimension: PreferenceDimension
    previous_value: float
    learned_value: float
    confidence_gain: float = Field(..., ge=0.0)
    source_event: SerendipityEvent
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def update_magnitude(self) -> float:
        return abs(self.learned_value - self.previous_value)

    def describe(self) -> str:
        direction = "increased" if self.learned_value > self.previous_value else "decreased"
        return (
            f"Learned: {self.dimension.value} preference {direction} "
            f"from {self.previous_value:.2f} to {self.learned_value:.2f}"
        )


class PartnerProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    current_preference: PreferenceVector
    preference_history: PreferenceHistory = Field(default_factory=PreferenceHistory)
    learning_entries: tuple[LearningEntry, ...] = ()
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def create(
        cls, id: str, name: str, initial_preference: PreferenceVector | None = None
    ) -> "PartnerProfile":
        """New profile seeded with a single INITIAL history entry."""
        initial = initial_preference or PreferenceVector.neutral()
        return cls(
            id=id,
            name=name,
            current_preference=initial,
            preference_history=PreferenceHistory(
                entries=(PreferenceHistoryEntry(preference=initial, source=PreferenceSource.INITIAL),)
            ),
        )

    def derive(
        self,
        preference: PreferenceVector,
        entry: PreferenceHistoryEntry,
        learnings: tuple[LearningEntry, ...] = (),
    ) -> "PartnerProfile":
        """Return a new profile with `preference` current, `entry` appended and `learnings` added."""
        return self.model_copy(
            update={
                "current_preference": preference,
                "preference_history": self.preference_history.add(entry),
                "learning_entries": (*self.learning_entries, *learnings),
                "updated_at": _utcnow(),
            }
        )

    @property
    def update_count(self) -> int:
        return len(self.preference_history.entries)

    def confidence_per_dimension(self) -> dict[PreferenceDimension, float]:
        """History depth contributes up to 0.7, learning gains on the axis up to 0.3."""
        history_size = len(self.preference_history.entries)
        if history_size == 0:
            return {dim: 0.0 for dim in DIMENSIONS}

        base = (min(history_size, HISTORY_SATURATION) / HISTORY_SATURATION) * HISTORY_CONFIDENCE_WEIGHT
        out: dict[PreferenceDimension, float] = {}
        for dim in DIMENSIONS:
            boost = min(
                sum(e.confidence_gain for e in self.learning_entries if e.dimension == dim),
                LEARNING_CONFIDENCE_CAP,
            )
            out[dim] = min(base + boost, 1.0)
        return out

    def overall_confidence(self) -> float:
        values = list(self.confidence_per_dimension().values())
        return sum(values) / len(values)

    def most_recent_learning(self) -> LearningEntry | None:
        if not self.learning_entries:
            return None
        return max(self.learning_entries, key=lambda e: e.timestamp)
