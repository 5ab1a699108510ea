"""
User decisions in response to a recommendation.

A decision is one of two variants:
- `Acceptance`: the user takes the recommended cake.
- `ManualOverride`: the user picks another cake. Overrides are always permitted; there is
  no "override denied" variant and no reason is ever judged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

from cakecompiler.domain.happiness import RankedCake
from cakecompiler.domain.vector import PreferenceVector


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Override reasons
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Curiosity:
    """Wants to try something new."""


@dataclass(frozen=True)
class PartnerInsight:
    """Knows something about the partner the model does not."""

    note: str | None = None


@dataclass(frozen=True)
class SpecialOccasion:
    occasion: str


@dataclass(frozen=True)
class PersonalPreference:
    pass


@dataclass(frozen=True)
class ExternalConstraint:
    """Availability, dietary needs, budget, ..."""

    constraint: str


@dataclass(frozen=True)
class Unspecified:
    pass


OverrideReason = Union[Curiosity, PartnerInsight, SpecialOccasion, PersonalPreference, ExternalConstraint, Unspecified]


# ---------------------------------------------------------------------------
# Choices
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Acceptance:
    recommended_cake: RankedCake
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class ManualOverride:
    recommended_cake: RankedCake
    chosen_cake_id: str
    chosen_cake_name: str
    chosen_cake_vector: PreferenceVector
    reason: OverrideReason = field(default_factory=Unspecified)
    timestamp: datetime = field(default_factory=_utcnow)


UserChoice = Union[Acceptance, ManualOverride]


def can_override() -> bool:
    """Overrides are unconditionally allowed."""
    return True


def chosen_cake_id(choice: UserChoice) -> str:
    if isinstance(choice, ManualOverride):
        return choice.chosen_cake_id
    return choice.recommended_cake.cake_id
