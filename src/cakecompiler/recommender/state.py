"""
Selection controller types: screen states, serendipity modes, UI events and effects.

Every variant carries only the fields valid for its case. The controller exposes a single
immutable `SelectionSnapshot` that it replaces wholesale on each event.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from cakecompiler.domain.happiness import HappinessScore
from cakecompiler.domain.platform import HapticKind
from cakecompiler.domain.profile import PartnerProfile
from cakecompiler.domain.serendipity import SerendipityEvent
from cakecompiler.domain.vector import PreferenceVector
from cakecompiler.learning.learner import LearnResult
from cakecompiler.recommender.override import OverrideResult
from cakecompiler.serendipity.divergent import DivergentPick

# ---------------------------------------------------------------------------
# Screen states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Initial:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Ready:
    """`recommended_cake_id` is None when the session was initialized with no candidates."""

    recommended_cake_id: str | None


@dataclass(frozen=True)
class Overriding:
    original_cake_id: str
    new_cake_id: str


@dataclass(frozen=True)
class Completed:
    chosen_cake_id: str
    was_override: bool


@dataclass(frozen=True)
class Error:
    message: str


ScreenState = Union[Initial, Loading, Ready, Overriding, Completed, Error]


# ---------------------------------------------------------------------------
# Serendipity mode (orthogonal to the screen state)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SerendipityOff:
    pass


@dataclass(frozen=True)
class SerendipityActive:
    """A shake surfaced `divergent_cake_id` as the current divergent pick."""

    divergent_cake_id: str


@dataclass(frozen=True)
class SerendipityDetected:
    """A confirmed override diverged enough to count as serendipity."""

    event: SerendipityEvent


SerendipityMode = Union[SerendipityOff, SerendipityActive, SerendipityDetected]


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DisplayCake:
    id: str
    name: str
    description: str
    vector: PreferenceVector
    happiness_score: HappinessScore
    probability: float
    rank: int
    is_recommended: bool = False
    is_serendipity_pick: bool = False

    @property
    def partner_would_love_it(self) -> bool:
        return self.happiness_score.is_partner_favored()


@dataclass(frozen=True)
class SelectionSnapshot:
    screen: ScreenState = field(default_factory=Initial)
    cakes: tuple[DisplayCake, ...] = ()
    serendipity_mode: SerendipityMode = field(default_factory=SerendipityOff)
    selected_cake_id: str | None = None
    last_result: OverrideResult | None = None
    divergent_pick: DivergentPick | None = None
    partner_profile: PartnerProfile | None = None
    last_learning: LearnResult | None = None
    partner_confidence: float | None = None


# ---------------------------------------------------------------------------
# UI events (into the controller)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CakeTapped:
    cake_id: str


@dataclass(frozen=True)
class CakeLongPressed:
    cake_id: str


@dataclass(frozen=True)
class CakeTouchStart:
    cake_id: str


@dataclass(frozen=True)
class CakeTouchEnd:
    pass


@dataclass(frozen=True)
class AcceptRecommendation:
    pass


@dataclass(frozen=True)
class ConfirmOverride:
    cake_id: str


@dataclass(frozen=True)
class ShakeDetected:
    pass


@dataclass(frozen=True)
class DismissSerendipity:
    pass


@dataclass(frozen=True)
class Retry:
    pass


@dataclass(frozen=True)
class RestartSelection:
    pass


UiEvent = Union[
    CakeTapped,
    CakeLongPressed,
    CakeTouchStart,
    CakeTouchEnd,
    AcceptRecommendation,
    ConfirmOverride,
    ShakeDetected,
    DismissSerendipity,
    Retry,
    RestartSelection,
]


# ---------------------------------------------------------------------------
# UI effects (out of the controller, one-shot, in emission order)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlayHaptic:
    kind: HapticKind


@dataclass(frozen=True)
class ShowToast:
    message: str


@dataclass(frozen=True)
class Navigate:
    destination: str


@dataclass(frozen=True)
class ShowOverrideMemory:
    notification: str
    moment: str
    message: str


UiEffect = Union[PlayHaptic, ShowToast, Navigate, ShowOverrideMemory]
