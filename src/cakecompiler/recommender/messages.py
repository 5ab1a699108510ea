"""
Fixed message pools surfaced through controller effects.

The override-memory pool is keyed only by "an override occurred": the controller draws one
memory at random whenever an override is confirmed, regardless of how far it diverged.
"""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class Memory:
    moment: str
    message: str


@dataclass(frozen=True)
class OverrideMemory:
    notification: str
    moment: str
    message: str


OVERRIDE_NOTIFICATION = (
    "Not what the numbers said. But if you remember what they told you that day, "
    "this may be exactly right."
)

MEMORIES: tuple[Memory, ...] = (
    Memory(
        moment="The first date, when they laughed and said choosing by looks is fine too",
        message="Good call. You remembered what they said.",
    ),
    Memory(
        moment="The rainy afternoon in the small cafe, and the face they made at the first bite",
        message="You know moments no formula can measure.",
    ),
    Memory(
        moment="The night they said 'too sweet for me' and then ate half of your cake",
        message="You watch what they do, not just what they say.",
    ),
    Memory(
        moment="The birthday cake that made them cry a little, and why",
        message="Your instinct was right then. It probably is now.",
    ),
    Memory(
        moment="Noticing that their taste shifts a little every season",
        message="Your heart catches changes the data never sees.",
    ),
    Memory(
        moment="The day they asked 'how did you know?' and you could not explain",
        message="You do not need a reason to get it right.",
    ),
    Memory(
        moment="The happy confusion of the day you could not decide and shared both",
        message="Hesitating and choosing are both part of the optimum.",
    ),
    Memory(
        moment="When they said 'the one we liked last time' and you pictured a different cake",
        message="Even a mismatched memory is a code only you two share.",
    ),
)


def override_memory(rng: random.Random | None = None) -> OverrideMemory:
    """Fixed override notification paired with a random memory."""
    memory = (rng or random).choice(MEMORIES)
    return OverrideMemory(notification=OVERRIDE_NOTIFICATION, moment=memory.moment, message=memory.message)


def shake_toast(surprise_percentage: int) -> str:
    return f"✨ {surprise_percentage}% surprise!"
