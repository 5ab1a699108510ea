"""
Platform ports: shake events in, haptic feedback out.

Sensor drivers and vibration motors are host concerns. The engine only sees pre-filtered
`ShakeEvent`s and calls a `HapticFeedback` sink.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

SHAKE_MIN_INTENSITY = 0.5
SHAKE_MIN_DURATION_MS = 300
SHAKE_STRONG_INTENSITY = 0.7


@dataclass(frozen=True)
class ShakeEvent:
    timestamp_ms: int
    intensity: float
    duration_ms: int

    def __post_init__(self) -> None:
        if not 0.0 <= self.intensity <= 1.0:
            raise ValueError(f"intensity must be in [0.0, 1.0], got {self.intensity}")
        if self.duration_ms < 0:
            raise ValueError(f"duration_ms must be non-negative, got {self.duration_ms}")

    @property
    def is_strong(self) -> bool:
        return self.intensity > SHAKE_STRONG_INTENSITY

    def triggers_serendipity(
        self, *, min_intensity: float = SHAKE_MIN_INTENSITY, min_duration_ms: int = SHAKE_MIN_DURATION_MS
    ) -> bool:
        return self.intensity > min_intensity and self.duration_ms > min_duration_ms

    @property
    def should_trigger_serendipity(self) -> bool:
        return self.triggers_serendipity()


class HapticKind(str, Enum):
    HEARTBEAT = "heartbeat"
    LIGHT_TAP = "light_tap"
    SUCCESS = "success"
    WARNING = "warning"
    SHAKE_DETECTED = "shake_detected"


class HapticFeedback(Protocol):
    def play(self, kind: HapticKind) -> None: ...


class NoOpHapticFeedback:
    def play(self, kind: HapticKind) -> None:
        return None
