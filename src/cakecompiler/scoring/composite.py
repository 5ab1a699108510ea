"""
Shared scoring utilities.

Small, reusable helpers used by the vector algebra, the scorer and the learner:
- `clamp01`: keep values within 0..1 so vector invariants survive floating-point overshoot
- `clamp`: keep a value within an arbitrary closed range (learning-rate bounds, probabilities)
"""

from __future__ import annotations


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return max(0.0, min(1.0, float(x)))


def clamp(x: float, lower: float, upper: float) -> float:
    """Clamp a number into the [lower, upper] range."""
    if lower > upper:
        raise ValueError(f"Invalid clamp range [{lower}, {upper}]")
    return max(float(lower), min(float(upper), float(x)))
