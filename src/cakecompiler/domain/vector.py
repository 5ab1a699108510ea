"""
Preference vectors (Pydantic).

A `PreferenceVector` is a point in the 5D unit hypercube describing a cake (or a person's
taste for cakes) along fixed axes:
- sweetness: how sweet
- sourness: how sour/tangy
- texture: soft (0) vs crunchy (1)
- temperature: cold (0) vs hot (1)
- artistry: visual presentation

Vectors are immutable; every transformation returns a new instance. Construction rejects any
component outside [0.0, 1.0] with a `ValueError` (Pydantic `ValidationError`).
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from cakecompiler.scoring.composite import clamp01


class PreferenceDimension(str, Enum):
    SWEETNESS = "sweetness"
    SOURNESS = "sourness"
    TEXTURE = "texture"
    TEMPERATURE = "temperature"
    ARTISTRY = "artistry"


DIMENSIONS: tuple[PreferenceDimension, ...] = tuple(PreferenceDimension)

# Distance between the all-zero and all-one corners of the 5D unit cube.
MAX_DISTANCE = math.sqrt(len(DIMENSIONS))


class PreferenceVector(BaseModel):
    """An immutable 5D preference vector with every component in [0, 1]."""

    model_config = ConfigDict(frozen=True)

    sweetness: float = Field(..., ge=0.0, le=1.0)
    sourness: float = Field(..., ge=0.0, le=1.0)
    texture: float = Field(..., ge=0.0, le=1.0)
    temperature: float = Field(..., ge=0.0, le=1.0)
    artistry: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def of(
        cls, sweetness: float, sourness: float, texture: float, temperature: float, artistry: float
    ) -> "PreferenceVector":
        """Positional constructor, in axis order."""
        return cls(
            sweetness=sweetness,
            sourness=sourness,
            texture=texture,
            temperature=temperature,
            artistry=artistry,
        )

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "PreferenceVector":
        """Build a vector from exactly five values in axis order."""
        items = [float(v) for v in values]
        if len(items) != len(DIMENSIONS):
            raise ValueError(f"PreferenceVector needs {len(DIMENSIONS)} values, got {len(items)}")
        return cls(**{dim.value: v for dim, v in zip(DIMENSIONS, items)})

    @classmethod
    def zero(cls) -> "PreferenceVector":
        return cls.of(0.0, 0.0, 0.0, 0.0, 0.0)

    @classmethod
    def neutral(cls) -> "PreferenceVector":
        return cls.of(0.5, 0.5, 0.5, 0.5, 0.5)

    def get(self, dimension: PreferenceDimension) -> float:
        return getattr(self, PreferenceDimension(dimension).value)

    def to_list(self) -> list[float]:
        return [self.sweetness, self.sourness, self.texture, self.temperature, self.artistry]

    def dot(self, other: "PreferenceVector") -> float:
        """Sum of componentwise products (alignment between two vectors)."""
        return sum(a * b for a, b in zip(self.to_list(), other.to_list()))

    def distance_to(self, other: "PreferenceVector") -> float:
        """Euclidean distance; ranges over [0, sqrt(5)]."""
        return math.sqrt(sum((a - b) * (a - b) for a, b in zip(self.to_list(), other.to_list())))

    def magnitude(self) -> float:
        return math.sqrt(sum(a * a for a in self.to_list()))

    def blend(self, other: "PreferenceVector", self_weight: float, other_weight: float) -> "PreferenceVector":
        """Weighted per-axis average of two vectors.

        Weights must be non-negative with a positive sum. The result is clamped to [0, 1]
        so floating-point overshoot never breaks the vector invariant.
        """
        if self_weight < 0 or other_weight < 0:
            raise ValueError("Blend weights must be non-negative")
        total = self_weight + other_weight
        if total <= 0:
            raise ValueError("Total blend weight must be positive")

        w1 = self_weight / total
        w2 = other_weight / total
        return PreferenceVector.from_values(
            clamp01(a * w1 + b * w2) for a, b in zip(self.to_list(), other.to_list())
        )


def average_vector(vectors: Iterable[PreferenceVector]) -> PreferenceVector | None:
    """Componentwise mean of `vectors`, or None when there are none."""
    items = list(vectors)
    if not items:
        return None
    n = len(items)
    return PreferenceVector.from_values(
        clamp01(sum(v.get(dim) for v in items) / n) for dim in DIMENSIONS
    )
