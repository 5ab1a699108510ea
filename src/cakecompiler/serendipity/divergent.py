"""
Shake-triggered exploration: find the cake the numbers would never pick.

Given the optimal (blended) preference vector, these helpers surface the candidate that
diverges most from it, or sample one with probability proportional to its divergence.
The random draw is an argument, so every function here is a pure function of its inputs.

Two thresholds are in play and they are independent:
- the pick itself is driven by relative divergence (the largest distance, shown as a
  percentage of sqrt(5));
- the attached `forced_event` uses the detector's absolute surprise threshold (0.5).
For tightly clustered candidates the most divergent pick may carry no event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

from cakecompiler.domain.happiness import CakeCandidate
from cakecompiler.domain.serendipity import MAX_DIVERGENCE, SerendipityEvent
from cakecompiler.domain.vector import PreferenceVector, average_vector
from cakecompiler.scoring.composite import clamp01
from cakecompiler.serendipity.detector import SerendipityDetector

logger = logging.getLogger(__name__)

DEFAULT_UNUSUAL_THRESHOLD = 0.5


class SurpriseLevel(str, Enum):
    MILD = "mild"
    SOMEWHAT_SURPRISING = "somewhat_surprising"
    SURPRISING = "surprising"
    VERY_SURPRISING = "very_surprising"


@dataclass(frozen=True)
class DivergentPick:
    cake: CakeCandidate
    divergence_score: float
    normalized_divergence: float
    forced_event: SerendipityEvent | None

    @property
    def surprise_percentage(self) -> int:
        return int(self.normalized_divergence * 100)

    @property
    def surprise_level(self) -> SurpriseLevel:
        if self.normalized_divergence >= 0.7:
            return SurpriseLevel.VERY_SURPRISING
        if self.normalized_divergence >= 0.5:
            return SurpriseLevel.SURPRISING
        if self.normalized_divergence >= 0.3:
            return SurpriseLevel.SOMEWHAT_SURPRISING
        return SurpriseLevel.MILD


@dataclass(frozen=True)
class NoCandidates:
    """Nothing to pick from (empty list, or every candidate equals the optimum)."""


NO_CANDIDATES = NoCandidates()

DivergentResult = Union[DivergentPick, NoCandidates]


class DivergentPickSelector:
    def __init__(self, detector: SerendipityDetector | None = None) -> None:
        self.detector = detector or SerendipityDetector()

    def _pick(self, optimal: PreferenceVector, cake: CakeCandidate, divergence: float) -> DivergentPick:
        return DivergentPick(
            cake=cake,
            divergence_score=divergence,
            normalized_divergence=clamp01(divergence / MAX_DIVERGENCE),
            forced_event=self.detector.detect(optimal, cake.vector),
        )

    def most_divergent(
        self, optimal: PreferenceVector, candidates: Sequence[CakeCandidate]
    ) -> DivergentResult:
        if not candidates:
            return NO_CANDIDATES

        best_cake = candidates[0]
        best_distance = optimal.distance_to(best_cake.vector)
        for cake in candidates[1:]:
            distance = optimal.distance_to(cake.vector)
            # Strict comparison keeps the first-encountered cake on ties.
            if distance > best_distance:
                best_cake, best_distance = cake, distance

        logger.debug("Most divergent cake: %s (%.3f)", best_cake.id, best_distance)
        return self._pick(optimal, best_cake, best_distance)

    def weighted_random_divergent(
        self,
        optimal: PreferenceVector,
        candidates: Sequence[CakeCandidate],
        random_value: float,
    ) -> DivergentResult:
        """Sample a cake with probability proportional to its distance from `optimal`.

        `random_value` must be in [0, 1); it is scaled by the total weight and compared
        against the running cumulative weight.
        """
        if not 0.0 <= random_value < 1.0:
            raise ValueError(f"random_value must be in [0.0, 1.0), got {random_value}")
        if not candidates:
            return NO_CANDIDATES

        weights = [(cake, optimal.distance_to(cake.vector)) for cake in candidates]
        total = sum(w for _, w in weights)
        if total == 0.0:
            return NO_CANDIDATES

        threshold = random_value * total
        cumulative = 0.0
        for cake, weight in weights:
            # Zero-weight cakes carry no probability mass.
            if weight == 0.0:
                continue
            cumulative += weight
            if cumulative >= threshold:
                return self._pick(optimal, cake, weight)

        # Rounding left the cumulative sum just short of the threshold.
        return self.most_divergent(optimal, candidates)

    def filter_unusual(
        self,
        candidates: Sequence[CakeCandidate],
        past_choices: Sequence[PreferenceVector],
        threshold: float = DEFAULT_UNUSUAL_THRESHOLD,
    ) -> list[CakeCandidate]:
        """Keep candidates at least `threshold` away from the average of past choices.

        With no past choices there is nothing to compare against and every candidate is kept.
        """
        average = average_vector(past_choices)
        if average is None:
            return list(candidates)
        return [cake for cake in candidates if average.distance_to(cake.vector) >= threshold]
