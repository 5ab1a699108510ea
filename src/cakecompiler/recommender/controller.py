"""
Selection controller: the interaction state machine behind the cake selection screen.

The controller owns one immutable `SelectionSnapshot` and replaces it wholesale on each
event. Transitions:
- `initialize`: Initial -> Loading -> Ready(top id), or Error(message) on invalid input
- tap on a non-recommended cake: Ready -> Overriding(original, tapped)
- tap on the recommended cake / accept: Ready or Overriding -> Completed(id, False)
- confirm override: Overriding -> Completed(id, True), plus serendipity "detected" mode
- retry: any state -> Initial
- restart: Ready / Overriding / Completed -> Ready, recomputed from the stored inputs

Serendipity mode (Off / Active / Detected) is orthogonal to the screen state: shake and
dismiss only ever touch the mode and the divergent-pick marks.

Effects (haptics, toasts, navigation, override memories) are queued in emission order and
handed out once through `drain_effects`.
"""

from __future__ import annotations

import logging
import random
import threading
from collections import deque
from dataclasses import replace
from typing import Any, Callable, Iterable, Mapping, Sequence, Union

from cakecompiler.config.overrides import apply_settings_overrides
from cakecompiler.config.settings import Settings, get_settings
from cakecompiler.domain.choice import Acceptance, OverrideReason
from cakecompiler.domain.happiness import CakeCandidate, CakeRanking, HappinessWeights, RankedCake
from cakecompiler.domain.inference import PreferenceInferenceResult
from cakecompiler.domain.platform import HapticFeedback, HapticKind, NoOpHapticFeedback, ShakeEvent
from cakecompiler.domain.profile import PartnerProfile
from cakecompiler.domain.serendipity import MAX_DIVERGENCE, SerendipityEvent
from cakecompiler.domain.vector import PreferenceVector
from cakecompiler.learning.learner import LearnResult, PreferenceLearner
from cakecompiler.recommender.messages import override_memory, shake_toast
from cakecompiler.recommender.override import OverrideHandler
from cakecompiler.recommender.state import (
    AcceptRecommendation,
    CakeLongPressed,
    CakeTapped,
    CakeTouchEnd,
    CakeTouchStart,
    Completed,
    ConfirmOverride,
    DismissSerendipity,
    DisplayCake,
    Error,
    Loading,
    Navigate,
    Overriding,
    PlayHaptic,
    Ready,
    RestartSelection,
    Retry,
    SelectionSnapshot,
    SerendipityActive,
    SerendipityDetected,
    SerendipityOff,
    ShakeDetected,
    ShowOverrideMemory,
    ShowToast,
    UiEffect,
    UiEvent,
)
from cakecompiler.scoring.composite import clamp, clamp01
from cakecompiler.scoring.explain import one_line_summary
from cakecompiler.scoring.happiness import HappinessModel
from cakecompiler.serendipity.detector import SerendipityDetector
from cakecompiler.serendipity.divergent import DivergentPick, DivergentPickSelector

logger = logging.getLogger(__name__)

RESULT_DESTINATION = "result"

CandidateInput = Union[CakeCandidate, tuple[str, str, Union[PreferenceVector, Sequence[float]]]]
PartnerInput = Union[PreferenceVector, PreferenceInferenceResult]
SnapshotListener = Callable[[SelectionSnapshot], None]


def _to_candidate(item: CandidateInput) -> CakeCandidate:
    if isinstance(item, CakeCandidate):
        return item
    cake_id, name, vector = item
    if not isinstance(vector, PreferenceVector):
        vector = PreferenceVector.from_values(vector)
    return CakeCandidate(id=cake_id, name=name, vector=vector)


def _state_name(state: object) -> str:
    return type(state).__name__


class SelectionController:
    """Owns the selection snapshot; one event is processed to completion before the next."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        haptics: HapticFeedback | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._base_settings = settings
        self._haptics = haptics or NoOpHapticFeedback()
        self._rng = rng or random.Random()

        self._lock = threading.RLock()
        self._snapshot = SelectionSnapshot()
        self._effects: deque[UiEffect] = deque()
        self._listeners: list[SnapshotListener] = []

        # Stored inputs, reused by RestartSelection.
        self._self_preference: PreferenceVector | None = None
        self._partner_preference: PreferenceVector | None = None
        self._candidates: tuple[CakeCandidate, ...] = ()
        self._probabilities: dict[str, float] = {}
        self._descriptions: dict[str, str] = {}
        self._weights: HappinessWeights | None = None
        self._settings_overrides: Mapping[str, Any] | None = None
        self._partner_confidence: float | None = None
        self._profile: PartnerProfile | None = None

        # Derived per session.
        self._settings: Settings | None = None
        self._model = HappinessModel()
        self._detector = SerendipityDetector()
        self._handler = OverrideHandler(self._model, self._detector)
        self._learner = PreferenceLearner()
        self._selector = DivergentPickSelector(self._detector)
        self._ranking = CakeRanking()
        self._optimal: PreferenceVector | None = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> SelectionSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def profile(self) -> PartnerProfile | None:
        with self._lock:
            return self._profile

    @property
    def ranking(self) -> CakeRanking:
        with self._lock:
            return self._ranking

    def subscribe(self, listener: SnapshotListener) -> None:
        """Call `listener` with every new snapshot, in transition order."""
        with self._lock:
            self._listeners.append(listener)

    def drain_effects(self) -> list[UiEffect]:
        """Return pending effects in emission order; each effect is handed out once."""
        with self._lock:
            effects = list(self._effects)
            self._effects.clear()
            return effects

    # ------------------------------------------------------------------
    # Session setup
    # ------------------------------------------------------------------

    def initialize(
        self,
        self_preference: PreferenceVector,
        partner_preference: PartnerInput,
        candidates: Iterable[CandidateInput],
        *,
        probabilities: Mapping[str, float] | None = None,
        descriptions: Mapping[str, str] | None = None,
        weights: HappinessWeights | None = None,
        partner_profile: PartnerProfile | None = None,
        settings_overrides: Mapping[str, Any] | None = None,
    ) -> SelectionSnapshot:
        """Rank `candidates` and present the top choice as the recommendation.

        `partner_preference` may be a plain vector or an inference result injected by the
        caller; in the latter case its confidence is kept on the snapshot. Invalid input
        moves the controller to `Error(message)` and the original exception is re-raised.
        """
        with self._lock:
            self._replace(SelectionSnapshot(screen=Loading(), partner_profile=partner_profile))
            try:
                self._prepare_session(
                    self_preference,
                    partner_preference,
                    candidates,
                    probabilities=probabilities,
                    descriptions=descriptions,
                    weights=weights,
                    settings_overrides=settings_overrides,
                )
            except (ValueError, TypeError) as exc:
                logger.warning("Selection initialization failed: %s", exc)
                self._replace(replace(self._snapshot, screen=Error(message=str(exc))))
                raise

            self._profile = partner_profile
            return self._present_ranking()

    def _prepare_session(
        self,
        self_preference: PreferenceVector,
        partner_preference: PartnerInput,
        candidates: Iterable[CandidateInput],
        *,
        probabilities: Mapping[str, float] | None,
        descriptions: Mapping[str, str] | None,
        weights: HappinessWeights | None,
        settings_overrides: Mapping[str, Any] | None,
    ) -> None:
        settings = apply_settings_overrides(self._base_settings or get_settings(), settings_overrides)

        partner_confidence: float | None = None
        if isinstance(partner_preference, PreferenceInferenceResult):
            partner_confidence = partner_preference.confidence
            if partner_preference.is_low_confidence(settings.inference.low_confidence):
                logger.info("Partner preference inferred with low confidence (%.2f)", partner_confidence)
            elif partner_preference.is_high_confidence(settings.inference.high_confidence):
                logger.debug("Partner preference inferred with high confidence (%.2f)", partner_confidence)
            partner_preference = partner_preference.inferred_preference

        cakes = tuple(_to_candidate(item) for item in candidates)
        seen: set[str] = set()
        for cake in cakes:
            if cake.id in seen:
                raise ValueError(f"duplicate cake id: {cake.id!r}")
            seen.add(cake.id)

        probabilities = dict(probabilities or {})
        for cake_id, probability in probabilities.items():
            if not 0.0 <= probability <= 1.0:
                raise ValueError(f"probability for {cake_id!r} must be in [0.0, 1.0], got {probability}")

        model = HappinessModel.from_settings(settings)
        detector = SerendipityDetector.from_settings(settings)

        self._settings = settings
        self._model = model
        self._detector = detector
        self._handler = OverrideHandler(model, detector)
        self._learner = PreferenceLearner.from_settings(settings)
        self._selector = DivergentPickSelector(detector)

        self._self_preference = self_preference
        self._partner_preference = partner_preference
        self._partner_confidence = partner_confidence
        self._candidates = cakes
        self._probabilities = probabilities
        self._descriptions = dict(descriptions or {})
        self._weights = weights
        self._settings_overrides = settings_overrides

        self._ranking = model.rank(self_preference, partner_preference, cakes, weights)
        self._optimal = model.optimal_vector(self_preference, partner_preference, weights)

    def _fallback_probability(self, rank: int) -> float:
        if self._settings is None:
            raise RuntimeError("selection session is not initialized")
        cfg = self._settings.scoring
        return clamp(
            1.0 - cfg.fallback_probability_step * rank,
            cfg.fallback_probability_min,
            cfg.fallback_probability_max,
        )

    def _present_ranking(self) -> SelectionSnapshot:
        top = self._ranking.top_choice
        by_id = {cake.id: cake for cake in self._candidates}

        display: list[DisplayCake] = []
        for ranked in self._ranking.rankings:
            probability = self._probabilities.get(ranked.cake_id)
            display.append(
                DisplayCake(
                    id=ranked.cake_id,
                    name=ranked.cake_name,
                    description=self._descriptions.get(ranked.cake_id, ""),
                    vector=by_id[ranked.cake_id].vector,
                    happiness_score=ranked.score,
                    probability=probability if probability is not None else self._fallback_probability(ranked.rank),
                    rank=ranked.rank,
                    is_recommended=top is not None and ranked.cake_id == top.cake_id,
                )
            )

        if top is not None:
            logger.debug("Recommendation: %s", one_line_summary(top))

        return self._replace(
            SelectionSnapshot(
                screen=Ready(recommended_cake_id=top.cake_id if top is not None else None),
                cakes=tuple(display),
                partner_profile=self._profile,
                partner_confidence=self._partner_confidence,
            )
        )

    # ------------------------------------------------------------------
    # Event input surface
    # ------------------------------------------------------------------

    def dispatch(self, event: UiEvent) -> SelectionSnapshot:
        handlers: dict[type, Callable[[Any], None]] = {
            CakeTapped: self._on_tapped,
            CakeLongPressed: self._on_long_pressed,
            CakeTouchStart: self._on_touch,
            CakeTouchEnd: self._on_touch,
            AcceptRecommendation: self._on_accept,
            ConfirmOverride: self._on_confirm_override,
            ShakeDetected: self._on_shake,
            DismissSerendipity: self._on_dismiss,
            Retry: self._on_retry,
            RestartSelection: self._on_restart,
        }
        handler = handlers.get(type(event))
        if handler is None:
            raise TypeError(f"unsupported event: {event!r}")
        with self._lock:
            handler(event)
            return self._snapshot

    def tap(self, cake_id: str) -> SelectionSnapshot:
        return self.dispatch(CakeTapped(cake_id))

    def long_press(self, cake_id: str) -> SelectionSnapshot:
        return self.dispatch(CakeLongPressed(cake_id))

    def touch_start(self, cake_id: str) -> SelectionSnapshot:
        return self.dispatch(CakeTouchStart(cake_id))

    def touch_end(self) -> SelectionSnapshot:
        return self.dispatch(CakeTouchEnd())

    def accept(self) -> SelectionSnapshot:
        return self.dispatch(AcceptRecommendation())

    def confirm_override(self, cake_id: str, reason: OverrideReason | None = None) -> SelectionSnapshot:
        with self._lock:
            self._on_confirm_override(ConfirmOverride(cake_id), reason=reason)
            return self._snapshot

    def shake_detected(self) -> SelectionSnapshot:
        return self.dispatch(ShakeDetected())

    def dismiss_serendipity(self) -> SelectionSnapshot:
        return self.dispatch(DismissSerendipity())

    def retry(self) -> SelectionSnapshot:
        return self.dispatch(Retry())

    def restart(self) -> SelectionSnapshot:
        return self.dispatch(RestartSelection())

    def on_shake_event(self, event: ShakeEvent) -> SelectionSnapshot:
        """Forward a raw shake as ShakeDetected when it is strong and long enough."""
        cfg = (self._settings or self._base_settings or get_settings()).shake
        if not event.triggers_serendipity(min_intensity=cfg.min_intensity, min_duration_ms=cfg.min_duration_ms):
            logger.debug("Shake below trigger (intensity=%.2f, duration=%dms)", event.intensity, event.duration_ms)
            return self.snapshot
        return self.shake_detected()

    # ------------------------------------------------------------------
    # Handlers (always called with the lock held)
    # ------------------------------------------------------------------

    def _ignore(self, event: object) -> None:
        logger.debug("Ignoring %s in state %s", _state_name(event), _state_name(self._snapshot.screen))

    def _recommendation(self) -> RankedCake | None:
        if not isinstance(self._snapshot.screen, (Ready, Overriding)):
            return None
        return self._ranking.top_choice

    def _session_preferences(self) -> tuple[PreferenceVector, PreferenceVector]:
        if self._self_preference is None or self._partner_preference is None:
            raise RuntimeError("selection session is not initialized")
        return self._self_preference, self._partner_preference

    def _find_candidate(self, cake_id: str) -> CakeCandidate | None:
        for cake in self._candidates:
            if cake.id == cake_id:
                return cake
        return None

    def _on_tapped(self, event: CakeTapped) -> None:
        recommendation = self._recommendation()
        if recommendation is None or self._find_candidate(event.cake_id) is None:
            self._ignore(event)
            return
        if event.cake_id == recommendation.cake_id:
            self._on_accept(AcceptRecommendation())
            return

        self._replace(
            replace(
                self._snapshot,
                screen=Overriding(original_cake_id=recommendation.cake_id, new_cake_id=event.cake_id),
                selected_cake_id=event.cake_id,
            )
        )
        self._emit(PlayHaptic(HapticKind.LIGHT_TAP))

    def _on_long_pressed(self, event: CakeLongPressed) -> None:
        if not self._snapshot.cakes or self._find_candidate(event.cake_id) is None:
            self._ignore(event)
            return
        # Preview only: no state change.
        self._emit(PlayHaptic(HapticKind.LIGHT_TAP))

    def _on_touch(self, event: CakeTouchStart | CakeTouchEnd) -> None:
        # Touch feedback never perturbs state or scores.
        return None

    def _on_accept(self, event: AcceptRecommendation) -> None:
        recommendation = self._recommendation()
        if recommendation is None:
            self._ignore(event)
            return
        self_preference, partner_preference = self._session_preferences()

        result = self._handler.apply_choice(
            recommendation,
            Acceptance(recommended_cake=recommendation),
            self_preference,
            partner_preference,
            self._weights,
        )
        self._replace(
            replace(
                self._snapshot,
                screen=Completed(chosen_cake_id=recommendation.cake_id, was_override=False),
                selected_cake_id=recommendation.cake_id,
                last_result=result,
            )
        )
        self._emit(PlayHaptic(HapticKind.SUCCESS))
        self._emit(Navigate(RESULT_DESTINATION))

    def _on_confirm_override(self, event: ConfirmOverride, reason: OverrideReason | None = None) -> None:
        if not isinstance(self._snapshot.screen, Overriding):
            self._ignore(event)
            return
        recommendation = self._ranking.top_choice
        chosen = self._find_candidate(event.cake_id)
        if recommendation is None or chosen is None:
            self._ignore(event)
            return
        if chosen.id == recommendation.cake_id:
            self._on_accept(AcceptRecommendation())
            return
        self_preference, partner_preference = self._session_preferences()

        choice = self._handler.create_override(recommendation, chosen.id, chosen.name, chosen.vector, reason)
        result = self._handler.apply_choice(
            recommendation,
            choice,
            self_preference,
            partner_preference,
            self._weights,
        )
        serendipity_event = result.triggered_serendipity

        snapshot = replace(
            self._snapshot,
            screen=Completed(chosen_cake_id=chosen.id, was_override=True),
            selected_cake_id=chosen.id,
            last_result=result,
        )
        if serendipity_event is not None:
            snapshot = replace(snapshot, serendipity_mode=SerendipityDetected(event=serendipity_event))
            learned = self._learn(serendipity_event)
            if learned is not None:
                snapshot = replace(snapshot, partner_profile=learned.updated_profile, last_learning=learned)
        self._replace(snapshot)

        self._emit(PlayHaptic(HapticKind.HEARTBEAT))
        memory = override_memory(self._rng)
        self._emit(
            ShowOverrideMemory(notification=memory.notification, moment=memory.moment, message=memory.message)
        )
        self._emit(Navigate(RESULT_DESTINATION))

    def _learn(self, event: SerendipityEvent) -> LearnResult | None:
        if self._profile is None:
            return None
        if event.discovered_aspects:
            surprise = max(aspect.surprise_level for aspect in event.discovered_aspects)
        else:
            surprise = clamp01(event.divergence_score / MAX_DIVERGENCE)
        rate = self._learner.adaptive_learning_rate(self._profile.overall_confidence(), surprise)
        result = self._learner.learn_from_serendipity(self._profile, event, rate)
        self._profile = result.updated_profile
        return result

    def _on_shake(self, event: ShakeDetected) -> None:
        if not self._snapshot.cakes or self._optimal is None:
            self._ignore(event)
            return

        self._emit(PlayHaptic(HapticKind.SHAKE_DETECTED))
        pick = self._selector.most_divergent(self._optimal, self._candidates)
        if not isinstance(pick, DivergentPick):
            return

        cakes = tuple(
            replace(cake, is_serendipity_pick=cake.id == pick.cake.id) for cake in self._snapshot.cakes
        )
        self._replace(
            replace(
                self._snapshot,
                cakes=cakes,
                serendipity_mode=SerendipityActive(divergent_cake_id=pick.cake.id),
                divergent_pick=pick,
            )
        )
        self._emit(ShowToast(shake_toast(pick.surprise_percentage)))

    def _on_dismiss(self, event: DismissSerendipity) -> None:
        self._replace(
            replace(
                self._snapshot,
                cakes=tuple(replace(cake, is_serendipity_pick=False) for cake in self._snapshot.cakes),
                serendipity_mode=SerendipityOff(),
                divergent_pick=None,
            )
        )

    def _on_retry(self, event: Retry) -> None:
        self._ranking = CakeRanking()
        self._optimal = None
        self._replace(SelectionSnapshot(partner_profile=self._profile))

    def _on_restart(self, event: RestartSelection) -> None:
        if not isinstance(self._snapshot.screen, (Ready, Overriding, Completed)):
            self._ignore(event)
            return
        self_preference, partner_preference = self._session_preferences()
        partner: PartnerInput = partner_preference
        if self._partner_confidence is not None:
            partner = PreferenceInferenceResult(
                inferred_preference=partner_preference,
                confidence=self._partner_confidence,
            )
        # The learned profile carries over into the new session.
        self.initialize(
            self_preference,
            partner,
            self._candidates,
            probabilities=self._probabilities,
            descriptions=self._descriptions,
            weights=self._weights,
            partner_profile=self._profile,
            settings_overrides=self._settings_overrides,
        )

    # ------------------------------------------------------------------
    # Snapshot and effect plumbing
    # ------------------------------------------------------------------

    def _replace(self, snapshot: SelectionSnapshot) -> SelectionSnapshot:
        previous = self._snapshot
        self._snapshot = snapshot
        if _state_name(previous.screen) != _state_name(snapshot.screen):
            logger.debug("Screen %s -> %s", _state_name(previous.screen), _state_name(snapshot.screen))
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def _emit(self, effect: UiEffect) -> None:
        self._effects.append(effect)
        if isinstance(effect, PlayHaptic):
            self._haptics.play(effect.kind)
