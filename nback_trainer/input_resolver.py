from __future__ import annotations

import logging
from enum import StrEnum

from .cognitive_core import Feedback, Modality
from .scoring import Outcome, SignalScorer
from .sequence import has_history, is_match
from .state import SessionState

logger = logging.getLogger(__name__)

GRACE_PERIOD_S = 0.2


class ResolveOutcome(StrEnum):
    INVALID_NO_EFFECT = "invalid_no_effect"
    CONVERTED_LATE_HIT = "converted_late_hit"
    CONVERTED_LATE_FALSE_ALARM = "converted_late_false_alarm"
    NORMAL_HIT = "normal_hit"
    NORMAL_FALSE_ALARM = "normal_false_alarm"
    IGNORED = "ignored"


class InputResolver:
    """Turns a modality press at some time into a scoring decision.

    A press shortly after a trial starts is first offered to the previous
    trial: if that trial could have been a target and was not pressed, its
    committed outcome is rewritten (miss -> hit, correct rejection -> false
    alarm) and the current trial is left alone. Every other press only marks
    the current trial as pressed; the current trial's score is committed later
    by the scheduler.
    """

    def __init__(
        self,
        *,
        scorer: SignalScorer,
        show_feedback: bool = True,
        grace_period_s: float = GRACE_PERIOD_S,
    ) -> None:
        if grace_period_s < 0.0:
            raise ValueError("grace_period_s must be >= 0")
        self._scorer = scorer
        self._show_feedback = bool(show_feedback)
        self._grace_period_s = float(grace_period_s)

    @property
    def grace_period_s(self) -> float:
        return self._grace_period_s

    def resolve(self, state: SessionState | None, modality: Modality, now: float) -> ResolveOutcome:
        modality = Modality(modality)
        if state is None or not state.has_trial:
            return ResolveOutcome.INVALID_NO_EFFECT

        late = self._resolve_late_press(state, modality, now)
        if late is not None:
            return late

        idx = state.current_index
        trial = state.sequence[idx]
        if not has_history(idx, trial):
            logger.debug("press %s on trial %d ignored: below lag %d", modality.value, idx, trial.required_lag)
            return ResolveOutcome.IGNORED
        if state.pending_inputs.get(modality):
            return ResolveOutcome.IGNORED

        state.pending_inputs.mark(modality)
        matched = is_match(state.sequence, idx, modality)
        self._set_feedback(state, modality, matched)
        return ResolveOutcome.NORMAL_HIT if matched else ResolveOutcome.NORMAL_FALSE_ALARM

    def _resolve_late_press(
        self,
        state: SessionState,
        modality: Modality,
        now: float,
    ) -> ResolveOutcome | None:
        if state.current_index <= 0:
            return None
        if now - state.trial_started_at_s >= self._grace_period_s:
            return None

        prev_idx = state.current_index - 1
        if not has_history(prev_idx, state.sequence[prev_idx]):
            return None
        if state.previous_trial_inputs.get(modality):
            return None

        corrected = self._scorer.correct_late_press(prev_idx, modality)
        if corrected is None:
            return None

        state.previous_trial_inputs.mark(modality)
        was_hit = corrected is Outcome.HIT
        self._set_feedback(state, modality, was_hit)
        return ResolveOutcome.CONVERTED_LATE_HIT if was_hit else ResolveOutcome.CONVERTED_LATE_FALSE_ALARM

    def _set_feedback(self, state: SessionState, modality: Modality, correct: bool) -> None:
        if self._show_feedback:
            state.feedback[modality] = Feedback.CORRECT if correct else Feedback.WRONG
