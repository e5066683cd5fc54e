from __future__ import annotations

import logging
from typing import Protocol

from .cognitive_core import Modality, ModalityView, Phase, SeededRng, TrialSnapshot
from .config import SessionConfig
from .input_resolver import InputResolver, ResolveOutcome
from .pacing import SelfPaced, after_trial, initial_pacing, mode_of, timer_s
from .results import ResultSink, SessionResult, session_result_from_scorer
from .scoring import Outcome, SignalScorer
from .sequence import effective_difficulty, generate, has_history, is_match
from .state import SessionState
from .timers import Clock, TimerHandle, TimerQueue

logger = logging.getLogger(__name__)

# Gives audio output time to unlock before the first stimulus.
PRE_ROLL_S = 2.0


class PlaybackSink(Protocol):
    def play(self, symbol: str) -> None:
        ...


class TrialScheduler:
    """Walks one generated sequence trial by trial.

    IDLE -> PRE_ROLL -> PRESENTING(0) -> ... -> PRESENTING(len-1) -> FINISHED

    - Time is entirely via the injected Clock; the host calls ``update()``
      from its loop and pending timers fire in deadline order.
    - Each trial is committed to the scorer exactly once, when it is left.
    - Every timer callback carries the session token it was scheduled under;
      callbacks from a torn-down session do nothing.
    """

    def __init__(
        self,
        *,
        config: SessionConfig,
        clock: Clock,
        seed: int,
        playback: PlaybackSink | None = None,
        on_result: ResultSink | None = None,
        pre_roll_s: float = PRE_ROLL_S,
    ) -> None:
        config.validate()
        if pre_roll_s < 0.0:
            raise ValueError("pre_roll_s must be >= 0")

        self._cfg = config
        self._clock = clock
        self._seed = int(seed)
        self._rng = SeededRng(self._seed)
        self._playback = playback
        self._on_result = on_result
        self._pre_roll_s = float(pre_roll_s)

        self._weights = config.lag_weights()
        self._scorer = SignalScorer()
        self._resolver = InputResolver(scorer=self._scorer, show_feedback=config.show_feedback)
        self._timers = TimerQueue(clock=clock)

        self._phase = Phase.IDLE
        self._token = 0
        self._state: SessionState | None = None
        self._advance_timer: TimerHandle | None = None
        self._display_timer: TimerHandle | None = None
        self._result: SessionResult | None = None
        self._playback_warned = False

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def config(self) -> SessionConfig:
        return self._cfg

    @property
    def scorer(self) -> SignalScorer:
        return self._scorer

    @property
    def state(self) -> SessionState | None:
        return self._state

    @property
    def result(self) -> SessionResult | None:
        return self._result

    @property
    def is_active(self) -> bool:
        return self._phase in (Phase.PRE_ROLL, Phase.PRESENTING)

    def start(self) -> bool:
        """Generate a fresh sequence and schedule the first trial after the pre-roll."""

        if self.is_active:
            return False

        cfg = self._cfg
        sequence = generate(
            cfg.round_count,
            cfg.n,
            cfg.use_center_cell,
            cfg.variable_mode,
            self._weights,
            self._rng,
        )
        self._token += 1
        self._scorer.reset()
        self._result = None
        self._state = SessionState(
            token=self._token,
            sequence=sequence,
            pacing=initial_pacing(cfg.pacing_mode, cfg.base_interval_s),
            variable_mode=cfg.variable_mode,
            n=cfg.n,
        )
        self._phase = Phase.PRE_ROLL

        token = self._token
        self._timers.schedule(
            self._pre_roll_s,
            lambda t: self._on_pre_roll_done(token, t),
            label="pre_roll",
        )
        logger.info(
            "session %d started: n=%d trials=%d pacing=%s variable=%s",
            token,
            cfg.n,
            len(sequence),
            cfg.pacing_mode,
            cfg.variable_mode,
        )
        return True

    def update(self) -> None:
        self._timers.run_due(self._clock.now())

    def press(self, modality: Modality | str, timestamp: float | None = None) -> ResolveOutcome:
        now = self._clock.now() if timestamp is None else float(timestamp)
        # Anything that should have happened before this press happens first.
        self._timers.run_due(now)
        if self._phase is not Phase.PRESENTING:
            return ResolveOutcome.INVALID_NO_EFFECT
        outcome = self._resolver.resolve(self._state, Modality(modality), now)
        logger.debug("press %s at %.3f -> %s", modality, now, outcome.value)
        return outcome

    def advance(self) -> bool:
        """Manual advance. Only meaningful in self-paced mode."""

        state = self._state
        if self._phase is not Phase.PRESENTING or state is None:
            return False
        if not isinstance(state.pacing, SelfPaced):
            return False
        self._finish_trial_and_next(state, now=self._clock.now())
        return True

    def stop(self) -> SessionResult | None:
        """End the session now, scoring only the trials already resolved."""

        if not self.is_active:
            return None
        logger.info("session %d stopped by caller", self._token)
        return self._finalize()

    def time_until_advance_s(self) -> float | None:
        handle = self._advance_timer
        if handle is None or not handle.pending:
            return None
        return max(0.0, handle.due_at_s - self._clock.now())

    def snapshot(self) -> TrialSnapshot:
        state = self._state
        if state is None:
            return TrialSnapshot(
                phase=self._phase,
                trial_index=-1,
                total_trials=self._cfg.round_count,
                active_cell=None,
                lag_display=None,
                spatial=ModalityView(pressed=False, feedback=None),
                audio=ModalityView(pressed=False, feedback=None),
                running_interval_s=self._cfg.base_interval_s,
                awaiting_manual_advance=False,
            )

        return TrialSnapshot(
            phase=self._phase,
            trial_index=state.current_index,
            total_trials=len(state.sequence),
            active_cell=state.active_cell,
            lag_display=state.lag_display,
            spatial=ModalityView(
                pressed=state.pending_inputs.spatial,
                feedback=state.feedback[Modality.SPATIAL],
            ),
            audio=ModalityView(
                pressed=state.pending_inputs.audio,
                feedback=state.feedback[Modality.AUDIO],
            ),
            running_interval_s=state.running_interval_s,
            awaiting_manual_advance=self._phase is Phase.PRESENTING and isinstance(state.pacing, SelfPaced),
        )

    def _is_live(self, token: int) -> bool:
        return self.is_active and self._state is not None and token == self._token

    def _on_pre_roll_done(self, token: int, now: float) -> None:
        if not self._is_live(token):
            logger.debug("stale pre-roll timer for session %d ignored", token)
            return
        assert self._state is not None
        self._present(self._state, 0, now=now)

    def _on_advance_due(self, token: int, index: int, now: float) -> None:
        state = self._state
        if not self._is_live(token) or state is None or state.current_index != index:
            logger.debug("stale advance timer for trial %d ignored", index)
            return
        self._finish_trial_and_next(state, now=now)

    def _on_display_due(self, token: int, index: int, now: float) -> None:
        state = self._state
        if not self._is_live(token) or state is None or state.current_index != index:
            return
        state.clear_display()

    def _present(self, state: SessionState, index: int, *, now: float) -> None:
        if index >= len(state.sequence):
            self._finalize()
            return

        trial = state.begin_trial(index, now=now)
        self._phase = Phase.PRESENTING

        token = state.token
        self._display_timer = self._timers.schedule(
            self._cfg.display_s,
            lambda t: self._on_display_due(token, index, t),
            label="display",
            now=now,
        )
        delay = timer_s(state.pacing)
        if delay is not None:
            self._advance_timer = self._timers.schedule(
                delay,
                lambda t: self._on_advance_due(token, index, t),
                label="advance",
                now=now,
            )
        self._play(trial.symbol)

    def _play(self, symbol: str) -> None:
        if self._playback is None:
            return
        try:
            self._playback.play(symbol)
        except Exception:
            if not self._playback_warned:
                logger.warning("playback failed; continuing without audio", exc_info=True)
                self._playback_warned = True

    def _finish_trial_and_next(self, state: SessionState, *, now: float) -> None:
        self._cancel_trial_timers()
        had_error, had_hit = self._commit_trial(state)
        state.trials_completed += 1
        state.pacing = after_trial(state.pacing, had_error=had_error, had_hit=had_hit)
        state.clear_display()
        self._present(state, state.current_index + 1, now=now)

    def _commit_trial(self, state: SessionState) -> tuple[bool, bool]:
        idx = state.current_index
        trial = state.sequence[idx]
        if not has_history(idx, trial):
            return False, False

        had_error = False
        had_hit = False
        for modality in Modality:
            outcome = self._scorer.record_outcome(
                modality,
                is_match(state.sequence, idx, modality),
                state.pending_inputs.get(modality),
                trial_index=idx,
            )
            if outcome is Outcome.HIT:
                had_hit = True
            elif outcome in (Outcome.MISS, Outcome.FALSE_ALARM):
                had_error = True
        logger.debug("trial %d committed (error=%s hit=%s)", idx, had_error, had_hit)
        return had_error, had_hit

    def _cancel_trial_timers(self) -> None:
        for handle in (self._advance_timer, self._display_timer):
            if handle is not None:
                handle.cancel()
        self._advance_timer = None
        self._display_timer = None

    def _finalize(self) -> SessionResult:
        self._cancel_trial_timers()
        self._timers.cancel_all()

        state = self._state
        assert state is not None
        cfg = self._cfg
        result = session_result_from_scorer(
            self._scorer,
            trials_completed=state.trials_completed,
            total_trials=len(state.sequence),
            n=cfg.n,
            base_interval_s=cfg.base_interval_s,
            final_interval_s=state.running_interval_s,
            effective_difficulty=effective_difficulty(cfg.n, cfg.variable_mode, self._weights),
            variable_mode=cfg.variable_mode,
            pacing_mode=mode_of(state.pacing),
        )
        self._result = result
        self._state = None
        self._phase = Phase.FINISHED
        logger.info(
            "session %d finished: %d/%d trials, accuracy %.1f%%",
            state.token,
            result.trials_completed,
            result.total_trials,
            result.accuracy,
        )
        if self._on_result is not None:
            self._on_result(result)
        return result


def build_trial_scheduler(
    *,
    clock: Clock,
    seed: int,
    config: SessionConfig | None = None,
    playback: PlaybackSink | None = None,
    on_result: ResultSink | None = None,
) -> TrialScheduler:
    return TrialScheduler(
        config=config or SessionConfig(),
        clock=clock,
        seed=seed,
        playback=playback,
        on_result=on_result,
    )
