from __future__ import annotations

from dataclasses import dataclass

import pytest

from nback_trainer.cognitive_core import Modality, Phase, SeededRng
from nback_trainer.config import SessionConfig
from nback_trainer.pacing import PacingMode
from nback_trainer.results import SessionResult
from nback_trainer.scheduler import PRE_ROLL_S, TrialScheduler, build_trial_scheduler
from nback_trainer.sequence import generate, is_match


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _drive_to_finish(
    *,
    clock: FakeClock,
    sched: TrialScheduler,
    press_rng: SeededRng | None = None,
    max_trials: int = 500,
) -> None:
    """Press on every true target (or at random when press_rng is given)."""

    clock.advance(PRE_ROLL_S)
    sched.update()
    for _ in range(max_trials):
        if sched.phase is Phase.FINISHED:
            return
        state = sched.state
        assert state is not None
        idx = state.current_index

        clock.advance(0.5)
        for modality in Modality:
            if press_rng is None:
                wanted = is_match(state.sequence, idx, modality)
            else:
                wanted = press_rng.random() < 0.3
            if wanted:
                sched.press(modality)

        remaining = sched.time_until_advance_s()
        if remaining is None:
            sched.advance()
        else:
            clock.advance(remaining + 0.001)
            sched.update()
    raise AssertionError(f"session did not finish in {max_trials} trials")


def _perfect_run(seed: int, pacing: PacingMode) -> SessionResult:
    clock = FakeClock()
    config = SessionConfig(
        n=2,
        round_count=24,
        use_center_cell=True,
        variable_mode=False,
        variable_weights=(1,),
        base_interval_s=3.0,
        pacing_mode=pacing,
    )
    sched = build_trial_scheduler(clock=clock, seed=seed, config=config)
    sched.start()
    assert sched.state is not None
    assert sched.state.sequence == generate(24, 2, True, False, [1], SeededRng(seed))
    _drive_to_finish(clock=clock, sched=sched)
    assert sched.result is not None
    return sched.result


@pytest.mark.parametrize("pacing", list(PacingMode))
def test_perfect_play_scores_one_hundred(pacing: PacingMode) -> None:
    result = _perfect_run(2468, pacing)

    assert result.completed is True
    assert result.trials_completed == 24
    assert result.spatial.misses == 0
    assert result.spatial.false_alarms == 0
    assert result.audio.misses == 0
    assert result.audio.false_alarms == 0
    assert result.spatial.hits + result.spatial.correct_rejections == 22
    assert result.audio.hits + result.audio.correct_rejections == 22
    assert result.accuracy == 100.0
    assert result.elapsed_seconds == pytest.approx(24 * 3.0)
    assert result.effective_difficulty == 2.0


def test_perfect_dynamic_play_never_slows_down() -> None:
    result = _perfect_run(1357, PacingMode.DYNAMIC)
    assert 2.5 <= result.final_interval_s <= 3.0


def _random_run(seed: int) -> tuple[dict[str, object], list[tuple[int, str, str]]]:
    clock = FakeClock()
    config = SessionConfig(
        n=3,
        round_count=40,
        variable_mode=True,
        variable_weights=(3, 2, 1),
        pacing_mode=PacingMode.DYNAMIC,
    )
    sched = build_trial_scheduler(clock=clock, seed=seed, config=config)
    sched.start()
    _drive_to_finish(clock=clock, sched=sched, press_rng=SeededRng(seed + 1))
    assert sched.result is not None
    commits = [(c.trial_index, c.modality.value, c.outcome.value) for c in sched.scorer.commits()]
    return sched.result.to_dict(), commits


def test_headless_scripted_run_is_exactly_deterministic() -> None:
    result_1, commits_1 = _random_run(seed=441)
    result_2, commits_2 = _random_run(seed=441)
    assert result_1 == result_2
    assert commits_1 == commits_2


def test_random_play_commits_only_trials_with_history() -> None:
    clock = FakeClock()
    config = SessionConfig(n=3, round_count=40, variable_mode=True, variable_weights=(1, 1, 1))
    sched = build_trial_scheduler(clock=clock, seed=55, config=config)
    sched.start()
    state = sched.state
    assert state is not None
    seq = state.sequence

    _drive_to_finish(clock=clock, sched=sched, press_rng=SeededRng(56))

    committed = {c.trial_index for c in sched.scorer.commits()}
    expected = {i for i, t in enumerate(seq) if i >= t.required_lag}
    assert committed == expected

    result = sched.result
    assert result is not None
    for score in (result.spatial, result.audio):
        assert score.hits + score.misses + score.false_alarms + score.correct_rejections == len(expected)
        assert min(score.hits, score.misses, score.false_alarms, score.correct_rejections) >= 0
    assert 0.0 <= result.accuracy <= 100.0
