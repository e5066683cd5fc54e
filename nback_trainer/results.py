from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .pacing import PacingMode
from .scoring import ModalityScore, SignalScorer, accuracy


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Summary of one finished or stopped session.

    This is the only thing handed to the progression side. ``elapsed_seconds``
    is trials completed times the base interval, so a paused host does not
    stretch the recorded duration.
    """

    trials_completed: int
    spatial: ModalityScore
    audio: ModalityScore
    accuracy: float
    effective_difficulty: float
    elapsed_seconds: float

    n: int
    total_trials: int
    base_interval_s: float
    final_interval_s: float
    variable_mode: bool
    pacing_mode: PacingMode
    completed: bool

    @property
    def spatial_accuracy(self) -> float:
        return self.spatial.accuracy()

    @property
    def audio_accuracy(self) -> float:
        return self.audio.accuracy()

    def to_dict(self) -> dict[str, Any]:
        def _score(s: ModalityScore) -> dict[str, int]:
            return {
                "hits": s.hits,
                "misses": s.misses,
                "false_alarms": s.false_alarms,
                "correct_rejections": s.correct_rejections,
            }

        return {
            "trials_completed": self.trials_completed,
            "spatial": _score(self.spatial),
            "audio": _score(self.audio),
            "accuracy": self.accuracy,
            "effective_difficulty": self.effective_difficulty,
            "elapsed_seconds": self.elapsed_seconds,
            "n": self.n,
            "total_trials": self.total_trials,
            "base_interval_s": self.base_interval_s,
            "final_interval_s": self.final_interval_s,
            "variable_mode": self.variable_mode,
            "pacing_mode": self.pacing_mode.value,
            "completed": self.completed,
        }


ResultSink = Callable[[SessionResult], None]


def session_result_from_scorer(
    scorer: SignalScorer,
    *,
    trials_completed: int,
    total_trials: int,
    n: int,
    base_interval_s: float,
    final_interval_s: float,
    effective_difficulty: float,
    variable_mode: bool,
    pacing_mode: PacingMode,
) -> SessionResult:
    """Freeze the scorer's counts into a SessionResult."""

    spatial = scorer.spatial.copy()
    audio = scorer.audio.copy()
    total_acc = accuracy(
        spatial.hits + audio.hits,
        spatial.misses + audio.misses,
        spatial.false_alarms + audio.false_alarms,
    )
    done = int(trials_completed)
    return SessionResult(
        trials_completed=done,
        spatial=spatial,
        audio=audio,
        accuracy=float(total_acc),
        effective_difficulty=float(effective_difficulty),
        elapsed_seconds=float(done) * float(base_interval_s),
        n=int(n),
        total_trials=int(total_trials),
        base_interval_s=float(base_interval_s),
        final_interval_s=float(final_interval_s),
        variable_mode=bool(variable_mode),
        pacing_mode=PacingMode(pacing_mode),
        completed=done >= int(total_trials),
    )
