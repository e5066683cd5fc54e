from __future__ import annotations

from dataclasses import dataclass, field

from .cognitive_core import Feedback, Modality
from .pacing import Pacing, display_interval_s
from .sequence import Trial


@dataclass(slots=True)
class InputFlags:
    spatial: bool = False
    audio: bool = False

    def get(self, modality: Modality) -> bool:
        return self.spatial if modality is Modality.SPATIAL else self.audio

    def mark(self, modality: Modality) -> None:
        if modality is Modality.SPATIAL:
            self.spatial = True
        else:
            self.audio = True

    def copy(self) -> InputFlags:
        return InputFlags(spatial=self.spatial, audio=self.audio)


@dataclass(slots=True)
class SessionState:
    """Everything one session owns. Created at start, dropped at finalisation."""

    token: int
    sequence: tuple[Trial, ...]
    pacing: Pacing
    variable_mode: bool
    n: int
    current_index: int = -1
    trials_completed: int = 0
    trial_started_at_s: float = 0.0
    pending_inputs: InputFlags = field(default_factory=InputFlags)
    previous_trial_inputs: InputFlags = field(default_factory=InputFlags)
    feedback: dict[Modality, Feedback | None] = field(
        default_factory=lambda: {m: None for m in Modality}
    )
    active_cell: int | None = None
    lag_display: int | None = None

    @property
    def running_interval_s(self) -> float:
        return display_interval_s(self.pacing)

    @property
    def has_trial(self) -> bool:
        return 0 <= self.current_index < len(self.sequence)

    def current_trial(self) -> Trial | None:
        return self.sequence[self.current_index] if self.has_trial else None

    def begin_trial(self, index: int, *, now: float) -> Trial:
        """Move to trial ``index``: snapshot the inputs, then clear them."""

        self.previous_trial_inputs = self.pending_inputs.copy()
        self.pending_inputs = InputFlags()
        self.feedback = {m: None for m in Modality}
        self.current_index = index
        self.trial_started_at_s = float(now)

        trial = self.sequence[index]
        self.active_cell = trial.position
        self.lag_display = trial.required_lag if self.variable_mode and index >= self.n else None
        return trial

    def clear_display(self) -> None:
        self.active_cell = None
        self.lag_display = None
