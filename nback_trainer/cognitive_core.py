from __future__ import annotations

import math
import random
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import TypeVar

T = TypeVar("T")

GRID_SIZE = 9
CENTER_CELL = 4
LETTERS: tuple[str, ...] = ("c", "h", "k", "l", "q", "r", "s", "t")

DEFAULT_N = 2
DEFAULT_INTERVAL_S = 3.0
DEFAULT_DISPLAY_S = 0.5


class Phase(str, Enum):
    IDLE = "idle"
    PRE_ROLL = "pre_roll"
    PRESENTING = "presenting"
    FINISHED = "finished"


class Modality(StrEnum):
    SPATIAL = "spatial"
    AUDIO = "audio"


class Feedback(StrEnum):
    CORRECT = "correct"
    WRONG = "wrong"


@dataclass(frozen=True, slots=True)
class ModalityView:
    pressed: bool
    feedback: Feedback | None


@dataclass(frozen=True, slots=True)
class TrialSnapshot:
    """View model for the UI (pure data)."""

    phase: Phase
    trial_index: int
    total_trials: int
    active_cell: int | None
    lag_display: int | None
    spatial: ModalityView
    audio: ModalityView
    running_interval_s: float
    awaiting_manual_advance: bool


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def random(self) -> float:
        return self._rng.random()

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)


def round_half_up(x: float, ndigits: int = 0) -> float:
    # Fixed-point style rounding so 2.675 -> 2.68 the way a display would show it.
    scale = 10.0**ndigits
    return math.floor(x * scale + 0.5 + 1e-9) / scale
