from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from .cognitive_core import CENTER_CELL, GRID_SIZE, LETTERS, Modality, SeededRng, round_half_up

logger = logging.getLogger(__name__)

MATCH_RATE = 0.25
UNIFORM_WEIGHT = 10


class RoundMode(StrEnum):
    STANDARD = "standard"
    LINEAR = "linear"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class Trial:
    position: int
    symbol: str
    required_lag: int

    def stimulus(self, modality: Modality) -> int | str:
        return self.position if modality is Modality.SPATIAL else self.symbol


def round_count(n: int, mode: RoundMode | str = RoundMode.STANDARD, custom: int = 0) -> int:
    """Number of trials in a session for the given round mode."""

    mode = RoundMode(mode)
    if mode is RoundMode.LINEAR:
        return 20 + 4 * int(n)
    if mode is RoundMode.CUSTOM:
        return max(1, int(custom))
    return 20 + int(n) * int(n)


def resolve_weights(n: int, weights: Sequence[float] | None) -> list[float]:
    """Weights for lags 1..n; a list sized for a different N falls back to uniform."""

    if weights is None or len(weights) != n:
        return [float(UNIFORM_WEIGHT)] * n
    return [max(0.0, float(w)) for w in weights]


def probability_thresholds(weights: Sequence[float]) -> list[float]:
    """Cumulative, normalised weights. All zeros when the weights sum to zero."""

    cleaned = [max(0.0, float(w)) for w in weights]
    total = sum(cleaned)
    if total <= 0.0:
        return [0.0 for _ in cleaned]
    acc = 0.0
    out: list[float] = []
    for w in cleaned:
        acc += w / total
        out.append(acc)
    return out


def pick_lag(thresholds: Sequence[float], rng: SeededRng) -> int:
    if not thresholds or thresholds[-1] <= 0.0:
        return 1
    r = rng.random()
    for idx, threshold in enumerate(thresholds):
        if r < threshold:
            return idx + 1
    return len(thresholds)


def effective_difficulty(n: int, variable_mode: bool, weights: Sequence[float]) -> float:
    """Nominal N for fixed sessions, weighted mean lag for variable ones."""

    if not variable_mode:
        return float(n)
    cleaned = [max(0.0, float(w)) for w in weights]
    total = sum(cleaned)
    if total <= 0.0:
        return 1.0
    weighted = sum((idx + 1) * w for idx, w in enumerate(cleaned))
    return round_half_up(weighted / total, 2)


def _allowed_cells(*, exclude_center: bool) -> list[int]:
    return [p for p in range(GRID_SIZE) if not (exclude_center and p == CENTER_CELL)]


def generate(
    length: int,
    max_n: int,
    allow_center_cell: bool,
    variable_mode: bool,
    weights: Sequence[float],
    rng: SeededRng,
) -> tuple[Trial, ...]:
    """Build the trial sequence for one session.

    The first ``max_n`` trials are placed at random (there is nothing to match
    against yet). Every later trial independently repeats the spatial and the
    audio cue from ``required_lag`` trials back with probability ``MATCH_RATE``,
    otherwise draws from the remaining values. The centre cell is reserved for
    the lag number in variable mode.
    """

    if length < 1:
        raise ValueError("length must be >= 1")
    if max_n < 1:
        raise ValueError("max_n must be >= 1")

    exclude_center = variable_mode or not allow_center_cell
    cells = _allowed_cells(exclude_center=exclude_center)
    # Only lags 1..max_n may be drawn.
    if variable_mode and len(weights) > max_n:
        logger.debug("dropping %d lag weights beyond max_n=%d", len(weights) - max_n, max_n)
        weights = list(weights)[:max_n]
    thresholds = probability_thresholds(weights) if variable_mode else []
    if variable_mode and (not thresholds or thresholds[-1] <= 0.0):
        logger.debug("variable weights %r sum to zero; forcing lag 1", list(weights))

    seq: list[Trial] = []
    for i in range(length):
        if i < max_n:
            seq.append(
                Trial(
                    position=rng.choice(cells),
                    symbol=rng.choice(LETTERS),
                    required_lag=max_n,
                )
            )
            continue

        lag = pick_lag(thresholds, rng) if variable_mode else max_n
        ref = seq[i - lag]

        if rng.random() < MATCH_RATE:
            pos = ref.position
        else:
            pos = rng.choice([p for p in cells if p != ref.position])

        if rng.random() < MATCH_RATE:
            symbol = ref.symbol
        else:
            symbol = rng.choice([s for s in LETTERS if s != ref.symbol])

        seq.append(Trial(position=pos, symbol=symbol, required_lag=lag))

    return tuple(seq)


def has_history(index: int, trial: Trial) -> bool:
    return index >= trial.required_lag


def is_match(sequence: Sequence[Trial], index: int, modality: Modality) -> bool:
    """True iff trial ``index`` repeats the cue ``required_lag`` trials back."""

    trial = sequence[index]
    if not has_history(index, trial):
        return False
    ref = sequence[index - trial.required_lag]
    return trial.stimulus(modality) == ref.stimulus(modality)


class SequenceGenerator:
    """Seeded front end over ``generate`` for callers that keep one RNG per session."""

    def __init__(self, *, seed: int) -> None:
        self._seed = int(seed)
        self._rng = SeededRng(self._seed)

    @property
    def seed(self) -> int:
        return self._seed

    def generate(
        self,
        *,
        length: int,
        max_n: int,
        allow_center_cell: bool = True,
        variable_mode: bool = False,
        weights: Sequence[float] = (1,),
    ) -> tuple[Trial, ...]:
        return generate(length, max_n, allow_center_cell, variable_mode, weights, self._rng)
