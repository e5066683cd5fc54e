from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum

from .cognitive_core import round_half_up

DYNAMIC_ERROR_STEP_S = 0.10
DYNAMIC_HIT_STEP_S = 0.05
DYNAMIC_MAX_EXTRA_S = 1.0
DYNAMIC_MAX_REDUCTION_S = 0.5
MIN_INTERVAL_S = 0.1


class PacingMode(StrEnum):
    STANDARD = "standard"
    DYNAMIC = "dynamic"
    SELF_PACED = "self-paced"


@dataclass(frozen=True, slots=True)
class Standard:
    base_interval_s: float


@dataclass(frozen=True, slots=True)
class Dynamic:
    base_interval_s: float
    running_interval_s: float


@dataclass(frozen=True, slots=True)
class SelfPaced:
    base_interval_s: float


Pacing = Standard | Dynamic | SelfPaced


def initial_pacing(mode: PacingMode | str, base_interval_s: float) -> Pacing:
    mode = PacingMode(mode)
    base = float(base_interval_s)
    if mode is PacingMode.DYNAMIC:
        return Dynamic(base_interval_s=base, running_interval_s=base)
    if mode is PacingMode.SELF_PACED:
        return SelfPaced(base_interval_s=base)
    return Standard(base_interval_s=base)


def mode_of(pacing: Pacing) -> PacingMode:
    if isinstance(pacing, Dynamic):
        return PacingMode.DYNAMIC
    if isinstance(pacing, SelfPaced):
        return PacingMode.SELF_PACED
    return PacingMode.STANDARD


def adjust_dynamic_interval(
    running_s: float,
    base_s: float,
    *,
    had_error: bool,
    had_hit: bool,
) -> float:
    """Next running interval after one resolved trial.

    Any error slows the pace by 0.1 s, never below the base nor above
    base + 1.0. Otherwise any hit speeds it up by 0.05 s, never below
    max(0.1, base - 0.5). A trial with neither leaves it unchanged.
    """

    if had_error:
        raw = round_half_up(running_s + DYNAMIC_ERROR_STEP_S, 2)
        ceiling = round_half_up(base_s + DYNAMIC_MAX_EXTRA_S, 2)
        return min(max(raw, base_s), ceiling)
    if had_hit:
        raw = round_half_up(running_s - DYNAMIC_HIT_STEP_S, 2)
        floor = max(MIN_INTERVAL_S, round_half_up(base_s - DYNAMIC_MAX_REDUCTION_S, 2))
        return max(raw, floor)
    return float(running_s)


def after_trial(pacing: Pacing, *, had_error: bool, had_hit: bool) -> Pacing:
    if isinstance(pacing, Dynamic):
        running = adjust_dynamic_interval(
            pacing.running_interval_s,
            pacing.base_interval_s,
            had_error=had_error,
            had_hit=had_hit,
        )
        return replace(pacing, running_interval_s=running)
    return pacing


def timer_s(pacing: Pacing) -> float | None:
    """Seconds until automatic advance, or None when advance is manual."""

    if isinstance(pacing, SelfPaced):
        return None
    if isinstance(pacing, Dynamic):
        return pacing.running_interval_s
    return pacing.base_interval_s


def display_interval_s(pacing: Pacing) -> float:
    if isinstance(pacing, Dynamic):
        return pacing.running_interval_s
    return pacing.base_interval_s
