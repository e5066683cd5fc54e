from __future__ import annotations

import pytest

from nback_trainer.pacing import (
    Dynamic,
    PacingMode,
    SelfPaced,
    Standard,
    adjust_dynamic_interval,
    after_trial,
    initial_pacing,
    mode_of,
    timer_s,
)


def test_one_error_then_nine_hits_from_three_seconds() -> None:
    base = 3.0
    running = adjust_dynamic_interval(base, base, had_error=True, had_hit=False)
    assert running == pytest.approx(3.1)

    seen = []
    for _ in range(9):
        running = adjust_dynamic_interval(running, base, had_error=False, had_hit=True)
        assert 2.5 <= running <= 4.0
        seen.append(running)

    expected = [3.05, 3.0, 2.95, 2.9, 2.85, 2.8, 2.75, 2.7, 2.65]
    assert seen == pytest.approx(expected)


def test_hits_stop_at_lower_clamp() -> None:
    base = 3.0
    running = base
    for _ in range(30):
        running = adjust_dynamic_interval(running, base, had_error=False, had_hit=True)
        assert running >= 2.5
    assert running == pytest.approx(2.5)


def test_errors_stop_at_upper_clamp() -> None:
    base = 3.0
    running = base
    for _ in range(30):
        running = adjust_dynamic_interval(running, base, had_error=True, had_hit=False)
        assert running <= 4.0
    assert running == pytest.approx(4.0)


def test_error_below_base_snaps_back_to_base() -> None:
    assert adjust_dynamic_interval(2.6, 3.0, had_error=True, had_hit=True) == pytest.approx(3.0)


def test_error_takes_priority_over_hit() -> None:
    assert adjust_dynamic_interval(3.0, 3.0, had_error=True, had_hit=True) == pytest.approx(3.1)


def test_no_signal_trial_leaves_interval_unchanged() -> None:
    assert adjust_dynamic_interval(2.85, 3.0, had_error=False, had_hit=False) == 2.85


def test_lower_clamp_never_below_tenth_of_a_second() -> None:
    running = 0.3
    for _ in range(20):
        running = adjust_dynamic_interval(running, 0.3, had_error=False, had_hit=True)
    assert running == pytest.approx(0.1)


def test_pacing_variants_dispatch() -> None:
    standard = initial_pacing("standard", 2.0)
    dynamic = initial_pacing(PacingMode.DYNAMIC, 2.0)
    manual = initial_pacing("self-paced", 2.0)

    assert isinstance(standard, Standard)
    assert isinstance(dynamic, Dynamic)
    assert isinstance(manual, SelfPaced)
    assert [mode_of(p) for p in (standard, dynamic, manual)] == [
        PacingMode.STANDARD,
        PacingMode.DYNAMIC,
        PacingMode.SELF_PACED,
    ]

    assert timer_s(standard) == 2.0
    assert timer_s(dynamic) == 2.0
    assert timer_s(manual) is None

    assert after_trial(standard, had_error=True, had_hit=False) == standard
    slowed = after_trial(dynamic, had_error=True, had_hit=False)
    assert isinstance(slowed, Dynamic)
    assert timer_s(slowed) == pytest.approx(2.1)
