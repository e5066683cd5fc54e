from __future__ import annotations

from dataclasses import dataclass

from nback_trainer.timers import RealClock, TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_timers_fire_in_deadline_order_with_their_own_deadline() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock=clock)
    fired: list[tuple[str, float]] = []
    timers.schedule(2.0, lambda t: fired.append(("b", t)))
    timers.schedule(1.0, lambda t: fired.append(("a", t)))

    clock.advance(5.0)
    assert timers.run_due() == 2
    assert fired == [("a", 1.0), ("b", 2.0)]
    assert timers.next_due_at_s() is None


def test_cancelled_timer_never_fires() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock=clock)
    fired: list[float] = []
    handle = timers.schedule(1.0, fired.append)
    handle.cancel()
    assert handle.pending is False

    clock.advance(2.0)
    assert timers.run_due() == 0
    assert fired == []
    assert timers.next_due_at_s() is None


def test_chained_timers_fire_within_one_pump() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock=clock)
    fired: list[float] = []

    def first(t: float) -> None:
        fired.append(t)
        timers.schedule(1.0, fired.append, now=t)

    timers.schedule(1.0, first)
    clock.advance(3.0)
    timers.run_due()
    assert fired == [1.0, 2.0]


def test_cancel_all_drops_pending_timers() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock=clock)
    handle = timers.schedule(1.0, lambda t: None)
    timers.cancel_all()
    assert handle.cancelled is True
    clock.advance(2.0)
    assert timers.run_due() == 0


def test_real_clock_is_monotonic() -> None:
    clock = RealClock()
    a = clock.now()
    b = clock.now()
    assert b >= a
