"""Unit tests for the fixed-window rate gate."""

import asyncio
from collections import Counter

import pytest

from place_resolver.core.config import Settings
from place_resolver.lib.rate_gate import GateClass, RateGate, build_rate_gates


class FakeTime:
    """Monotonic clock whose sleep advances time instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def _gate(fake: FakeTime, max_calls: int, window: float = 60.0, min_delay: float = 0.0) -> RateGate:
    return RateGate("test", max_calls, window, min_delay, clock=fake.clock, sleep=fake.sleep)


class TestRateGate:
    """Tests for admission, spacing, and window resets."""

    async def test_first_call_admitted_immediately(self) -> None:
        fake = FakeTime()
        gate = _gate(fake, max_calls=3, min_delay=1.0)
        await gate.wait_for_next_call()
        assert fake.sleeps == []
        assert gate.remaining_calls() == 2

    async def test_min_delay_spaces_calls(self) -> None:
        fake = FakeTime()
        gate = _gate(fake, max_calls=10, min_delay=2.0)
        await gate.wait_for_next_call()
        await gate.wait_for_next_call()
        assert fake.sleeps == [2.0]
        assert fake.now == 2.0

    async def test_exhausted_window_waits_for_reset(self) -> None:
        fake = FakeTime()
        gate = _gate(fake, max_calls=2, window=60.0)
        await gate.wait_for_next_call()
        fake.now = 10.0
        await gate.wait_for_next_call()
        assert gate.remaining_calls() == 0

        await gate.wait_for_next_call()

        assert fake.sleeps == [50.0]
        assert fake.now == 60.0
        assert gate.remaining_calls() == 1

    async def test_never_exceeds_cap_per_window_under_concurrency(self) -> None:
        fake = FakeTime()
        gate = _gate(fake, max_calls=3, window=60.0)
        admitted: list[float] = []

        async def call() -> None:
            await gate.wait_for_next_call()
            admitted.append(fake.now)

        await asyncio.gather(*(call() for _ in range(7)))

        assert len(admitted) == 7
        assert admitted[:3] == [0.0, 0.0, 0.0]
        assert all(t >= 60.0 for t in admitted[3:])
        assert max(Counter(admitted).values()) <= 3

    async def test_concurrent_callers_get_distinct_slots(self) -> None:
        sleeps: list[float] = []

        async def record(seconds: float) -> None:
            sleeps.append(seconds)

        # Frozen clock: every caller reserves at t=0, so spacing must stack
        gate = RateGate("test", 10, 60.0, 1.0, clock=lambda: 0.0, sleep=record)
        await asyncio.gather(*(gate.wait_for_next_call() for _ in range(3)))
        assert sorted(sleeps) == [1.0, 2.0]

    async def test_time_until_reset(self) -> None:
        fake = FakeTime()
        gate = _gate(fake, max_calls=1, window=60.0)
        fake.now = 15.0
        assert gate.time_until_reset() == 45.0
        fake.now = 75.0
        assert gate.time_until_reset() == 0.0
        assert gate.remaining_calls() == 1

    @pytest.mark.parametrize(
        ("max_calls", "window", "min_delay"),
        [(0, 60.0, 0.0), (1, 0.0, 0.0), (1, 60.0, -1.0)],
    )
    def test_invalid_configuration(self, max_calls: int, window: float, min_delay: float) -> None:
        with pytest.raises(ValueError):
            RateGate("bad", max_calls, window, min_delay)


class TestBuildRateGates:
    """Tests for per-caller-class gate construction."""

    def test_independent_gates_from_settings(self) -> None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        gates = build_rate_gates(settings)

        geocoding = gates[GateClass.GEOCODING]
        public = gates[GateClass.PUBLIC]
        assert geocoding is not public
        assert (geocoding.max_calls, geocoding.window_seconds, geocoding.min_delay) == (50, 60.0, 1.0)
        assert (public.max_calls, public.window_seconds, public.min_delay) == (10, 60.0, 2.0)

    async def test_gates_do_not_share_counters(self) -> None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        gates = build_rate_gates(settings)
        await gates[GateClass.PUBLIC].wait_for_next_call()
        assert gates[GateClass.PUBLIC].remaining_calls() == 9
        assert gates[GateClass.GEOCODING].remaining_calls() == 50
