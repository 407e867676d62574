"""Deterministic time for wait loop tests."""

from __future__ import annotations


class FakeClock:
    """Monotonic clock advanced only by its own sleep.

    Pass ``clock`` as the waiter clock and ``clock.sleep`` as its sleep.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        """Move time forward without a sleep (e.g. a slow refresh)."""
        self.now += seconds

    @property
    def total_slept(self) -> float:
        return sum(self.sleeps)
