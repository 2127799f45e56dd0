"""Block time sources for the host."""

import time


class SystemClock:
    """Wall-clock time in whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Settable clock for simulations and tests."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move time forward and return the new time."""
        if seconds < 0:
            raise ValueError(f"cannot move time backwards: {seconds}")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(f"cannot move time backwards: {timestamp} < {self._now}")
        self._now = timestamp
