"""Time sources. All timestamps are integer unix seconds."""

from __future__ import annotations
import time


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Manually advanced clock for tests and deterministic replays."""

    def __init__(self, start: int = 1_700_000_000):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, ts: int) -> None:
        self._now = int(ts)

    def advance(self, seconds: int) -> int:
        self._now += int(seconds)
        return self._now
