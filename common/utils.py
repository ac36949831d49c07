from __future__ import annotations

from typing import Deque
from dataclasses import dataclass, field
from collections import deque
import time


def now_ms() -> int:
    """Wall-clock milliseconds; used to stamp telemetry rows."""
    return int(time.time() * 1000)


@dataclass(slots=True)
class RateTimer:
    """
    Simple rate tracker for loop diagnostics.

    Usage:
        rt = RateTimer(window=50)
        while True:
            subsystem.periodic()
            hz = rt.tick()
    """
    window: int = 50
    _times: Deque[float] = field(default_factory=deque)

    def __post_init__(self) -> None:
        self._times = deque(maxlen=self.window)

    def tick(self) -> float:
        t = time.perf_counter()
        self._times.append(t)
        if len(self._times) < 2:
            return 0.0
        dt = (self._times[-1] - self._times[0]) / (len(self._times) - 1)
        return 0.0 if dt <= 0 else 1.0 / dt


@dataclass(slots=True)
class LoopPacer:
    """
    Fixed-period scheduler for the cycle driver.

    `wait()` sleeps for whatever is left of the current period and returns the
    overrun in seconds (0.0 when the cycle finished in time). Sleeping happens
    between cycles only.
    """
    period_s: float
    _last: float = field(default=0.0, init=False)

    def __post_init__(self) -> None:
        if self.period_s <= 0:
            raise ValueError("period_s must be > 0")
        self._last = time.perf_counter()

    def wait(self) -> float:
        now = time.perf_counter()
        sleep_for = self.period_s - (now - self._last)
        overrun = 0.0
        if sleep_for > 0:
            time.sleep(sleep_for)
        else:
            overrun = -sleep_for
        self._last = time.perf_counter()
        return overrun
