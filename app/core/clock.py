import threading
import time
from typing import Protocol


class Clock(Protocol):
    """Source of non-decreasing integer timestamps."""

    def now(self) -> int: ...


class SystemClock:
    """
    Wall clock in whole epoch seconds.

    Readings never go backwards: if the system time is adjusted backwards,
    the last reading is returned until the wall clock catches up.
    """

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class FixedClock:
    """Clock that always returns the same timestamp."""

    def __init__(self, value: int):
        self.value = value

    def now(self) -> int:
        return self.value


_system_clock = SystemClock()


def get_clock() -> Clock:
    """Dependency that provides the process-wide system clock."""
    return _system_clock
