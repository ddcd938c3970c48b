"""Free-running 16-bit tick counters and deadline checks built on them."""

from __future__ import annotations

import enum

_MASK = 0xFFFF
_TENTH_MS = 100
_SECOND_MS = 1000


class TimeUnit(enum.Enum):
    """Resolution of a counter kept by a :class:`Clock`."""

    MILLISECOND = "ms"
    TENTH_SECOND = "tenth"
    SECOND = "s"


class Clock:
    """Three wrapping 16-bit counters: milliseconds, tenths and seconds.

    The millisecond counter is advanced by :meth:`tick_ms`; the slower
    counters follow it when :meth:`update_tenths` and :meth:`update_seconds`
    are called.
    """

    def __init__(self, ms: int = 0, tenths: int = 0, seconds: int = 0) -> None:
        self._counts = {
            TimeUnit.MILLISECOND: ms & _MASK,
            TimeUnit.TENTH_SECOND: tenths & _MASK,
            TimeUnit.SECOND: seconds & _MASK,
        }
        self.max_loop_time = 0
        self._last_loop_mark = 0
        self._tenth_timer = Deadline(self, TimeUnit.MILLISECOND)
        self._second_timer = Deadline(self, TimeUnit.MILLISECOND)

    def tick_ms(self) -> None:
        """Advance the millisecond counter by one."""
        self._advance(TimeUnit.MILLISECOND)

    def update_tenths(self) -> None:
        """Advance the tenth-second counter once 100 ms have passed."""
        if self._tenth_timer.check(_TENTH_MS):
            self._advance(TimeUnit.TENTH_SECOND)

    def update_seconds(self) -> None:
        """Advance the second counter once 1000 ms have passed."""
        if self._second_timer.check(_SECOND_MS):
            self._advance(TimeUnit.SECOND)

    def record_loop(self) -> int:
        """Measure milliseconds since the previous call and track the maximum."""
        now = self.now(TimeUnit.MILLISECOND)
        current = (now - self._last_loop_mark) & _MASK
        self._last_loop_mark = now
        self.max_loop_time = max(self.max_loop_time, current)
        return current

    def now(self, unit: TimeUnit) -> int:
        """Return the current value of the counter for ``unit``."""
        return self._counts[unit]

    def _advance(self, unit: TimeUnit) -> None:
        self._counts[unit] = (self._counts[unit] + 1) & _MASK


class Deadline:
    """A timer mark on one counter of a :class:`Clock`.

    The mark starts at zero, as an uninitialised timer would.
    """

    def __init__(self, clock: Clock, unit: TimeUnit) -> None:
        self.clock = clock
        self.unit = unit
        self.mark = 0

    def restart(self) -> None:
        """Set the mark to the current counter value."""
        self.mark = self.clock.now(self.unit)

    def elapsed(self) -> int:
        """Counter ticks since the mark, modulo 2**16."""
        return (self.clock.now(self.unit) - self.mark) & _MASK

    def check(self, timeout: int) -> bool:
        """Report whether ``timeout`` ticks have passed since the mark.

        A timeout of zero restarts the timer and reports True. When the
        timeout has passed the mark moves to the current counter value.
        """
        if not 0 <= timeout <= _MASK:
            raise ValueError(f"timeout must be within 0..{_MASK}, got {timeout}")
        if timeout == 0:
            self.restart()
            return True
        elapsed = self.elapsed()
        if elapsed >= timeout:
            self.mark = (self.mark + elapsed) & _MASK
            return True
        return False