from __future__ import annotations

from typing import Callable


class CutoffClock:
    """
    Maps loop time onto the session timeline.

    cutoff() = (now - session_start) - delay
    A positive delay holds words back, a negative one pulls them earlier.
    """
    def __init__(self, time_fn: Callable[[], float], delay: float = 0.0) -> None:
        self._time_fn = time_fn
        self.delay = float(delay)
        self.session_start = float(time_fn())

    def elapsed(self) -> float:
        return self._time_fn() - self.session_start

    def cutoff(self) -> float:
        return self.elapsed() - self.delay

    def wake_time(self, due: float) -> float:
        """Absolute loop time at which cutoff() reaches `due`."""
        return self.session_start + due + self.delay
