from __future__ import annotations


class TimingError(Exception):
    pass


class MissingTimestampsError(TimingError, ValueError):
    """Raised when a result without word timestamps is ingested."""


class SchedulerInvariantError(TimingError, RuntimeError):
    """A buffered result had no word left to wait for."""


class StreamClosedError(TimingError, RuntimeError):
    pass
