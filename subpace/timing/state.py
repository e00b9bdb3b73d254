from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SchedulerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    DRAINING = "draining"
    CLOSED = "closed"


@dataclass
class SchedulerStateTracker:
    state: SchedulerState = SchedulerState.IDLE
    source_ended: bool = False

    @property
    def closed(self) -> bool:
        return self.state == SchedulerState.CLOSED

    def set_idle(self) -> None:
        if not self.closed:
            self.state = SchedulerState.IDLE

    def set_armed(self) -> None:
        if not self.closed:
            self.state = SchedulerState.ARMED

    def set_draining(self) -> None:
        if not self.closed:
            self.state = SchedulerState.DRAINING

    def set_source_ended(self) -> None:
        self.source_ended = True

    def set_closed(self) -> None:
        self.state = SchedulerState.CLOSED
