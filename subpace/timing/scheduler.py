from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from subpace.contracts import EmitAt, Result, due_instant
from subpace.errors import SchedulerInvariantError, StreamClosedError, TimingError
from subpace.timing.buffer import ResultBuffer
from subpace.timing.clock import CutoffClock
from subpace.timing.sink import SinkAdapter
from subpace.timing.state import SchedulerState, SchedulerStateTracker

logger = logging.getLogger(__name__)


class TimingScheduler:
    """
    Releases buffered results no earlier than their words were spoken.

    Runs entirely on one event loop. Two things trigger work: an ingested
    result and the single armed timer. Every tick() cancels that timer first,
    emits whatever is due, then arms a new timer for the next word (or closes
    once the source has ended and nothing is left).

    `loop` needs time(), call_at() and call_soon(), i.e. an asyncio loop.
    """
    def __init__(
        self,
        loop: Any,
        sink: SinkAdapter,
        *,
        emit_at: EmitAt = EmitAt.START,
        delay: float = 0.0,
        max_drain_per_turn: int = 32,
        on_error: Optional[Callable[[TimingError], None]] = None,
    ) -> None:
        if max_drain_per_turn <= 0:
            raise ValueError("max_drain_per_turn must be > 0")
        self.loop = loop
        self.sink = sink
        self.buffer = ResultBuffer(emit_at=emit_at)
        self.clock = CutoffClock(loop.time, delay=delay)
        self.max_drain_per_turn = int(max_drain_per_turn)
        self.on_error = on_error
        self.tracker = SchedulerStateTracker()
        self._timer: Any = None
        self._ticking = False
        self._retick = False

    @property
    def state(self) -> SchedulerState:
        return self.tracker.state

    @property
    def emit_at(self) -> EmitAt:
        return self.buffer.emit_at

    def ingest(self, result: Result) -> None:
        if self.tracker.closed:
            raise StreamClosedError(f"result index={result.index} arrived after the stream closed")
        dropped = self.buffer.ingest(result)
        logger.debug(
            "result_ingested",
            extra={"index": result.index, "final": result.final, "superseded": dropped},
        )
        self.tick()

    def mark_source_ended(self) -> None:
        if self.tracker.closed:
            return
        self.tracker.set_source_ended()
        logger.debug("source_ended", extra={"buffered": len(self.buffer)})
        if self._ticking:
            # the running tick reads source_ended when it reschedules
            return
        self.tick()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def tick(self) -> None:
        if self._ticking:
            # requested from inside a sink callback; the running tick defers it
            self._retick = True
            return
        self.cancel()
        if self.tracker.closed:
            return

        self._ticking = True
        self._retick = False
        try:
            self._tick_once()
        finally:
            self._ticking = False

    def _tick_once(self) -> None:
        drained = 0
        while True:
            cutoff = self.clock.cutoff()
            result = self.buffer.take_due(self.buffer.final, cutoff)
            if result is None:
                result = self.buffer.take_due(self.buffer.interim, cutoff)
            if result is None:
                break

            self.sink.emit_result(result)
            # cropped copies and interim results never count as final text
            if not result.final:
                break

            self.sink.forward_final(result)
            drained += 1
            self.tracker.set_draining()
            if drained >= self.max_drain_per_turn:
                # let the loop breathe, then keep draining
                self._defer()
                logger.debug("drain_deferred", extra={"drained": drained})
                return

        if self._retick:
            # a result was ingested mid-tick; look again on the next turn
            self._defer()
            logger.debug("tick_deferred", extra={"cutoff": cutoff})
            return

        self.schedule_next_tick(cutoff)

    def _defer(self) -> None:
        self.cancel()
        self._timer = self.loop.call_soon(self._fire)
        self.tracker.set_draining()

    def schedule_next_tick(self, cutoff: float) -> None:
        candidate = self.buffer.front()
        if candidate is not None:
            for ts in candidate.alternatives[0].timestamps:
                due = due_instant(ts, self.emit_at)
                if due > cutoff:
                    when = self.clock.wake_time(due)
                    self.cancel()
                    self._timer = self.loop.call_at(when, self._fire)
                    self.tracker.set_armed()
                    logger.debug("tick_armed", extra={"due": due, "cutoff": cutoff})
                    return
            # take_due() pops a result once its last word is due
            raise SchedulerInvariantError(
                f"result index={candidate.index} has no words after cutoff {cutoff:.3f}s"
            )

        if self.tracker.source_ended:
            self.tracker.set_closed()
            logger.info("stream_closed", extra={"elapsed": self.clock.elapsed()})
            self.sink.finish()
            return

        self.tracker.set_idle()

    def _fire(self) -> None:
        self._timer = None
        try:
            self.tick()
        except TimingError as exc:
            if self.on_error is None:
                raise
            self.on_error(exc)
