from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

from subpace.asr.base import ResultProducer
from subpace.contracts import EmitAt, Result
from subpace.errors import TimingError
from subpace.timing.scheduler import TimingScheduler
from subpace.timing.sink import SinkAdapter, TranscriptBus
from subpace.timing.state import SchedulerState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimingOptions:
    emit_at: EmitAt = EmitAt.START
    delay: float = 0.0  # seconds, may be negative
    object_mode: bool = False
    max_drain_per_turn: int = 32


class TimingStream:
    """
    Paces a recognizer so words show up no earlier than they were spoken.

    The producer is wired in at construction; start() lets it run. Output
    is available three ways: the on_* callbacks, `async for chunk in stream`
    (final text, or Result objects in object mode) and wait_closed().
    The output side stays open after the producer ends until every buffered
    word has been released.
    """
    def __init__(
        self,
        producer: ResultProducer,
        options: Optional[TimingOptions] = None,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_result: Optional[Callable[[Result], None]] = None,
        on_data: Optional[Callable[[Any], None]] = None,
        on_end: Optional[Callable[[], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self.options = options or TimingOptions()
        self.loop = loop or asyncio.get_running_loop()
        self.producer = producer
        self.error: Optional[BaseException] = None

        self._on_result = on_result
        self._on_data = on_data
        self._on_end = on_end
        self._on_close = on_close
        self._bus = TranscriptBus()
        self._closed = asyncio.Event()
        self._started = False

        sink = SinkAdapter(
            on_result=self._handle_emitted,
            on_data=self._handle_data,
            on_end=self._handle_end,
            on_close=self._handle_close,
            object_mode=self.options.object_mode,
        )
        self.scheduler = TimingScheduler(
            self.loop,
            sink,
            emit_at=self.options.emit_at,
            delay=self.options.delay,
            max_drain_per_turn=self.options.max_drain_per_turn,
            on_error=self._fail,
        )

        producer.on_result(self._handle_result)
        producer.on_end(self._handle_source_end)
        on_error = getattr(producer, "on_error", None)
        if callable(on_error):
            on_error(self._fail)

    @property
    def state(self) -> SchedulerState:
        return self.scheduler.state

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def start(self) -> "TimingStream":
        if self._started:
            return self
        self._started = True
        self.producer.start(self.loop)
        return self

    def stop(self) -> None:
        """Ask the producer to stop; whatever is buffered still drains."""
        stop = getattr(self.producer, "stop", None)
        if callable(stop):
            stop()

    async def wait_closed(self) -> None:
        await self._closed.wait()
        if self.error is not None:
            raise self.error

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._bus.__aiter__()

    # -- producer side --

    def _handle_result(self, result: Result) -> None:
        if self.error is not None:
            return
        if self.closed:
            logger.warning("late_result_ignored", extra={"index": result.index})
            return
        try:
            self.scheduler.ingest(result)
        except TimingError as exc:
            self._fail(exc)

    def _handle_source_end(self) -> None:
        if self.error is not None:
            return
        try:
            self.scheduler.mark_source_ended()
        except TimingError as exc:
            self._fail(exc)

    def _fail(self, exc: BaseException) -> None:
        if self.error is not None:
            return
        self.error = exc
        logger.error("stream_failed", exc_info=exc)
        self.scheduler.cancel()
        self._bus.fail(exc)
        self._closed.set()
        self.stop()

    # -- sink side --

    def _handle_emitted(self, result: Result) -> None:
        if self._on_result is not None:
            self._on_result(result)

    def _handle_data(self, chunk: Any) -> None:
        self._bus.push(chunk)
        if self._on_data is not None:
            self._on_data(chunk)

    def _handle_close(self) -> None:
        if self._on_close is not None:
            self._on_close()

    def _handle_end(self) -> None:
        self._bus.close()
        self._closed.set()
        if self._on_end is not None:
            self._on_end()
