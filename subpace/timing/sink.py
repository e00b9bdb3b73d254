from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Callable, Optional

from subpace.contracts import Result

ResultCallback = Callable[[Result], None]
DataCallback = Callable[[Any], None]


class SinkAdapter:
    """
    Egress side of the pacer.
      on_result - every emitted result, including cropped partials
      on_data   - final, fully due results only (text, or the Result in object mode)
      on_close / on_end - once, after the buffer drains and the source is done
    """
    def __init__(
        self,
        *,
        on_result: Optional[ResultCallback] = None,
        on_data: Optional[DataCallback] = None,
        on_end: Optional[Callable[[], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
        object_mode: bool = False,
    ) -> None:
        self.on_result = on_result
        self.on_data = on_data
        self.on_end = on_end
        self.on_close = on_close
        self.object_mode = object_mode
        self.finished = False

    def emit_result(self, result: Result) -> None:
        if self.on_result is not None:
            self.on_result(result)

    def forward_final(self, result: Result) -> None:
        if self.on_data is None:
            return
        self.on_data(result if self.object_mode else result.transcript)

    def finish(self) -> None:
        if self.finished:
            return
        self.finished = True
        if self.on_close is not None:
            self.on_close()
        if self.on_end is not None:
            self.on_end()


_END = object()


class TranscriptBus:
    """
    Hands paced output from loop callbacks to an `async for` consumer.
    Nothing is dropped: the pacer only delays.
    """
    def __init__(self) -> None:
        self.q: "asyncio.Queue[Any]" = asyncio.Queue()
        self._error: Optional[BaseException] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, chunk: Any) -> None:
        if self._closed:
            return
        self.q.put_nowait(chunk)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.q.put_nowait(_END)

    def fail(self, exc: BaseException) -> None:
        self._error = exc
        self.close()

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._iter()

    async def _iter(self) -> AsyncIterator[Any]:
        while True:
            item = await self.q.get()
            if item is _END:
                if self._error is not None:
                    raise self._error
                return
            yield item
