from __future__ import annotations

import asyncio
from typing import Callable, List, Protocol, runtime_checkable

from subpace.contracts import Result

ResultHandler = Callable[[Result], None]
EndHandler = Callable[[], None]
ErrorHandler = Callable[[BaseException], None]


@runtime_checkable
class ResultProducer(Protocol):
    """Upstream recognizer: pushes results in arrival order, then signals the end."""

    def on_result(self, callback: ResultHandler) -> None: ...

    def on_end(self, callback: EndHandler) -> None: ...

    def start(self, loop: asyncio.AbstractEventLoop) -> None: ...


class CallbackProducer:
    """
    Producer driven by hand: call emit() per result and finish() once.
    Handy for embedding the pacer behind another recognizer client.
    """
    def __init__(self) -> None:
        self._result_handlers: List[ResultHandler] = []
        self._end_handlers: List[EndHandler] = []
        self._error_handlers: List[ErrorHandler] = []
        self.ended = False

    def on_result(self, callback: ResultHandler) -> None:
        self._result_handlers.append(callback)

    def on_end(self, callback: EndHandler) -> None:
        self._end_handlers.append(callback)

    def on_error(self, callback: ErrorHandler) -> None:
        self._error_handlers.append(callback)

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        del loop

    def emit(self, result: Result) -> None:
        if self.ended:
            raise RuntimeError("producer already finished")
        for handler in list(self._result_handlers):
            handler(result)

    def finish(self) -> None:
        if self.ended:
            return
        self.ended = True
        for handler in list(self._end_handlers):
            handler()

    def fail(self, exc: BaseException) -> None:
        if not self._error_handlers:
            raise exc
        for handler in list(self._error_handlers):
            handler(exc)

    def stop(self) -> None:
        self.finish()
