from __future__ import annotations

from typing import Any, Callable, Iterable

import pytest

from subpace.contracts import Alternative, Result, WordTiming


class FakeHandle:
    def __init__(self, when: float, seq: int, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Manual clock with the slice of the asyncio loop API the pacer uses."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self._handles: list[FakeHandle] = []
        self._seq = 0

    def time(self) -> float:
        return self.now

    def call_at(self, when: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        self._seq += 1
        handle = FakeHandle(when, self._seq, callback, args)
        self._handles.append(handle)
        return handle

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        return self.call_at(self.now, callback, *args)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        return self.call_at(self.now + delay, callback, *args)

    def pending(self) -> list[FakeHandle]:
        return sorted((h for h in self._handles if not h.cancelled), key=lambda h: (h.when, h.seq))

    def _pop_next(self, until: float) -> FakeHandle | None:
        for h in self.pending():
            if h.when <= until:
                self._handles.remove(h)
                return h
            return None
        return None

    def run_once(self) -> int:
        """Run the handles that are ready right now, like one loop iteration."""
        ready = [h for h in self.pending() if h.when <= self.now]
        ran = 0
        for h in ready:
            if h.cancelled:
                continue
            self._handles.remove(h)
            h.callback(*h.args)
            ran += 1
        return ran

    def advance(self, to: float, max_steps: int = 10_000) -> None:
        """Move the clock to `to`, firing every timer due on the way in order."""
        for _ in range(max_steps):
            h = self._pop_next(to)
            if h is None:
                break
            self.now = max(self.now, h.when)
            h.callback(*h.args)
        else:
            raise AssertionError("fake loop did not settle")
        self.now = max(self.now, to)


@pytest.fixture
def loop() -> FakeLoop:
    return FakeLoop()


def make_result(
    index: int,
    words: Iterable[tuple[str, float, float]],
    *,
    final: bool = False,
    extra_alternatives: int = 0,
) -> Result:
    timings = tuple(WordTiming(w, s, e) for w, s, e in words)
    alt = Alternative(transcript=" ".join(t.word for t in timings), timestamps=timings)
    extras = tuple(Alternative(transcript=f"alt {i}") for i in range(extra_alternatives))
    return Result(index=index, final=final, alternatives=(alt,) + extras)
