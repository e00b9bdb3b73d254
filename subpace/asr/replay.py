from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from subpace.asr.base import CallbackProducer
from subpace.contracts import Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayLine:
    result: Result
    emission_time: Optional[float]  # seconds after start, None = right away


def load_replay_lines(path: str | Path) -> List[ReplayLine]:
    """
    One recognizer result per line, e.g.
      {"index": 0, "final": false, "alternatives": [{"transcript": "hi",
       "timestamps": [["hi", 0.0, 0.3]]}], "emission_time": 0.4}
    """
    out: List[ReplayLine] = []
    with Path(path).open("r", encoding="utf-8-sig") as f:
        for lineno, raw in enumerate(f, start=1):
            raw = raw.strip()
            if not raw:
                continue
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{lineno}: invalid JSON ({exc.msg})") from exc
            if not isinstance(payload, dict):
                raise ValueError(f"{path}:{lineno}: expected a JSON object")
            et = payload.get("emission_time")
            out.append(
                ReplayLine(
                    result=Result.from_dict(payload),
                    emission_time=float(et) if et is not None else None,
                )
            )
    return out


class JsonlReplayProducer(CallbackProducer):
    """
    Replays recorded recognizer output. Lines are pushed one after another,
    each no earlier than its emission_time (scaled by 1/speed).
    """
    def __init__(self, path: str | Path, *, speed: float = 1.0) -> None:
        super().__init__()
        if speed <= 0:
            raise ValueError("speed must be > 0")
        self.path = Path(path)
        self.speed = float(speed)
        self._lines: List[ReplayLine] = []
        self._pos = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Any = None
        self._t0 = 0.0

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        self._lines = load_replay_lines(self.path)
        self._loop = loop
        self._t0 = loop.time()
        logger.info("replay_start", extra={"path": str(self.path), "lines": len(self._lines)})
        self._schedule_next()

    def _schedule_next(self) -> None:
        assert self._loop is not None
        if self.ended:
            return
        if self._pos >= len(self._lines):
            self._handle = None
            self.finish()
            return
        et = self._lines[self._pos].emission_time
        if et is None:
            self._handle = self._loop.call_soon(self._push_next)
        else:
            self._handle = self._loop.call_at(self._t0 + et / self.speed, self._push_next)

    def _push_next(self) -> None:
        line = self._lines[self._pos]
        self._pos += 1
        self.emit(line.result)
        self._schedule_next()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.finish()
