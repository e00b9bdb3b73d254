from __future__ import annotations

import logging
from collections import deque
from dataclasses import replace
from typing import Deque, Optional

from subpace.contracts import Alternative, EmitAt, Result, due_instant
from subpace.errors import MissingTimestampsError

logger = logging.getLogger(__name__)


class ResultBuffer:
    """
    Holds results that have not been fully emitted yet.

    Two queues in arrival order:
      final   - results the recognizer will not revise
      interim - provisional results; dropped once a result with an equal
                or greater index arrives
    Every queued result carries exactly one alternative with at least one timestamp.
    """
    def __init__(self, emit_at: EmitAt = EmitAt.START):
        self.emit_at = EmitAt(emit_at)
        self.final: Deque[Result] = deque()
        self.interim: Deque[Result] = deque()

    def __len__(self) -> int:
        return len(self.final) + len(self.interim)

    @property
    def is_empty(self) -> bool:
        return not self.final and not self.interim

    def ingest(self, result: Result) -> int:
        """Queue a result and return how many interim results it superseded."""
        if not result.alternatives or not result.alternatives[0].timestamps:
            raise MissingTimestampsError(
                f"result index={result.index} has no word timestamps; pacing requires them"
            )

        # only the first alternative carries timestamps
        if len(result.alternatives) > 1:
            result = replace(result, alternatives=result.alternatives[:1])

        dropped = 0
        while self.interim and self.interim[0].index <= result.index:
            self.interim.popleft()
            dropped += 1
        if dropped:
            logger.debug(
                "interim_superseded",
                extra={"index": result.index, "dropped": dropped},
            )

        if result.final:
            self.final.append(result)
        else:
            self.interim.append(result)
        return dropped

    def due(self, result: Result, position: int) -> float:
        return due_instant(result.alternatives[0].timestamps[position], self.emit_at)

    def is_within_range(self, result: Result, cutoff: float) -> bool:
        return self.due(result, 0) <= cutoff

    def is_fully_within_range(self, result: Result, cutoff: float) -> bool:
        return self.due(result, -1) <= cutoff

    def crop(self, result: Result, cutoff: float) -> Result:
        """
        Return a new, non-final result holding only the words due at `cutoff`.
        Timestamps are ordered, so this stops at the first word not yet due.
        """
        kept = []
        for ts in result.alternatives[0].timestamps:
            if due_instant(ts, self.emit_at) > cutoff:
                break
            kept.append(ts)
        alt = Alternative(
            transcript=" ".join(ts.word for ts in kept),
            timestamps=tuple(kept),
        )
        return Result(index=result.index, final=False, alternatives=(alt,))

    def take_due(self, queue: Deque[Result], cutoff: float) -> Optional[Result]:
        """
        None if nothing at the front of `queue` is due yet.
        The front result itself (popped) if every word is due.
        Otherwise a cropped copy; the original stays queued.
        """
        if not queue or not self.is_within_range(queue[0], cutoff):
            return None
        if self.is_fully_within_range(queue[0], cutoff):
            return queue.popleft()
        return self.crop(queue[0], cutoff)

    def front(self) -> Optional[Result]:
        # finals first: ingesting one already cleared the older interims
        if self.final:
            return self.final[0]
        if self.interim:
            return self.interim[0]
        return None
