from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence


class EmitAt(str, Enum):
    """Which word boundary decides when a word is due."""

    START = "start"
    END = "end"


@dataclass(frozen=True)
class WordTiming:
    word: str
    start: float  # seconds since session start
    end: float

    @classmethod
    def from_wire(cls, raw: Sequence[Any]) -> "WordTiming":
        # recognizer wire form: ["word", start, end]
        if len(raw) != 3:
            raise ValueError(f"timestamp must be [word, start, end], got {raw!r}")
        word, start, end = raw
        return cls(word=str(word), start=float(start), end=float(end))

    def to_wire(self) -> list[Any]:
        return [self.word, self.start, self.end]


def due_instant(timing: WordTiming, policy: EmitAt) -> float:
    if policy is EmitAt.END:
        return timing.end
    return timing.start


@dataclass(frozen=True)
class Alternative:
    transcript: str
    timestamps: tuple[WordTiming, ...] = ()

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Alternative":
        raw_timestamps = payload.get("timestamps") or ()
        return cls(
            transcript=str(payload.get("transcript", "") or ""),
            timestamps=tuple(WordTiming.from_wire(ts) for ts in raw_timestamps),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "transcript": self.transcript,
            "timestamps": [ts.to_wire() for ts in self.timestamps],
        }


@dataclass(frozen=True)
class Result:
    """
    One recognizer output. `index` identifies the utterance span it covers;
    interim results with an index <= a later result's index are superseded.
    """
    index: int
    final: bool
    alternatives: tuple[Alternative, ...] = field(default_factory=tuple)

    @property
    def transcript(self) -> str:
        if not self.alternatives:
            return ""
        return self.alternatives[0].transcript

    @property
    def timestamps(self) -> tuple[WordTiming, ...]:
        if not self.alternatives:
            return ()
        return self.alternatives[0].timestamps

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Result":
        if not isinstance(payload, Mapping):
            raise ValueError(f"result must be a JSON object, got {type(payload).__name__}")
        index = payload.get("index", payload.get("result_index", 0))
        alternatives = tuple(Alternative.from_dict(alt) for alt in payload.get("alternatives") or ())
        return cls(index=int(index), final=bool(payload.get("final", False)), alternatives=alternatives)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "final": self.final,
            "alternatives": [alt.to_dict() for alt in self.alternatives],
        }
