from __future__ import annotations

from typing import Any

from subpace.asr.base import CallbackProducer
from subpace.asr.replay import JsonlReplayProducer


def build_producer(args: Any) -> CallbackProducer:
    source = str(args.source).lower()
    if source == "replay":
        return JsonlReplayProducer(str(args.path), speed=float(args.speed))
    if source == "whisper":
        # replay must work without faster-whisper installed
        from subpace.asr.faster_whisper_file import FasterWhisperResultProducer

        language = str(args.language or "auto").lower()
        return FasterWhisperResultProducer(
            str(args.path),
            model_size=str(args.model),
            device=str(args.device),
            compute_type=str(args.compute_type),
            language=None if language == "auto" else language,
            beam_size=max(1, int(args.beam_size)),
        )
    raise ValueError(f"unknown source: {args.source}")
