from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, List, Optional

from faster_whisper import WhisperModel

from subpace.asr.base import CallbackProducer
from subpace.contracts import Alternative, Result, WordTiming

logger = logging.getLogger(__name__)


def segment_to_result(index: int, segment: Any) -> Optional[Result]:
    """Turn one faster-whisper segment (word_timestamps=True) into a final result."""
    words: List[WordTiming] = []
    for w in getattr(segment, "words", None) or ():
        text = (w.word or "").strip()
        if not text:
            continue
        words.append(WordTiming(word=text, start=float(w.start), end=float(w.end)))
    if not words:
        return None
    transcript = (segment.text or "").strip() or " ".join(w.word for w in words)
    return Result(
        index=index,
        final=True,
        alternatives=(Alternative(transcript=transcript, timestamps=tuple(words)),),
    )


class FasterWhisperResultProducer(CallbackProducer):
    """
    Transcribes an audio file in a worker thread and pushes one final result
    per segment back onto the event loop. Playback of the file is assumed to
    start together with the pacer.
    """
    def __init__(
        self,
        path: str,
        *,
        model_size: str = "base",
        device: str = "cpu",
        compute_type: str = "int8",  # good default for CPU
        language: Optional[str] = "en",
        beam_size: int = 1,
    ) -> None:
        super().__init__()
        self.path = path
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.language = language
        self.beam_size = beam_size
        self._model: Optional[WhisperModel] = None
        self._stop = threading.Event()
        self._future: Optional[asyncio.Future] = None

    def _get_model(self) -> WhisperModel:
        if self._model is None:
            self._model = WhisperModel(
                self.model_size,
                device=self.device,
                compute_type=self.compute_type,
            )
        return self._model

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        logger.info("whisper_start", extra={"path": self.path, "model": self.model_size})
        self._future = loop.run_in_executor(None, self._run, loop)
        self._future.add_done_callback(self._on_done)

    def _run(self, loop: asyncio.AbstractEventLoop) -> int:
        model = self._get_model()
        segments, _info = model.transcribe(
            self.path,
            language=self.language,
            beam_size=self.beam_size,
            word_timestamps=True,
            vad_filter=False,
        )
        count = 0
        for i, seg in enumerate(segments):
            if self._stop.is_set():
                break
            result = segment_to_result(i, seg)
            if result is None:
                continue
            loop.call_soon_threadsafe(self._deliver, result)
            count += 1
        return count

    def _deliver(self, result: Result) -> None:
        if not self.ended:
            self.emit(result)

    def _on_done(self, fut: "asyncio.Future[int]") -> None:
        if fut.cancelled():
            self.finish()
            return
        exc = fut.exception()
        if exc is not None:
            logger.error("whisper_failed", exc_info=exc)
            self.fail(exc)
            return
        logger.info("whisper_done", extra={"results": fut.result()})
        self.finish()

    def stop(self) -> None:
        self._stop.set()
        self.finish()
