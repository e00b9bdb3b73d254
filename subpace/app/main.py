from __future__ import annotations

import asyncio
import json
import sys
import traceback
from typing import Any, TextIO

from subpace.app.config import resolve_args, timing_options_from_args
from subpace.app.diagnostics import hint_for_exception, summarize_exception
from subpace.app.logging_setup import setup_app_logger
from subpace.app.services import build_producer
from subpace.asr.base import CallbackProducer
from subpace.contracts import Result
from subpace.timing.stream import TimingOptions, TimingStream


class ConsoleWriter:
    """
    Final text goes out one line each. With show_results, interim and
    partial results are drawn over a single live line until the final lands.
    """
    def __init__(self, out: TextIO, *, show_results: bool = False) -> None:
        self.out = out
        self.show_results = show_results
        self._live_len = 0

    def _clear_live(self) -> None:
        if self._live_len:
            self.out.write("\r" + " " * self._live_len + "\r")
            self._live_len = 0

    def on_result(self, result: Result) -> None:
        if not self.show_results or result.final:
            return
        text = result.transcript
        self._clear_live()
        self.out.write(text)
        self.out.flush()
        self._live_len = len(text)

    def write_final(self, chunk: Any) -> None:
        self._clear_live()
        if isinstance(chunk, Result):
            self.out.write(json.dumps(chunk.to_dict(), ensure_ascii=False) + "\n")
        else:
            self.out.write(str(chunk) + "\n")
        self.out.flush()


async def run_stream(producer: CallbackProducer, options: TimingOptions, writer: ConsoleWriter) -> None:
    stream = TimingStream(producer, options, on_result=writer.on_result)
    stream.start()
    try:
        async for chunk in stream:
            writer.write_final(chunk)
    finally:
        stream.stop()
    await stream.wait_closed()


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info(
        "app_start",
        extra={"source": args.source, "path": args.path, "emit_at": args.emit_at, "delay": args.delay},
    )

    writer = ConsoleWriter(sys.stdout, show_results=bool(args.show_results))
    try:
        producer = build_producer(args)
        asyncio.run(run_stream(producer, timing_options_from_args(args), writer))
    except KeyboardInterrupt:
        logger.info("app_interrupted")
        return 130
    except Exception:
        summary = summarize_exception(traceback.format_exc())
        logger.exception("app_failed")
        print(f"error: {summary}", file=sys.stderr)
        print(f"hint: {hint_for_exception(summary)} (log: {log_path})", file=sys.stderr)
        return 1

    logger.info("app_done")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
