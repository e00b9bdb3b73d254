from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from subpace.contracts import EmitAt
from subpace.timing.stream import TimingOptions

DEFAULTS: dict[str, Any] = {
    "source": "replay",
    "emit_at": "start",
    "delay": 0.0,
    "object_mode": False,
    "max_drain_per_turn": 32,
    "speed": 1.0,
    "model": "base",
    "device": "cpu",
    "compute_type": "int8",
    "language": "en",
    "beam_size": 1,
    "show_results": False,
    "debug": False,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("subpace", "subpace"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in CONFIG_KEYS:
        if key in payload:
            out[key] = payload[key]
    return out


def load_default_config() -> dict[str, Any]:
    return copy.deepcopy(DEFAULTS)


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    merged = dict(defaults)
    merged.update(_known_only(_load_json_dict(chosen)))
    return merged, chosen


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or load_default_config())
    return paths.config_path


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="subpace",
        description="Print recognizer output no earlier than the words were spoken.",
    )
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument(
        "--source",
        default=defaults["source"],
        choices=["replay", "whisper"],
        help="replay: recorded results (JSONL); whisper: transcribe an audio file",
    )
    p.add_argument("path", help="results .jsonl (replay) or audio file (whisper)")
    p.add_argument(
        "--emit-at",
        default=defaults["emit_at"],
        choices=[e.value for e in EmitAt],
        help="release a word when it starts or when it ends",
    )
    p.add_argument(
        "--delay",
        type=float,
        default=defaults["delay"],
        help="extra seconds before words are released (may be negative)",
    )
    p.add_argument(
        "--object-mode",
        action=argparse.BooleanOptionalAction,
        default=defaults["object_mode"],
        help="print final results as JSON objects instead of plain text",
    )
    p.add_argument(
        "--max-drain-per-turn",
        type=int,
        default=defaults["max_drain_per_turn"],
        help="max due final results released before yielding to the event loop",
    )
    p.add_argument("--speed", type=float, default=defaults["speed"], help="replay speed for emission_time")
    p.add_argument("--model", default=defaults["model"], help="faster-whisper model size")
    p.add_argument("--device", default=defaults["device"], help="faster-whisper device")
    p.add_argument("--compute-type", default=defaults["compute_type"], help="faster-whisper compute type")
    p.add_argument(
        "--language",
        default=defaults["language"],
        help="ASR language code, or 'auto' to detect",
    )
    p.add_argument("--beam-size", type=int, default=defaults["beam_size"], help="faster-whisper beam size")
    p.add_argument(
        "--show-results",
        action=argparse.BooleanOptionalAction,
        default=defaults["show_results"],
        help="also show interim/partial results on a live console line",
    )
    p.add_argument("--debug", action="store_true", help="log scheduler decisions")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    args = parser.parse_args(argv)
    if defaults.get("debug"):
        args.debug = True
    if args.max_drain_per_turn <= 0:
        parser.error("--max-drain-per-turn must be > 0")
    if args.speed <= 0:
        parser.error("--speed must be > 0")
    return args


def timing_options_from_args(args: Any) -> TimingOptions:
    return TimingOptions(
        emit_at=EmitAt(str(args.emit_at).lower()),
        delay=float(args.delay),
        object_mode=bool(args.object_mode),
        max_drain_per_turn=max(1, int(args.max_drain_per_turn)),
    )
