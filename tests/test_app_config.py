from __future__ import annotations

import json
from pathlib import Path

import pytest

from subpace.app import config as app_config
from subpace.contracts import EmitAt


@pytest.fixture(autouse=True)
def _isolated_config_dir(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path / "cfg"))


def test_load_default_config_contains_expected_keys() -> None:
    cfg = app_config.load_default_config()
    assert cfg["emit_at"] == "start"
    assert cfg["delay"] == 0.0
    assert cfg["object_mode"] is False
    assert set(cfg) == set(app_config.CONFIG_KEYS)


def test_resolve_defaults_uses_explicit_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "explicit.json"
    cfg_path.write_text(json.dumps({"emit_at": "end", "delay": -0.5}), encoding="utf-8")
    defaults, used = app_config.resolve_defaults(str(cfg_path))
    assert used == cfg_path
    assert defaults["emit_at"] == "end"
    assert defaults["delay"] == -0.5
    assert defaults["model"] == "base"


def test_missing_explicit_config_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        app_config.load_user_config(str(tmp_path / "nope.json"))


def test_non_object_config_is_rejected(tmp_path: Path) -> None:
    cfg_path = tmp_path / "list.json"
    cfg_path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        app_config.load_user_config(str(cfg_path))


def test_ensure_user_config_exists_creates_file(tmp_path: Path) -> None:
    created = app_config.ensure_user_config_exists({"emit_at": "end", "delay": 0.2})
    assert created == tmp_path / "cfg" / "config.json"
    loaded = json.loads(created.read_text(encoding="utf-8"))
    assert loaded == {"emit_at": "end", "delay": 0.2}


def test_load_user_config_ignores_unknown_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"delay": 1.5, "unexpected": 1}),
        encoding="utf-8-sig",
    )
    loaded, used = app_config.load_user_config(str(cfg_path))
    assert used == cfg_path
    assert loaded["delay"] == 1.5
    assert "unexpected" not in loaded


def test_resolve_args_cli_overrides_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(json.dumps({"emit_at": "end", "delay": 0.5, "speed": 2.0}), encoding="utf-8")
    args = app_config.resolve_args(
        ["--config", str(cfg_path), "--delay", "-0.25", "--object-mode", "results.jsonl"]
    )
    assert args.path == "results.jsonl"
    assert args.emit_at == "end"
    assert args.delay == -0.25
    assert args.speed == 2.0
    assert args.object_mode is True
    assert args.source == "replay"


def test_resolve_args_rejects_bad_drain_cap() -> None:
    with pytest.raises(SystemExit):
        app_config.resolve_args(["--max-drain-per-turn", "0", "results.jsonl"])


def test_timing_options_from_args() -> None:
    args = app_config.resolve_args(["--emit-at", "end", "--delay", "0.75", "results.jsonl"])
    opts = app_config.timing_options_from_args(args)
    assert opts.emit_at is EmitAt.END
    assert opts.delay == 0.75
    assert opts.object_mode is False
    assert opts.max_drain_per_turn == 32
