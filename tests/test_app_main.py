from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import pytest

from conftest import make_result
from subpace.app import config as app_config
from subpace.app import main as app_main
from subpace.app.main import ConsoleWriter


@pytest.fixture(autouse=True)
def _isolated_config_dir(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path / "cfg"))
    yield
    logger = logging.getLogger("subpace")
    for h in logger.handlers:
        h.close()
    logger.handlers.clear()


def _write_results(path: Path, rows: list[dict]) -> str:
    path.write_text("\n".join(json.dumps(r) for r in rows), encoding="utf-8")
    return str(path)


def test_console_writer_overwrites_live_line() -> None:
    out = io.StringIO()
    writer = ConsoleWriter(out, show_results=True)
    writer.on_result(make_result(0, [("hi", 0.0, 0.1)]))
    writer.on_result(make_result(0, [("hi", 0.0, 0.1), ("there", 0.1, 0.2)], final=True))
    writer.write_final("hi there")
    assert out.getvalue() == "hi\r  \rhi there\n"


def test_console_writer_hides_partials_by_default() -> None:
    out = io.StringIO()
    writer = ConsoleWriter(out)
    writer.on_result(make_result(0, [("hi", 0.0, 0.1)]))
    writer.write_final(make_result(0, [("hi", 0.0, 0.1)], final=True))
    assert json.loads(out.getvalue())["alternatives"][0]["transcript"] == "hi"


def test_main_replays_results_in_order(tmp_path: Path, capsys) -> None:
    path = _write_results(
        tmp_path / "r.jsonl",
        [
            {"index": 0, "final": False, "alternatives": [{"transcript": "one", "timestamps": [["one", 0.0, 0.01]]}]},
            {"index": 0, "final": True, "alternatives": [{"transcript": "one two", "timestamps": [["one", 0.0, 0.01], ["two", 0.01, 0.02]]}]},
            {"index": 1, "final": True, "alternatives": [{"transcript": "three", "timestamps": [["three", 0.03, 0.04]]}]},
        ],
    )
    code = app_main.main([path, "--emit-at", "end"])
    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["one two", "three"]


def test_main_reports_missing_timestamps(tmp_path: Path, capsys) -> None:
    path = _write_results(
        tmp_path / "r.jsonl",
        [{"index": 0, "final": True, "alternatives": [{"transcript": "no timing"}]}],
    )
    code = app_main.main([path])
    assert code == 1
    err = capsys.readouterr().err
    assert "MissingTimestampsError" in err
    assert "word timestamps" in err


def test_main_reports_missing_input(tmp_path: Path, capsys) -> None:
    code = app_main.main([str(tmp_path / "absent.jsonl")])
    assert code == 1
    assert "Input file not found" in capsys.readouterr().err
