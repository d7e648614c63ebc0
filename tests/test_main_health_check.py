"""Tests for the ``--health-check`` entry point mode."""

from __future__ import annotations

import json
import logging
import runpy
from pathlib import Path
from unittest.mock import patch

import pytest

MAIN = Path(__file__).parents[1] / "main.py"


@pytest.fixture(autouse=True)
def restore_root_logger():
    yield
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


def _run_health_check(monkeypatch, config_file: Path) -> int:
    monkeypatch.setenv("CHATRELAY_CONF_FILE", str(config_file))
    monkeypatch.setattr("sys.argv", ["main.py", "--health-check"])
    with patch("atexit.register"), pytest.raises(SystemExit) as exc_info:
        runpy.run_path(str(MAIN), run_name="__main__")
    return exc_info.value.code


def test_health_check_passes_with_valid_config(tmp_path, monkeypatch):
    path = tmp_path / "relay.conf"
    path.write_text(json.dumps({"channels": ["chan"]}))
    assert _run_health_check(monkeypatch, path) == 0


def test_health_check_passes_without_config_file(tmp_path, monkeypatch):
    assert _run_health_check(monkeypatch, tmp_path / "missing.conf") == 0


def test_health_check_fails_on_invalid_config(tmp_path, monkeypatch):
    path = tmp_path / "relay.conf"
    path.write_text(json.dumps({"message_cap": 1}))
    assert _run_health_check(monkeypatch, path) == 1
