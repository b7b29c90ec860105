# tests/test_cli.py
import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from lograte.cli import app
from lograte.errors import WatchSourceError

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv("LOGRATE_CONFIG", raising=False)


def test_watch_runs_for_duration(tmp_path: Path):
    log_file = tmp_path / "errors.log"
    log_file.write_text("")

    result = runner.invoke(app, ["watch", str(log_file), "--duration", "0.2"])

    assert result.exit_code == 0
    assert "Watching" in result.stdout
    assert "Watch finished" in result.stdout


def test_watch_missing_file_exits_1(tmp_path: Path):
    result = runner.invoke(app, ["watch", str(tmp_path / "missing.log"), "--duration", "0.2"])

    assert result.exit_code == 1
    assert "Watch failed" in result.stdout


def test_watch_requires_path_or_config():
    result = runner.invoke(app, ["watch"])
    assert result.exit_code == 2


def test_watch_rejects_zero_threshold(tmp_path: Path):
    log_file = tmp_path / "errors.log"
    log_file.write_text("")

    result = runner.invoke(app, ["watch", str(log_file), "--threshold", "0"])
    assert result.exit_code == 2


def test_watch_rejects_bad_config(tmp_path: Path):
    config = tmp_path / "lograte.json"
    config.write_text(json.dumps({"threshold_per_minute": 5}))

    result = runner.invoke(app, ["watch", "--config", str(config)])
    assert result.exit_code == 2


def test_watch_uses_config_file_with_overrides(tmp_path: Path, monkeypatch):
    config = tmp_path / "lograte.json"
    config.write_text(json.dumps({
        "path": str(tmp_path / "app.log"),
        "threshold_per_minute": 5,
        "duration_seconds": 120,
    }))
    monkeypatch.setenv("LOGRATE_CONFIG", str(config))

    with patch("lograte.cli.RateWatcher") as mock_watcher:
        handle = mock_watcher.return_value.start.return_value
        handle.error = None
        handle.wait.return_value = False
        handle.flush.return_value = True

        result = runner.invoke(app, ["watch", "--threshold", "7", "--ntfy-topic", "ops"])

    assert result.exit_code == 0
    mock_watcher.return_value.start.assert_called_once_with(tmp_path / "app.log", 7)
    handle.wait.assert_called_once_with(120.0)
    mock_watcher.return_value.stop.assert_called_once_with(handle)

    notifier = mock_watcher.call_args[0][0]
    assert notifier.config.topic == "ops"


def test_watch_reports_failure_during_run(tmp_path: Path):
    with patch("lograte.cli.RateWatcher") as mock_watcher:
        handle = mock_watcher.return_value.start.return_value
        handle.error = None

        def fail_while_waiting(timeout):
            handle.error = WatchSourceError("Watched file removed")
            return True

        handle.wait.side_effect = fail_while_waiting
        handle.flush.return_value = True

        result = runner.invoke(app, ["watch", str(tmp_path / "app.log")])

    assert result.exit_code == 1
    assert "Watched file removed" in result.stdout


def test_watch_rejects_bad_retry_delay(tmp_path: Path):
    config = tmp_path / "lograte.json"
    config.write_text(json.dumps({
        "path": str(tmp_path / "app.log"),
        "notifier": {"type": "webhook", "url": "https://example.com/hook", "retry_delay_sec": None},
    }))

    result = runner.invoke(app, ["watch", "--config", str(config)])
    assert result.exit_code == 2
