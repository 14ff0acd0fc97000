"""Tests for infrastructure components (logging, command line, entry point).

Tests coverage for:
- src/filetail/logging.py
- src/filetail/cli.py
- src/filetail/__main__.py
"""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from filetail.cli import build_lines_config, build_watch_config, create_parser, run_cli
from filetail.config.schema import LoggingConfig, Settings
from filetail.logging import TRACE, VERBOSE, get_logger, resolve_level, setup_logging
from filetail.tailing.pipeline import BackpressureStrategy
from filetail.watching.events import ChangeKind


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_log_file(tmp_path):
    """Create a temporary log file path."""
    return str(tmp_path / "test.log")


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Run from an empty directory with no user or environment settings."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("FILETAIL_LOG", raising=False)
    monkeypatch.delenv("FILETAIL_POLL_INTERVAL", raising=False)
    return tmp_path


# =============================================================================
# Logging Tests
# =============================================================================


class TestLogging:
    """Tests for logging configuration."""

    def test_setup_logging_creates_file_handler(self, fresh_logging, temp_log_file):
        """Test setup_logging with file configuration."""
        setup_logging(LoggingConfig(level="INFO", file=temp_log_file))

        assert Path(temp_log_file).exists()
        assert get_logger().level == logging.INFO

    def test_setup_logging_env_file(self, fresh_logging, temp_log_file, monkeypatch):
        """Test FILETAIL_LOG is used when no file is configured."""
        monkeypatch.setenv("FILETAIL_LOG", temp_log_file)
        setup_logging(LoggingConfig(level="DEBUG"))

        get_logger("env").debug("from env")
        assert "from env" in Path(temp_log_file).read_text()

    def test_setup_logging_bad_file_does_not_raise(self, fresh_logging):
        """Test an unwritable log file is tolerated."""
        setup_logging(LoggingConfig(level="DEBUG", file="/nonexistent/dir/log.txt"))
        assert get_logger().level == logging.DEBUG

    def test_no_handlers_without_tty(self, fresh_logging, monkeypatch):
        """Test nothing is written to a non-interactive stderr."""
        monkeypatch.delenv("FILETAIL_LOG", raising=False)
        before = list(get_logger().handlers)
        with patch("sys.stderr.isatty", return_value=False):
            setup_logging()
        assert get_logger().handlers == before

    def test_stderr_handler_on_tty(self, fresh_logging, monkeypatch):
        """Test a stderr handler is added for an interactive terminal."""
        monkeypatch.delenv("FILETAIL_LOG", raising=False)
        before = len(get_logger().handlers)
        with patch("sys.stderr.isatty", return_value=True):
            setup_logging()
        assert len(get_logger().handlers) == before + 1

    def test_setup_logging_idempotent(self, fresh_logging, temp_log_file):
        """Test that calling setup_logging twice is no-op."""
        setup_logging(LoggingConfig(level="INFO", file=temp_log_file))
        assert fresh_logging._initialized is True
        handlers = list(get_logger().handlers)

        setup_logging(LoggingConfig(level="ERROR", file=temp_log_file))
        assert get_logger().handlers == handlers
        assert get_logger().level == logging.INFO

    @pytest.mark.parametrize(
        ("config", "expected"),
        [
            (None, logging.INFO),
            (LoggingConfig(level="debug"), logging.DEBUG),
            (LoggingConfig(level="WARN"), logging.WARNING),
            (LoggingConfig(level="trace"), TRACE),
            (LoggingConfig(level="bogus"), logging.INFO),
            (LoggingConfig(verbose=0), logging.ERROR),
            (LoggingConfig(verbose=3), VERBOSE),
            (LoggingConfig(verbose=9), TRACE),
            (LoggingConfig(level="ERROR", verbose=2), logging.INFO),
        ],
    )
    def test_level_resolution(self, config, expected):
        """Test level strings and verbosity map to levels, verbose winning."""
        assert resolve_level(config) == expected

    def test_get_logger_child(self):
        """Test getting a child logger."""
        assert get_logger("cursor").name == "filetail.cursor"

    def test_get_logger_root(self):
        """Test getting the root filetail logger."""
        assert get_logger().name == "filetail"

    def test_logging_format(self, fresh_logging, temp_log_file):
        """Test log message format."""
        setup_logging(LoggingConfig(level="INFO", file=temp_log_file))

        get_logger().warning("Test message")
        log_content = Path(temp_log_file).read_text()

        assert "warning: Test message" in log_content


# =============================================================================
# Command Line Tests
# =============================================================================


class TestParser:
    """Tests for argument parsing and config building."""

    def test_tail_defaults(self):
        parsed = create_parser().parse_args(["tail", "app.log"])
        assert parsed.command == "tail"
        assert parsed.path == Path("app.log")
        assert parsed.bytes is False
        assert parsed.every is None

    def test_start_options_exclusive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["tail", "a.log", "--from-start", "--position", "3"])

    def test_lines_config_from_options(self, tmp_path):
        parsed = create_parser().parse_args(
            [
                "tail", str(tmp_path / "a.log"),
                "--position", "7",
                "--chunk-size", "16",
                "--backpressure", "drop",
                "--poll-interval", "0.2",
                "--encoding", "latin-1",
            ]
        )
        config = build_lines_config(Settings(), parsed)
        assert config.start_position == 7
        assert config.chunk_size == 16
        assert config.backpressure is BackpressureStrategy.DROP
        assert config.poll_interval == 0.2
        assert config.effective_sample_window == 0.4
        assert config.encoding == "latin-1"

    def test_default_start_is_end_of_file(self, tmp_path):
        target = tmp_path / "a.log"
        target.write_bytes(b"12345")
        parsed = create_parser().parse_args(["tail", str(target)])
        assert build_lines_config(Settings(), parsed).start_position == 5

    def test_from_start(self, tmp_path):
        target = tmp_path / "a.log"
        target.write_bytes(b"12345")
        parsed = create_parser().parse_args(["tail", str(target), "--from-start"])
        assert build_lines_config(Settings(), parsed).start_position == 0

    def test_watch_config_kinds(self):
        parsed = create_parser().parse_args(
            ["events", ".", "--kinds", "create", "delete", "--blocking"]
        )
        config = build_watch_config(Settings(), parsed)
        assert config.kinds == {ChangeKind.CREATE, ChangeKind.DELETE}
        assert config.blocking is True


class TestRunCli:
    """Tests for running commands end to end."""

    @pytest.fixture(autouse=True)
    def _logging(self, fresh_logging, isolated_settings):
        yield

    def test_no_command(self, capsys):
        assert run_cli([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path):
        assert run_cli(["--config", str(tmp_path / "absent.yaml"), "tail", "a.log"]) == 2

    def test_invalid_option_value(self, tmp_path):
        assert run_cli(["tail", str(tmp_path / "a.log"), "--chunk-size", "0"]) == 2

    def test_tail_on_timer(self, tmp_path, capsys):
        target = tmp_path / "app.log"
        target.write_text("first\nsecond\n")

        code = run_cli(
            ["-q", "tail", str(target), "--from-start", "--every", "0.05", "--timeout", "0.5"]
        )
        assert code == 0
        assert capsys.readouterr().out.splitlines() == ["first", "second"]

    def test_tail_bytes(self, tmp_path, capsysbinary):
        target = tmp_path / "app.log"
        target.write_bytes(b"raw\x00data")

        code = run_cli(
            ["-q", "tail", str(target), "--bytes", "--position", "4", "--every", "0.05",
             "--timeout", "0.3"]
        )
        assert code == 0
        assert capsysbinary.readouterr().out == b"data"

    def test_events_timeout(self, tmp_path):
        assert run_cli(["-q", "events", str(tmp_path), "--timeout", "0.2"]) == 0

    def test_watch_unavailable(self, tmp_path):
        code = run_cli(["-q", "events", str(tmp_path / "no" / "dir" / "a.log"), "--timeout", "1"])
        assert code == 1


class TestMainEntryPoint:
    """Tests for python -m filetail."""

    def test_main_passes_arguments(self, monkeypatch):
        from filetail.__main__ import main

        monkeypatch.setattr("sys.argv", ["filetail", "events", "."])
        with patch("filetail.cli.run_cli", return_value=0) as mock_run:
            assert main() == 0
        mock_run.assert_called_once_with(["events", "."])
