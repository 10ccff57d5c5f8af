"""Tests for configuration, logging setup and interrupt handling."""

import logging
import os
import signal

import pytest

from playlist_grit.config import Config, get_config
from playlist_grit.utils.logging_config import ColoredFormatter, set_log_level, setup_logging
from playlist_grit.utils.signals import deferred_interrupts


class TestConfig:
    """Test Config."""

    def test_defaults(self, tmp_path):
        """Test default settings."""
        config = Config(tmp_path / ".grit")

        assert config.grit_dir == tmp_path / ".grit"
        assert config.max_retries == 3
        assert config.retry_backoff == 1.0
        assert config.max_backoff == 30.0
        assert config.lock_timeout == 10.0
        assert config.http_timeout == 30.0
        assert config.log_file is None
        assert config.playlists_dir == tmp_path / ".grit" / "playlists"
        assert config.credentials_dir == tmp_path / ".grit" / "credentials"

    def test_environment_overrides(self, tmp_path, monkeypatch):
        """Test reading settings from the environment."""
        monkeypatch.setenv("GRIT_DIR", str(tmp_path / "elsewhere"))
        monkeypatch.setenv("GRIT_MAX_RETRIES", "5")
        monkeypatch.setenv("GRIT_LOCK_TIMEOUT", "0.5")
        monkeypatch.setenv("GRIT_LOG_FILE", str(tmp_path / "grit.log"))

        config = get_config()

        assert config.grit_dir == tmp_path / "elsewhere"
        assert config.max_retries == 5
        assert config.lock_timeout == 0.5
        assert config.log_file == tmp_path / "grit.log"

    def test_explicit_directory_wins(self, tmp_path, monkeypatch):
        """Test that a passed directory overrides GRIT_DIR."""
        monkeypatch.setenv("GRIT_DIR", str(tmp_path / "env"))

        assert get_config(tmp_path / "flag").grit_dir == tmp_path / "flag"

    def test_ensure_directories(self, tmp_path):
        """Test creating the workspace layout."""
        config = Config(tmp_path / ".grit")

        config.ensure_directories()
        config.ensure_directories()

        assert config.playlists_dir.is_dir()
        assert config.credentials_dir.is_dir()


@pytest.mark.usefixtures("restore_logging")
class TestLogging:
    """Test logging setup."""

    def test_colored_formatter(self):
        """Test that colors are applied and the record is left untouched."""
        formatter = ColoredFormatter(fmt="%(levelname)s|%(location)s|%(message)s")
        record = logging.LogRecord(
            "playlist_grit.test", logging.INFO, "engine.py", 42, "pushed %s", ("abc",), None
        )

        output = formatter.format(record)

        assert output.startswith("\033[32mINFO")
        assert "|engine.py:42|pushed abc" in output
        assert record.levelname == "INFO"

    def test_log_file_keeps_debug(self, tmp_path):
        """Test that the file handler records debug output."""
        log_file = tmp_path / "logs" / "grit.log"

        setup_logging("WARNING", log_file)
        logging.getLogger("playlist_grit.test_file").debug("detail %d", 7)
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "detail 7" in log_file.read_text(encoding="utf-8")

    def test_console_only(self):
        """Test console-only setup."""
        setup_logging("ERROR")

        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)

    def test_set_log_level(self):
        """Test changing the level of app loggers."""
        setup_logging("WARNING")
        app_logger = logging.getLogger("playlist_grit.sample")

        set_log_level("DEBUG")

        assert app_logger.level == logging.DEBUG
        assert logging.getLogger().handlers[0].level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestDeferredInterrupts:
    """Test deferred_interrupts."""

    @pytest.fixture
    def received(self):
        """Install a recording SIGINT handler for the test."""
        received = []
        previous = signal.signal(signal.SIGINT, lambda signum, frame: received.append(signum))
        yield received
        signal.signal(signal.SIGINT, previous)

    def test_interrupt_delivered_after_block(self, received):
        """Test that Ctrl-C during the block is held until it ends."""
        with deferred_interrupts():
            os.kill(os.getpid(), signal.SIGINT)
            inside = list(received)

        assert inside == []
        assert received == [signal.SIGINT]

    def test_handler_restored(self, received):
        """Test that the previous handler is back after the block."""
        previous = signal.getsignal(signal.SIGINT)

        with deferred_interrupts():
            pass

        assert signal.getsignal(signal.SIGINT) is previous
        assert received == []

