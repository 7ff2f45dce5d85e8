"""Unit tests for logging configuration."""

from pathlib import Path

from loguru import logger

from place_resolver.core.logging import setup_logging


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        setup_logging("info")
        setup_logging("debug")

    def test_file_sink_created(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))
        logger.info("cache warmed")
        logger.complete()
        setup_logging("INFO")

        log_file = log_dir / "place-resolver.log"
        assert log_file.exists()
        assert "cache warmed" in log_file.read_text()
