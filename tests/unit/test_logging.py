from __future__ import annotations

import sys
from unittest.mock import patch

import pytest
from loguru import logger

from detectlens.logging import (
    attach_log_buffer,
    configure_logging,
    create_log_buffer,
    recent_lines,
)


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestConfigureLogging:
    """Test sink setup."""

    def test_file_sink_created(self, tmp_path):
        """Messages are written into the log directory."""
        configure_logging("DEBUG", str(tmp_path))
        logger.info("camera opened")
        logger.complete()

        files = list(tmp_path.glob("detectlens_*.log"))
        assert len(files) == 1
        assert "camera opened" in files[0].read_text()

    def test_json_sink(self, tmp_path):
        """JSON lines are written alongside the text log."""
        configure_logging("INFO", str(tmp_path), json_logs=True)
        logger.info("model ready")
        logger.complete()
        assert list(tmp_path.glob("detectlens_*.jsonl"))

    def test_console_only(self, tmp_path):
        """No directory means no files, even when JSON logs are requested."""
        assert configure_logging("info", None, json_logs=True) == "INFO"
        logger.info("hello")
        assert not list(tmp_path.iterdir())

    @patch.dict("os.environ", {"DETECTLENS_LOG_LEVEL": "error"})
    def test_level_from_environment(self, tmp_path):
        """The environment level overrides the argument."""
        configure_logging("DEBUG", str(tmp_path))
        logger.info("hidden")
        logger.error("shown")
        logger.complete()
        text = next(tmp_path.glob("detectlens_*.log")).read_text()
        assert "shown" in text
        assert "hidden" not in text


class TestLogBuffer:
    """Test the in-memory log buffer."""

    def test_buffer_keeps_recent_lines(self):
        """Old lines fall off once the buffer is full."""
        buffer = create_log_buffer(max_lines=2)
        sink_id = attach_log_buffer(buffer, "INFO")
        for i in range(3):
            logger.info("line {}", i)
        logger.remove(sink_id)

        assert len(buffer) == 2
        assert buffer[-1].endswith("line 2")
        assert not buffer[-1].endswith("\n")

    def test_recent_lines(self):
        """The newest lines come back oldest first."""
        buffer = create_log_buffer(max_lines=10)
        buffer.extend(["a", "b", "c"])
        assert recent_lines(buffer, 2) == ["b", "c"]
        assert recent_lines(buffer, 5) == ["a", "b", "c"]
        assert recent_lines(buffer, 0) == []
