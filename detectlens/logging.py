"""Logging setup: console, rotating files and an in-memory tail for the preview."""

from __future__ import annotations

import os
import sys
from collections import deque
from pathlib import Path

from loguru import logger


LOG_LEVEL_ENV = "DETECTLENS_LOG_LEVEL"
FILE_ROTATION = "10 MB"
FILE_RETENTION = "7 days"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | "
    "{name}:{function}:{line} | {message}"
)
# Short enough to fit a preview line.
TAIL_FORMAT = "{time:HH:mm:ss} {level.name} {message}"


def _add_file_sink(path: Path, level: str, **options: object) -> int:
    return logger.add(
        str(path),
        rotation=FILE_ROTATION,
        retention=FILE_RETENTION,
        level=level,
        enqueue=True,
        **options,
    )


def configure_logging(
    log_level: str = "INFO",
    log_dir: str | None = "logs",
    *,
    json_logs: bool = False,
) -> str:
    """Replace all loguru sinks and return the effective level.

    ``DETECTLENS_LOG_LEVEL`` overrides ``log_level``. Without ``log_dir`` only
    the console sink is installed.
    """
    level = os.getenv(LOG_LEVEL_ENV, log_level).upper()

    logger.remove()
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=level)
    if log_dir is None:
        if json_logs:
            logger.warning("JSON logs requested without a log directory; skipped")
        return level

    root = Path(log_dir)
    root.mkdir(parents=True, exist_ok=True)
    stem = "detectlens_{time:YYYY-MM-DD}"
    _add_file_sink(root / f"{stem}.log", level, format=FILE_FORMAT)
    if json_logs:
        _add_file_sink(root / f"{stem}.jsonl", level, serialize=True)
    return level


def create_log_buffer(max_lines: int = 200) -> deque[str]:
    """Return an empty bounded buffer for recent log lines."""
    return deque(maxlen=max_lines)


def attach_log_buffer(buffer: deque[str], level: str = "INFO") -> int:
    """Mirror log records into ``buffer``; returns the sink id for removal."""

    def _sink(message: object) -> None:
        buffer.append(str(message).rstrip("\n"))

    return logger.add(_sink, level=level, format=TAIL_FORMAT)


def recent_lines(buffer: deque[str], count: int) -> list[str]:
    """Return up to ``count`` newest lines, oldest first."""
    if count <= 0:
        return []
    # copy() is atomic with respect to appends from the logging thread.
    return list(buffer.copy())[-count:]
