"""Logging for lxrt.

Every module logs through ``get_logger(__name__)``; the ``lxrt`` logger
tree is configured once (on first use unless ``configure_logging`` ran
first) and does not propagate to the Python root logger, so applications
embedding lxrt keep their own logging setup.

Usage:
    from lxrt.core import get_logger

    logger = get_logger(__name__)
    logger.info("Loading %s", model_id)

    with LogContext(logger, "Loading llm model", model=model_id, device="gpu"):
        engine = await loader(settings)
"""

import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Optional, Union

from lxrt.core.constants import Defaults

ROOT_LOGGER = "lxrt"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# The HF stack logs every download and weight-loading step at INFO
NOISY_LOGGERS = (
    "transformers",
    "sentence_transformers",
    "tokenizers",
    "huggingface_hub",
    "httpx",
    "urllib3",
    "filelock",
)

_configured = False


class ColoredFormatter(logging.Formatter):
    """Colors the level name when writing to a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: 36,
        logging.INFO: 32,
        logging.WARNING: 33,
        logging.ERROR: 31,
        logging.CRITICAL: 35,
    }

    def __init__(self, fmt: str, datefmt: str, use_colors: bool = True, stream=None):
        super().__init__(fmt, datefmt)
        stream = stream or sys.stderr
        self.use_colors = use_colors and hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors or record.levelno not in self.LEVEL_COLORS:
            return super().format(record)
        # Copy so other handlers still see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"\033[{self.LEVEL_COLORS[record.levelno]}m{record.levelname}\033[0m"
        return super().format(colored)


def _resolve_level(level: Optional[Union[int, str]], quiet: bool) -> int:
    if level is None:
        level = os.environ.get(Defaults.LOG_LEVEL_ENV) or (logging.WARNING if quiet else logging.INFO)
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def configure_logging(
    level: Optional[Union[int, str]] = None,
    format_string: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    use_colors: bool = True,
    quiet: bool = False,
) -> None:
    """(Re)configure the ``lxrt`` logger tree.

    Args:
        level: Level name or number; ``LXRT_LOG_LEVEL`` when omitted, else INFO
        format_string: Console format
        log_file: Also write DEBUG and above to this file
        use_colors: Color level names on a terminal
        quiet: Default to WARNING instead of INFO
    """
    global _configured

    resolved = _resolve_level(level, quiet)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(resolved)
    root.propagate = False
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolved)
    console.setFormatter(ColoredFormatter(format_string or CONSOLE_FORMAT, CONSOLE_DATE_FORMAT, use_colors))
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
        root.addHandler(file_handler)
        # The file gets everything; the console handler still filters
        root.setLevel(logging.DEBUG)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, resolved))

    _configured = True


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Logger for a module, configuring the ``lxrt`` tree on first use."""
    if not _configured:
        configure_logging()
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


class LogContext:
    """Times an operation and logs its start, duration and failure.

    ``elapsed_s`` holds the duration after the block exits. Exceptions
    are logged and re-raised.
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO, **context: Any):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.context = context
        self.elapsed_s: Optional[float] = None
        self._start: Optional[float] = None

    def _describe(self) -> str:
        if not self.context:
            return self.operation
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.operation} ({details})"

    def __enter__(self) -> "LogContext":
        self._start = time.perf_counter()
        self.logger.log(self.level, "%s started", self._describe())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.elapsed_s = time.perf_counter() - self._start
        if exc_type is None:
            self.logger.log(self.level, "%s completed in %.2fs", self.operation, self.elapsed_s)
        else:
            self.logger.error("%s failed after %.2fs: %s", self._describe(), self.elapsed_s, exc_val)
        return False
