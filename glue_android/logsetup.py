# glue_android/logsetup.py
"""
Logging configuration for the glue process.

Console output goes to stderr so stdout stays reserved for the report.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

LOGGER_NAMES = ("glue_core", "glue_android")

_initialized: bool = False


class GlueLogFormatter(logging.Formatter):
    """Formatter with millisecond timestamps and optional thread name."""

    def __init__(self, include_thread: bool = False):
        self.include_thread = include_thread
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        level = record.levelname.ljust(8)
        name = record.name

        if self.include_thread:
            thread = record.threadName[:12].ljust(12)
            prefix = f"[{timestamp}] [{level}] [{thread}] {name}: "
        else:
            prefix = f"[{timestamp}] [{level}] {name}: "

        message = record.getMessage()

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return prefix + message


def setup_logging(
    console_level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Initialize glue logging.

    Args:
        console_level: Logging level for stderr output
        log_file: Optional path of a log file (thread names included)
        file_level: Logging level for file output
    """
    global _initialized

    if _initialized:
        return

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(GlueLogFormatter())

    file_handler = None
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(GlueLogFormatter(include_thread=True))

    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        logger.addHandler(console_handler)
        if file_handler is not None:
            logger.addHandler(file_handler)
        logger.propagate = False

    _initialized = True
    logging.getLogger("glue_android").debug("Logging initialized (file=%s)", log_file)
