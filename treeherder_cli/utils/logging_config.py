"""
Logging Setup
Console logs go to stderr only; stdout carries nothing but the rendered
report, so `--json` output can be piped straight into a parser.
"""
import logging
import os
import sys
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RESET = "\x1b[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[31;1m",
}


class ColoredFormatter(logging.Formatter):
    """Wraps each record in its level's ANSI color when use_color is set."""

    def __init__(self, use_color: bool = True) -> None:
        super().__init__(CONSOLE_FORMAT, datefmt=DATE_FORMAT)
        self.use_color = use_color

    def format(self, record):
        text = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno) if self.use_color else None
        # Levels outside the standard range stay uncolored
        if not color:
            return text
        return f"{color}{text}{_RESET}"


def setup_logging(level=logging.INFO, log_file: Optional[str] = None):
    """Configure the root logger once per process (CLI run or API server)."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColoredFormatter(use_color=sys.stderr.isatty()))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    for logger_name in ("treeherder_cli", "uvicorn", "uvicorn.error", "uvicorn.access", "main"):
        named = logging.getLogger(logger_name)
        named.setLevel(level)
        named.propagate = True

    root_logger.debug("Logging initialized (level=%s).", logging.getLevelName(level))
