"""
Logging system for the account data synchronizer.

Provides colored terminal output and rotating file logs. Every module
obtains its logger through ``get_logger(__name__)``; the runner calls
``configure_logging`` once at startup to apply the configured level and
file to all loggers of the package.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "cex_account_data"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Resolved by configure_logging(); used for loggers created afterwards
_default_level: int | None = None
_default_log_file: Path | None = None


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    GRAY = "\033[90m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BOLD = "\033[1m"


LEVEL_COLORS = {
    logging.DEBUG: Colors.GRAY,
    logging.INFO: Colors.GREEN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.RED + Colors.BOLD,
}


class ColoredFormatter(logging.Formatter):
    """Formatter that adds level colors to terminal output."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, Colors.RESET)
        return f"{color}{super().format(record)}{Colors.RESET}"


class PlainFormatter(logging.Formatter):
    """Plain formatter for file output (no colors)."""
    pass


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        if _default_level is not None:
            return _default_level
        level_str = os.getenv("LOG_LEVEL", "INFO").upper()
        return getattr(logging, level_str, logging.INFO)
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def _default_file() -> Path:
    if _default_log_file is not None:
        return _default_log_file
    project_root = Path(__file__).parent.parent.parent
    return project_root / "logs" / "account_data.log"


def setup_logger(
    name: str,
    level: int | str | None = None,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """
    Set up and return a configured logger.

    Args:
        name: Logger name, typically the module name like
            "cex_account_data.sync.worker"
        level: Log level. Defaults to the configured level, then the
            LOG_LEVEL env var, then INFO
        log_file: Log file path. Defaults to logs/account_data.log

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger("cex_account_data.sync.worker")
        >>> logger.info("account=main state=STREAMING")
    """
    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    level = _resolve_level(level)
    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)

    log_file = Path(log_file) if log_file is not None else _default_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(PlainFormatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger by name, creating it with default settings if needed.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        return setup_logger(name)

    return logger


def configure_logging(
    level: int | str | None = None,
    log_file: str | Path | None = None,
) -> None:
    """
    Apply level and log file to every package logger.

    Loggers already created at import time are rebuilt so that the
    settings from the configuration file take effect everywhere.

    Args:
        level: Log level name or number
        log_file: Rotating log file path
    """
    global _default_level, _default_log_file

    _default_level = _resolve_level(level)
    if log_file is not None:
        _default_log_file = Path(log_file)

    for name in list(logging.root.manager.loggerDict):
        if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
            continue
        logger = logging.getLogger(name)
        if not logger.handlers:
            continue
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        setup_logger(name)
