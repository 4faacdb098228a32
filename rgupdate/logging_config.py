"""
Logging setup for the rgupdate command line.

Diagnostics and download progress go to stderr so that `list -o json` and
`info -o yaml` can be piped. `--log-file` adds a DEBUG-level file handler.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "rgupdate"

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_logger: Optional[logging.Logger] = None


def _effective_level(level: str, verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return getattr(logging, level.upper())


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the "rgupdate" logger that every module logger reports to.

    Args:
        level: Console log level name
        log_file: Optional file receiving every record at DEBUG
        verbose: Force DEBUG (-v)
        quiet: Drop the console handler and only keep warnings (-q)
        propagate: Let records reach the root logger (pytest caplog)

    Returns:
        The configured logger
    """
    global _logger

    effective = _effective_level(level, verbose, quiet)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(effective)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if not quiet:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(effective)
        console.setFormatter(ColoredFormatter("%(levelname_colored)s %(message)s",
                                              use_colors=sys.stderr.isatty()))
        logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)
        # File output needs DEBUG records even when the console is quieter
        logger.setLevel(logging.DEBUG)

    logger.propagate = propagate
    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Return the rgupdate logger, configuring defaults on first use."""
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class ColoredFormatter(logging.Formatter):
    """Prefix console records with a colored level marker."""

    STYLES = {
        "DEBUG": ("\033[36m", "·"),
        "INFO": ("\033[32m", "✓"),
        "WARNING": ("\033[33m", "⚠"),
        "ERROR": ("\033[31m", "✗"),
        "CRITICAL": ("\033[1;31m", "✗✗"),
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_colors and levelname in self.STYLES:
            color, symbol = self.STYLES[levelname]
            record.levelname_colored = f"{color}{symbol} {levelname}{self.RESET}"
        else:
            record.levelname_colored = levelname
        return super().format(record)
