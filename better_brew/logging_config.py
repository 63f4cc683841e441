"""
Logging setup for bbrew.

Console records go to stdout next to the brew output, prefixed with a
symbol for warnings and errors. `--log-file` adds a timestamped record of
everything, debug output included, whatever the console level is.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "better_brew"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s: %(message)s"

_logger: Optional[logging.Logger] = None


def console_level(verbose: bool = False, quiet: bool = False) -> int:
    """Console log level for the -v / -q flags; verbose wins."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the better_brew logger.

    Args:
        log_file: Optional file that receives every record at DEBUG
        verbose: Show debug records on the console
        quiet: Show only warnings and errors on the console
        propagate: Pass records on to the root logger (used by tests)

    Returns:
        Configured logger instance
    """
    global _logger

    level = console_level(verbose, quiet)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file else level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(SymbolFormatter(use_colors=sys.stdout.isatty()))
    logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    logger.propagate = propagate

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the better_brew logger, setting it up with defaults on first use."""
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class SymbolFormatter(logging.Formatter):
    """
    Console formatter matching the ✓/✗ lines printed for packages.

    Debug and info records are shown as bare messages; warnings get a ⚠
    prefix and errors a ✗ prefix, colored when writing to a terminal.
    """

    PREFIXES = {
        logging.WARNING: ("⚠", "\033[33m"),
        logging.ERROR: ("✗", "\033[31m"),
        logging.CRITICAL: ("✗", "\033[1;31m"),
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__("%(message)s")
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        prefix = self.PREFIXES.get(record.levelno)
        if prefix is None:
            return message
        symbol, color = prefix
        if self.use_colors:
            return f"{color}{symbol}{self.RESET} {message}"
        return f"{symbol} {message}"
