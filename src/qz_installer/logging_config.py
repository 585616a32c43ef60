"""Logging configuration for the installer CLI."""

import logging
import sys


class TextFormatter(logging.Formatter):
    """Compact text formatter; verbose runs include the logger name."""

    def __init__(self, verbose: bool = False):
        fmt = "%(levelname)s: %(name)s: %(message)s" if verbose else "%(levelname)s: %(message)s"
        super().__init__(fmt=fmt)


def configure_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Configure application logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        verbose: Force DEBUG and include logger names in each line
    """
    resolved = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(resolved)
    console_handler.setFormatter(TextFormatter(verbose))
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
