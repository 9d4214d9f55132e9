"""
Logging Setup
=============
Console (and optionally file) output for every 'modelpreview.*' logger.

Modules only call logging.getLogger(__name__); handlers and levels are
attached once here, from main() according to --debug / --log-file.
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'


def _make_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Attach handlers to the package logger.

    Calling it again replaces the previous handlers, so tests and repeated
    application starts do not print every record twice.

    Args:
        level: Threshold for both handlers, e.g. logging.DEBUG with --debug.
        log_file: If given, records are also written there (overwritten per run).
    """
    package_logger = logging.getLogger("modelpreview")
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    package_logger.addHandler(_make_handler(logging.StreamHandler(sys.stdout), level))
    if log_file:
        package_logger.addHandler(
            _make_handler(logging.FileHandler(log_file, mode='w', encoding='utf-8'), level)
        )

    package_logger.debug(f"Handlers: {[type(h).__name__ for h in package_logger.handlers]}")
    package_logger.info(f"Logging at {logging.getLevelName(level)}" + (f", file: {log_file}" if log_file else ""))
