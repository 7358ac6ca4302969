"""Centralized logging configuration for Spark Finder.

All loggers hang off the ``spark`` root so one call to ``setup_logging``
controls the CLI, the API server and the background scanner.
"""

import logging
import os
import sys
from pathlib import Path

ROOT_LOGGER = "spark"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """Configure the ``spark`` logger tree.

    SPARK_LOG_LEVEL overrides ``level``. Calling again replaces the
    handlers, so the CLI can add a log file after import-time setup.

    Args:
        level: Log level name.
        log_file: Optional file that receives the same records as stdout.
        format_string: Record format; defaults to ``LOG_FORMAT``.
    """
    level = os.environ.get("SPARK_LOG_LEVEL", level).upper()
    formatter = logging.Formatter(format_string or LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level, logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger under the ``spark`` tree; ``"scanner"`` becomes ``spark.scanner``."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


_default_logger = setup_logging()
