# File: medley/core/logging_config.py

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from medley.core.config.settings import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None, log_dir: Optional[Path] = None, console_output: bool = True) -> logging.Logger:
    """
    Configures the 'medley' logger hierarchy.

    Args:
        level: Log level name. Defaults to settings.LOG_LEVEL.
        log_dir: Directory for the rotating log file. Defaults to settings.LOG_DIR.
        console_output: Whether to also log to stderr.

    Returns:
        The configured 'medley' logger.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_dir = Path(log_dir) if log_dir else settings.LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("medley")
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Re-running setup must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        log_dir / "medley.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.propagate = False
    return logger
