# backend/roamplan/core/logger.py

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from roamplan.core.config_loader import settings


LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)

LOG_FILE_NAME = "roamplan.log"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logger(
    name: str = "roamplan",
    log_dir: Union[str, Path, None] = None,
    level: Optional[str] = None,
    debug_console: Optional[bool] = None,
) -> logging.Logger:
    """
    Build the named logger with a rotating file handler and a console handler.

    The file keeps `level` and above (LOG_LEVEL by default). The console shows
    DEBUG in development and follows the file level elsewhere. Calling it
    again for the same name returns the logger untouched, so app reloads do
    not stack handlers.
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    log_dir = Path(log_dir or settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    file_level = _level(level or settings.LOG_LEVEL)
    if debug_console is None:
        debug_console = settings.is_development

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=settings.LOG_FILE_MAX_MB * 1024 * 1024,
        backupCount=settings.LOG_FILE_BACKUPS,
        encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(file_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if debug_console else file_level)

    log.setLevel(min(file_level, console_handler.level))
    log.addHandler(file_handler)
    log.addHandler(console_handler)

    log.debug(f"Logger '{name}' writing to {log_dir / LOG_FILE_NAME}")
    return log


logger = setup_logger()
