"""
Logging for the translation queue service.

Every module logs through get_logger(__name__). Loggers under the
'translation_queue' root and module loggers alike get two handlers:
- console at INFO: job lifecycle, chunk dispatch, throttle events
- rotating file at DEBUG (logs/translation_queue.log)

The provider SDKs and httpx log request details at DEBUG, including
auth headers, so they are held at WARNING.
"""
import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional

from .constants import (
    LOG_BACKUP_COUNT,
    LOG_FILE,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_SIZE_MB,
)

ROOT_LOGGER_NAME = 'translation_queue'
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "anthropic")

for _name in QUIET_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)


def _build_handlers() -> List[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)

    log_path = Path(LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    rotating = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=LOG_MAX_SIZE_MB * 1024 * 1024,
        backupCount=LOG_BACKUP_COUNT,
    )
    rotating.setLevel(logging.DEBUG)
    rotating.setFormatter(formatter)

    return [console, rotating]


def setup_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Logger for a queue module, configured once.

    Args:
        name: Usually __name__; the service root logger when None.
    """
    logger = logging.getLogger(name or ROOT_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL))
    # own handlers; propagating would duplicate records on the root logger
    logger.propagate = False
    for handler in _build_handlers():
        logger.addHandler(handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Alias for setup_logger: logger = get_logger(__name__)"""
    return setup_logger(name)


logger = setup_logger(ROOT_LOGGER_NAME)
