# bzpark/utils/logger.py
"""
Centralised logging configuration for the API, the cascade handlers and the
ESP8266 poller. Console output always; rotating file output unless LOG_TO_FILE
is disabled (tests, containers that collect stdout).
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from bzpark.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_DIR = settings.LOG_DIR or os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs"
)

# Third-party loggers that drown out cascade messages at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "uvicorn.access")

_configured = False


def _file_handler(fmt: logging.Formatter) -> logging.Handler:
    os.makedirs(LOG_DIR, exist_ok=True)
    handler = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, "bzpark.log"),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(fmt)
    return handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setLevel(LOG_LEVEL)
    console.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(console)
    if settings.LOG_TO_FILE:
        root.addHandler(_file_handler(fmt))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)
