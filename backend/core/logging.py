# backend/core/logging.py

import logging
import os
import sys


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "redis", "uvicorn.access")


def setup_logging(level_name: str | None = None) -> None:
    """
    Configure application-wide logging for the chat backend.

    - Level comes from ``level_name`` or the LOG_LEVEL env var (default: INFO)
    - Records go to stdout so the container runtime collects them
    - HTTP client, Redis and access-log chatter is raised to WARNING

    Calling it again (e.g. after Uvicorn configured handlers) only adjusts
    the level.
    """
    level_name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Helper to get a module logger.

    Usage:
        from backend.core.logging import get_logger

        logger = get_logger(__name__)
        logger.info("Room %s created", code)
    """
    return logging.getLogger(name)
