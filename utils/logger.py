import datetime
import functools
import logging
import os
import time
import uuid
from typing import Optional

ROOT_LOGGER_NAME = "mookAI"
LOG_FORMAT = "mookAI | %(levelname)s | %(name)s | %(message)s"

# Unique id for each session, used to name the optional log file
SESSION_ID = uuid.uuid4().hex[:8]

_CONFIGURED = False
_CALLS_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.calls"


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the shared ``mookAI`` logger."""

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str | int = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """Attach the console handler (and optionally a session file) once.

    Calling this again only changes the level.
    """

    global _CONFIGURED
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    if _CONFIGURED:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        now = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        path = os.path.join(log_dir, f"mook_log_{now}_{SESSION_ID}.txt")
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("[%(asctime)s] " + LOG_FORMAT))
        logger.addHandler(file_handler)
        logger.info("Session %s logging to %s", SESSION_ID, path)

    logger.propagate = True
    _CONFIGURED = True
    return logger


def log_calls(func):
    """Decorator logging calls, return values and execution time at DEBUG level."""

    calls_logger = logging.getLogger(_CALLS_LOGGER_NAME)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if not calls_logger.isEnabledFor(logging.DEBUG):
            return func(*args, **kwargs)

        calls_logger.debug("Call %s args=%s kwargs=%s", func.__qualname__, args, kwargs)
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start_time
        calls_logger.debug("Return %s: %s (%.6f s)", func.__qualname__, result, elapsed)
        return result

    return wrapper


__all__ = ["configure_logging", "get_logger", "log_calls", "SESSION_ID"]
