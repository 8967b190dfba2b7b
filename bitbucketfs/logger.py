"""Module containing utilities for logging, along with the package logger."""

import logging
from typing import Any
from urllib.parse import urlsplit

# Format shared by all output of the command-line tool
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _get_logger(name: str = "bitbucketfs") -> logging.Logger:
    logger = logging.getLogger(name)

    # Reloading the module must not result in every line being logged twice
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger


def set_debug(enabled: bool) -> None:
    """Log everything including request timings, or only errors."""
    log.setLevel(logging.DEBUG if enabled else logging.ERROR)


def summarize(obj: Any, max_length: int = 255) -> str:
    """Return a stringified representation of the object up to the given length."""
    stringified_obj = str(obj)

    if len(stringified_obj) <= max_length:
        return stringified_obj
    else:
        return stringified_obj[: max_length - 3] + "..."


def summarize_url(url: str, max_length: int = 255) -> str:
    """
    Shorten a request URL for a log line.

    The scheme and host are dropped since they're the same for every request made by a
    client. Only the path and query string are kept.
    """
    parts = urlsplit(url)

    if not parts.netloc:
        return summarize(url, max_length)

    path = parts.path + ("?" + parts.query if parts.query else "")

    return summarize(path, max_length)


# Default logger
log = _get_logger()
