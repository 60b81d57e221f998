"""
Logging setup for the commerce engine.

Usage:
    from vaxdog.logging import get_logger
    logger = get_logger(__name__)

    logger.warning("Discarding corrupted persisted state: %s", error)
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Longest product id written to a log line
MAX_LOGGED_ID = 32


def _configure_root_logger() -> None:
    """Attach a stdout handler unless the host application already did."""
    root = logging.getLogger()
    if root.handlers:
        return

    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.setLevel(level)
    root.addHandler(handler)

    # Upstash client logs every REST call at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_configure_root_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | None) -> str:
    """
    Product id safe for a single log line.

    Ids come from the catalog layer and are not trusted: control characters
    are escaped (CWE-117) and the result is cut to ``MAX_LOGGED_ID`` chars.
    """
    if not id_value:
        return "N/A"
    safe_value = (
        str(id_value)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )
    return safe_value[:MAX_LOGGED_ID]


__all__ = ["LOG_FORMAT", "get_logger", "sanitize_id_for_logging"]
