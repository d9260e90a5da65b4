"""
Logging for the patchgate CLIs, operator and API.

Records go to stderr in a pipe-separated line format, leaving stdout to the
tables and reports the CLIs print. Modules take their logger from
``get_logger(__name__)``.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP clients and the uvicorn access log stay at WARNING unless asked for.
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """
    Install the stderr handler on the root logger, replacing earlier setup.

    Args:
        level: Level name from settings; unknown names fall back to INFO.
        verbose: Force DEBUG, including the otherwise quiet HTTP loggers.
    """
    root_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=root_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)
