import logging
import sys

from consultancy.core import config

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Install one stdout handler on the ``consultancy`` logger.

    Safe to call more than once; earlier handlers are replaced.
    """
    logger = logging.getLogger("consultancy")
    if level is None:
        level = "DEBUG" if config.DEBUG else config.LOG_LEVEL
    logger.setLevel(level.upper())

    if logger.hasHandlers():
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
