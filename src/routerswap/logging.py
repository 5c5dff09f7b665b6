"""
Package logger. Records go to stderr with a timestamp and are not passed to the root logger, so
applications embedding routerswap keep control of their own handlers.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("routerswap")
logger.propagate = False
logger.setLevel(logging.INFO)

_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter(LOG_FORMAT))
logger.addHandler(_handler)


def set_log_level(level: int | str) -> None:
    logger.setLevel(level)
