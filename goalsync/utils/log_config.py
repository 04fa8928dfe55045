"""Logging setup."""
import logging
from typing import Union


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Union[str, int] = logging.INFO) -> None:
    """Configure the ``goalsync`` logger hierarchy with a console handler."""
    logger = logging.getLogger("goalsync")
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
