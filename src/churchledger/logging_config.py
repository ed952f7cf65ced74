"""Logging setup for command-line use."""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Send churchledger log records to stderr at the given level."""
    logger = logging.getLogger("churchledger")
    logger.setLevel(level)

    # Replace handlers from an earlier call
    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
