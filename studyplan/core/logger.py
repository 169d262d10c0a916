"""
Logger factory.

Every module obtains its logger through setup_logger(__name__) so handlers and
levels are configured in one place.
"""

import logging
import sys

from studyplan.core.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(name: str) -> logging.Logger:
    """
    Create (or return) a configured logger.

    Args:
        name: Logger name, usually the module's __name__

    Returns:
        Logger with a single stdout handler and the configured level
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    settings = get_settings()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(settings.LOG_LEVEL.upper())
    logger.propagate = False
    return logger
