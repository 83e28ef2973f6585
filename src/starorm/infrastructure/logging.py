"""
Logging setup for StarORM.

Every module logs through ``logging.getLogger(__name__)``; this installs a
handler on the package logger according to a ``LoggingConfig``.
"""

import logging
from typing import Optional

from .configuration import LoggingConfig, get_config

PACKAGE_LOGGER = "starorm"


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Configure the ``starorm`` logger and return it"""
    config = config or get_config().logging
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if config.file_path:
        handler: logging.Handler = logging.FileHandler(config.file_path)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(config.format))
    logger.addHandler(handler)

    return logger


__all__ = ['configure_logging', 'PACKAGE_LOGGER']
