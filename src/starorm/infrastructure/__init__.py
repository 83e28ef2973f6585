"""
Infrastructure - configuration and logging setup.
"""

from .configuration import (
    Environment, ValidationConfig, CacheConfig, LoggingConfig, ORMConfig,
    get_config, set_config, reset_config,
)
from .logging import configure_logging

__all__ = [
    'Environment',
    'ValidationConfig',
    'CacheConfig',
    'LoggingConfig',
    'ORMConfig',
    'get_config',
    'set_config',
    'reset_config',
    'configure_logging',
]
