"""
Model features - timestamps, soft delete, access control and caching.
"""

from .base import ModelFeature
from .timestamps import AutoTimestamps
from .soft_delete import SoftDelete
from .access_control import AccessControl
from .cacheable import Cacheable, get_default_pool, set_default_pool

__all__ = [
    'ModelFeature',
    'AutoTimestamps',
    'SoftDelete',
    'AccessControl',
    'Cacheable',
    'get_default_pool',
    'set_default_pool',
]
