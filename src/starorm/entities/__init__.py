"""
Entities - the Model base class, its features and the requester context.
"""

from .model import Model
from .features import (
    ModelFeature, AutoTimestamps, SoftDelete, AccessControl,
    Cacheable, get_default_pool, set_default_pool
)
from .requester import RequesterContext, requester_context, get_requester

__all__ = [
    'Model',
    'ModelFeature',
    'AutoTimestamps',
    'SoftDelete',
    'AccessControl',
    'Cacheable',
    'get_default_pool',
    'set_default_pool',
    'RequesterContext',
    'requester_context',
    'get_requester',
]
