"""
Cacheable - read-through / write-through caching of a model's stored values.

Values are cached under ``<namespace>.<model name>.<id>`` after every refresh
and read back before the driver is asked to load a model. Deleting a model or
clearing its cache removes the entry.
"""

import logging
from typing import Any, Optional

from ...infrastructure.configuration import get_config
from ...persistence.cache import CachePool, MemoryCachePool
from ...schema.definition import underscore
from .base import ModelFeature

logger = logging.getLogger(__name__)

_default_pool: Optional[CachePool] = None


def get_default_pool() -> CachePool:
    global _default_pool
    if _default_pool is None:
        _default_pool = MemoryCachePool()
    return _default_pool


def set_default_pool(pool: Optional[CachePool]) -> None:
    global _default_pool
    _default_pool = pool


class Cacheable(ModelFeature):
    def __init__(self, pool: Optional[CachePool] = None, ttl: Optional[int] = None):
        self._pool = pool
        self.ttl = ttl

    @property
    def pool(self) -> CachePool:
        return self._pool or get_default_pool()

    def cache_key(self, model: Any) -> Optional[str]:
        if not model.has_id():
            return None
        identity = ','.join(str(value) for value in model.ids().values())
        namespace = get_config().cache.namespace
        return f"{namespace}.{underscore(model.model_name())}.{identity}"

    def before_load(self, model):
        key = self.cache_key(model)
        if key is None:
            return None
        values = self.pool.get(key)
        if values is not None:
            logger.debug(f"Cache hit for {key}")
        return values

    def after_refresh(self, model):
        key = self.cache_key(model)
        if key is not None:
            ttl = self.ttl if self.ttl is not None else get_config().cache.default_ttl
            self.pool.set(key, model.persisted_values(), ttl)

    def after_delete(self, model):
        key = self.cache_key(model)
        if key is not None:
            self.pool.delete(key)

    def after_clear(self, model):
        self.after_delete(model)


__all__ = ['Cacheable', 'get_default_pool', 'set_default_pool']
