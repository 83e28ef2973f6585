"""
Persistence - storage drivers, transactions, driver registration and caches.
"""

from .drivers import Driver, AbstractDriver, MemoryDriver, SqlAlchemyDriver
from .transactions import TransactionManager
from .manager import PersistenceManager, persistence_manager
from .cache import CachePool, MemoryCachePool

__all__ = [
    'Driver',
    'AbstractDriver',
    'MemoryDriver',
    'SqlAlchemyDriver',
    'TransactionManager',
    'PersistenceManager',
    'persistence_manager',
    'CachePool',
    'MemoryCachePool',
]
