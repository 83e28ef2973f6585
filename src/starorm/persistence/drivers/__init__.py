"""
Storage drivers.
"""

from .interface import Driver, AbstractDriver
from .memory import MemoryDriver
from .sql import SqlAlchemyDriver

__all__ = ['Driver', 'AbstractDriver', 'MemoryDriver', 'SqlAlchemyDriver']
