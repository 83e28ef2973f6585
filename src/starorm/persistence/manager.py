"""
Persistence Manager - process-wide driver registration.

Holds the storage driver every model uses and the transaction manager bound
to it. Swapping the driver resets transaction depth.
"""

import logging
from typing import Optional

from ..exceptions import DriverMissingException
from .drivers.interface import Driver
from .transactions import TransactionManager

logger = logging.getLogger(__name__)


class PersistenceManager:
    def __init__(self):
        self._driver: Optional[Driver] = None
        self.transactions = TransactionManager(self.get_driver)

    def set_driver(self, driver: Driver) -> None:
        self._driver = driver
        self.transactions.reset()
        logger.info(f"Registered storage driver {type(driver).__name__}")

    def get_driver(self) -> Driver:
        if self._driver is None:
            raise DriverMissingException("A storage driver has not been set yet")
        return self._driver

    def has_driver(self) -> bool:
        return self._driver is not None

    def clear_driver(self) -> None:
        self._driver = None
        self.transactions.reset()


persistence_manager = PersistenceManager()


__all__ = ['PersistenceManager', 'persistence_manager']
