"""
Transactions - Nesting Depth Counter

💾 Nested Transaction Coordination:
Lifecycle operations may run inside one another (a create that saves related
models, a bulk update over a query). Only the outermost level talks to the
driver:

- the first ``start()`` at depth 0 begins a real transaction, unless the
  driver reports one is already open, in which case the depth becomes 2 and
  the outside owner stays responsible for it;
- ``commit()``/``rollback()`` reach the driver only at depth 1, otherwise they
  just decrement the depth.

Depth is tracked per connection.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from .drivers.interface import Driver

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION = "default"


class TransactionManager:
    """
    Tracks transaction nesting per connection.

    Usage:
        with manager.transaction():
            first.save_or_fail()
            second.save_or_fail()
    """

    def __init__(self, get_driver: Callable[[], Driver]):
        self._get_driver = get_driver
        self._depth: Dict[str, int] = {}

    def depth(self, connection: Optional[str] = None) -> int:
        return self._depth.get(connection or DEFAULT_CONNECTION, 0)

    def start(self, connection: Optional[str] = None) -> None:
        name = connection or DEFAULT_CONNECTION
        depth = self._depth.get(name, 0)
        if depth == 0:
            driver = self._get_driver()
            if driver.in_transaction(connection):
                logger.debug(f"Joining transaction already open on {name}")
                self._depth[name] = 2
                return
            driver.begin_transaction(connection)
            self._depth[name] = 1
        else:
            self._depth[name] = depth + 1

    def commit(self, connection: Optional[str] = None) -> None:
        name = connection or DEFAULT_CONNECTION
        depth = self._depth.get(name, 0)
        if depth == 1:
            self._depth[name] = 0
            self._get_driver().commit(connection)
        elif depth > 1:
            self._depth[name] = depth - 1

    def rollback(self, connection: Optional[str] = None) -> None:
        name = connection or DEFAULT_CONNECTION
        depth = self._depth.get(name, 0)
        if depth == 1:
            self._depth[name] = 0
            logger.debug(f"Rolling back transaction on {name}")
            self._get_driver().rollback(connection)
        elif depth > 1:
            self._depth[name] = depth - 1

    @contextmanager
    def transaction(self, connection: Optional[str] = None) -> Iterator['TransactionManager']:
        """Commit on success, roll back when the block raises"""
        self.start(connection)
        try:
            yield self
        except BaseException:
            self.rollback(connection)
            raise
        else:
            self.commit(connection)

    def reset(self) -> None:
        self._depth.clear()


__all__ = ['TransactionManager']
