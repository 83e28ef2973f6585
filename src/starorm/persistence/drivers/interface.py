"""
Driver Interface - Storage Backend Contract

🔌 Pluggable Storage:
Models never talk to a database directly. Every read and write goes through
a ``Driver``, which receives the model (for its table name, identity and
connection) and structured query descriptors. Implementations wrap their
backend's errors in ``DriverException``.
"""

import json
from abc import ABC, abstractmethod
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ...validation.rules import DB_TIMESTAMP_FORMAT

if TYPE_CHECKING:
    from ...entities.model import Model
    from ...query.query import Query


class Driver(ABC):
    """
    Abstract storage driver.

    ``connection`` arguments name a connection; ``None`` is the default one.
    """

    @abstractmethod
    def create_model(self, model: 'Model', values: Dict[str, Any]) -> bool:
        """Insert a row for ``model``"""
        pass

    @abstractmethod
    def get_created_id(self, model: 'Model', property_name: str) -> Any:
        """Identity value generated by the last insert for ``model``'s table"""
        pass

    @abstractmethod
    def load_model(self, model: 'Model') -> Optional[Dict[str, Any]]:
        """Fetch the stored row of ``model`` by identity, or None"""
        pass

    @abstractmethod
    def query_models(self, query: 'Query') -> List[Dict[str, Any]]:
        """Fetch the raw rows matching ``query``"""
        pass

    @abstractmethod
    def update_model(self, model: 'Model', values: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    def delete_model(self, model: 'Model') -> bool:
        pass

    @abstractmethod
    def count(self, query: 'Query') -> int:
        pass

    @abstractmethod
    def sum(self, query: 'Query', field: str) -> float:
        pass

    @abstractmethod
    def average(self, query: 'Query', field: str) -> float:
        pass

    @abstractmethod
    def max(self, query: 'Query', field: str) -> Any:
        pass

    @abstractmethod
    def min(self, query: 'Query', field: str) -> Any:
        pass

    @abstractmethod
    def begin_transaction(self, connection: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def commit(self, connection: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def rollback(self, connection: Optional[str] = None) -> None:
        pass

    def in_transaction(self, connection: Optional[str] = None) -> bool:
        """Whether a transaction is already open outside the engine's control"""
        return False


class AbstractDriver(Driver):
    """Shared value serialization for concrete drivers"""

    def serialize_value(self, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            return value.strftime(DB_TIMESTAMP_FORMAT)
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, (list, dict)):
            return json.dumps(value)
        return value

    def serialize(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return {key: self.serialize_value(value) for key, value in values.items()}


__all__ = ['Driver', 'AbstractDriver']
