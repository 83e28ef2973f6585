"""
Relation Base - Common Contract of Relationship Variants

🔗 Relationship Strategy:
A relation binds a local model to a foreign model type through a pair of
keys. Every variant knows how to build the query for its related models, how
to turn that query into results and how to link (``attach``), unlink
(``detach``), ``save`` and ``create`` related models. A null local key makes
the relation empty: no query is run and the result is empty.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..query.query import Query
from ..schema.property import RelationKind
from ..schema.registry import resolve_model


class Relation(ABC):
    kind: RelationKind

    def __init__(self, local_model: Any, local_key: str, foreign_model: Any, foreign_key: str):
        self.local_model = local_model
        self.local_key = local_key
        self.foreign_model = resolve_model(foreign_model)
        self.foreign_key = foreign_key
        self.empty = False
        self.query = self.init_query(self.foreign_model.query())

    def local_value(self) -> Any:
        return self.local_model.get([self.local_key])[self.local_key]

    def get_query(self) -> Query:
        return self.query

    @abstractmethod
    def init_query(self, query: Query) -> Query:
        """Constrain ``query`` to the models related to the local model"""
        pass

    @abstractmethod
    def get_results(self) -> Any:
        pass

    @abstractmethod
    def save(self, model: Any) -> Any:
        """Save ``model`` and link it to the local model"""
        pass

    @abstractmethod
    def create(self, values: Optional[Dict[str, Any]] = None) -> Any:
        """Create a new related model from ``values`` and link it"""
        pass

    @abstractmethod
    def attach(self, model: Any) -> Any:
        pass

    @abstractmethod
    def detach(self, model: Any = None) -> Any:
        pass

    def __repr__(self) -> str:
        return (f"{type(self).__name__}({self.local_model.model_name()}.{self.local_key} -> "
                f"{self.foreign_model.model_name()}.{self.foreign_key})")


__all__ = ['Relation']
