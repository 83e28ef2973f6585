"""
Query Builder - Storage Agnostic Model Queries

🔎 Fluent Query Construction:
A ``Query`` collects where conditions, sorting, paging, joins and the list of
relations to eager load, then asks the model's driver for raw rows and turns
them into typed models. Builder methods return the query so calls chain:

    Person.query().where('age', 21, '>=').sort('name asc').limit(10).execute()

Where conditions come in three forms, all combined with AND:

- a ``{column: value}`` map, or ``where(column, value)``; a later equality on
  the same column replaces the earlier one,
- a raw fragment, ``where("age > 21")``,
- a ``(column, value, operator)`` triple, ``where('age', 21, '>')``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from ..schema.types import PropertyType
from ..validation.rules import DB_TIMESTAMP_FORMAT
from .conditions import Condition, Join, Operator, RawCondition, Sort, SortDirection, split_column
from .hydrator import Hydrator
from .iterator import ModelIterator

logger = logging.getLogger(__name__)

_MISSING = object()


class Query:
    DEFAULT_LIMIT = 100
    MAX_LIMIT = 1000

    def __init__(self, model_class: type):
        self.model_class = model_class
        self._where: List[Union[Condition, RawCondition]] = []
        self._sort: List[Sort] = []
        self._limit = self.DEFAULT_LIMIT
        self._start = 0
        self._joins: List[Join] = []
        self._eager: List[str] = []

    # ----- building -----

    def where(self, where: Any, value: Any = _MISSING, operator: Optional[Any] = None) -> 'Query':
        if isinstance(where, dict):
            for column, column_value in where.items():
                self._set_equality(column, column_value)
        elif isinstance(where, (list, tuple)) and value is _MISSING:
            for entry in where:
                if isinstance(entry, str):
                    self._where.append(RawCondition(entry))
                elif isinstance(entry, dict):
                    self.where(entry)
                else:
                    self.where(*entry)
        elif value is _MISSING:
            self._where.append(RawCondition(str(where)))
        elif operator is None:
            self._set_equality(where, value)
        else:
            self._where.append(Condition.build(where, self._storage_value(where, value), operator))
        return self

    def _set_equality(self, column: str, value: Any) -> None:
        self._where = [c for c in self._where
                       if not (isinstance(c, Condition) and c.column == column
                               and c.operator in (Operator.EQUALS, Operator.IS, Operator.IN))]
        self._where.append(Condition.build(column, self._storage_value(column, value)))

    def _storage_value(self, column: str, value: Any) -> Any:
        """Bring a condition value on a date column into the stored timestamp form"""
        table, name = split_column(str(column))
        if table is not None and table != self.model_class.tablename():
            return value
        prop = self.model_class.definition().get(name)
        if prop is None or prop.type != PropertyType.DATE:
            return value
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self._storage_value(column, item) for item in value]
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value, tz=timezone.utc).strftime(DB_TIMESTAMP_FORMAT)
        return value

    def limit(self, limit: int) -> 'Query':
        self._limit = max(0, min(int(limit), self.MAX_LIMIT))
        return self

    def start(self, start: int) -> 'Query':
        self._start = max(0, int(start))
        return self

    def sort(self, sort: Any) -> 'Query':
        """
        Set the sort order from ``"name asc, id desc"`` or a list of
        ``(column, direction)`` pairs. Malformed entries are dropped.
        """
        if isinstance(sort, str):
            entries: Iterable[Any] = [part.split() for part in sort.split(',')]
        else:
            entries = sort

        parsed = []
        for entry in entries:
            if isinstance(entry, str):
                entry = entry.split()
            entry = list(entry)
            if len(entry) == 1:
                entry.append(SortDirection.ASC.value)
            if len(entry) != 2 or not entry[0]:
                continue
            try:
                direction = SortDirection(str(entry[1]).lower())
            except ValueError:
                continue
            parsed.append(Sort(str(entry[0]), direction))
        self._sort = parsed
        return self

    def join(self, model_class: type, local_column: str, foreign_key: str) -> 'Query':
        self._joins.append(Join(model_class, local_column, foreign_key))
        return self

    def eager_load(self, *names: str) -> 'Query':
        for name in names:
            if name not in self._eager:
                self._eager.append(name)
        return self

    # ----- accessors -----

    def get_model(self) -> type:
        return self.model_class

    def get_where(self) -> List[Union[Condition, RawCondition]]:
        return list(self._where)

    def get_sort(self) -> List[Sort]:
        return list(self._sort)

    def get_limit(self) -> int:
        return self._limit

    def get_start(self) -> int:
        return self._start

    def get_joins(self) -> List[Join]:
        return list(self._joins)

    def get_eager(self) -> List[str]:
        return list(self._eager)

    def clone(self) -> 'Query':
        query = Query(self.model_class)
        query._where = list(self._where)
        query._sort = list(self._sort)
        query._limit = self._limit
        query._start = self._start
        query._joins = list(self._joins)
        query._eager = list(self._eager)
        return query

    # ----- execution -----

    def _driver(self):
        return self.model_class.get_driver()

    def execute(self) -> List[Any]:
        """Run the query and return typed models with eager relations attached"""
        rows = self._driver().query_models(self)
        models = [self.model_class.from_storage(row) for row in rows]
        if self._eager and models:
            Hydrator(self.model_class).hydrate(models, self._eager)
        return models

    def first(self, limit: int = 1) -> Any:
        """A single model (or None) when ``limit`` is 1, otherwise a list"""
        models = self.clone().limit(limit).execute()
        if limit == 1:
            return models[0] if models else None
        return models

    def all(self) -> 'ModelIterator':
        return ModelIterator(self)

    def count(self) -> int:
        return self._driver().count(self)

    def sum(self, field: str) -> float:
        return self._driver().sum(self, field)

    def average(self, field: str) -> float:
        return self._driver().average(self, field)

    def max(self, field: str) -> Any:
        return self._driver().max(self, field)

    def min(self, field: str) -> Any:
        return self._driver().min(self, field)

    def set(self, params: Dict[str, Any]) -> int:
        """Update every matching model one by one; returns how many were processed"""
        processed = 0
        for model in self.all():
            model.set(params)
            processed += 1
        return processed

    def delete(self) -> int:
        """Delete every matching model one by one; returns how many were processed"""
        processed = 0
        for model in self.all():
            model.delete()
            processed += 1
        return processed

    def __repr__(self) -> str:
        return (f"Query({self.model_class.__name__}, where={self._where}, sort={self._sort}, "
                f"limit={self._limit}, start={self._start})")


__all__ = ['Query']
