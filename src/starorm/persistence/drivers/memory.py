"""
In-Memory Driver - Process Local Storage

💾 Memory Backend:
Keeps rows in per-table dictionaries and evaluates the structured where,
join, sort and limit descriptors of a query in Python. Transactions are
snapshots of the table state, restored on rollback. Per-operation metrics
make it easy to assert how many storage round trips an operation made.

Raw where fragments are supported for the simple forms ``col IS [NOT] NULL``
and ``col <op> literal``; anything else raises ``DriverException``.
"""

import copy
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ...exceptions import DriverException
from ...query.conditions import Condition, Operator, RawCondition, SortDirection, split_column
from .interface import AbstractDriver

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION = "default"

_RAW_NULL = re.compile(r'^\s*([\w.]+)\s+IS\s+(NOT\s+)?NULL\s*$', re.IGNORECASE)
_RAW_COMPARISON = re.compile(r'^\s*([\w.]+)\s*(<=|>=|<>|!=|=|<|>)\s*(.+?)\s*$')

Row = Dict[str, Any]


def _parse_literal(text: str) -> Any:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    if text.upper() == 'NULL':
        return None
    for convert in (int, float):
        try:
            return convert(text)
        except ValueError:
            continue
    raise ValueError(f"Unsupported literal: {text}")


def _like(value: Any, pattern: Any) -> bool:
    if value is None:
        return False
    regex = ''.join('.*' if ch == '%' else '.' if ch == '_' else re.escape(ch) for ch in str(pattern))
    return re.fullmatch(regex, str(value), re.IGNORECASE | re.DOTALL) is not None


def _compare(left: Any, operator: Operator, right: Any) -> bool:
    if operator == Operator.IS:
        return left is right if right is None else left == right
    if operator == Operator.IS_NOT:
        return left is not right if right is None else left != right
    if operator == Operator.EQUALS:
        return left == right
    if operator == Operator.NOT_EQUALS:
        return left != right
    if operator == Operator.IN:
        return left in right
    if operator == Operator.NOT_IN:
        return left not in right
    if operator == Operator.LIKE:
        return _like(left, right)
    if operator == Operator.NOT_LIKE:
        return left is not None and not _like(left, right)

    if left is None or right is None:
        return False
    if operator == Operator.GREATER_THAN:
        return left > right
    if operator == Operator.GREATER_THAN_OR_EQUAL:
        return left >= right
    if operator == Operator.LESS_THAN:
        return left < right
    return left <= right


class MemoryDriver(AbstractDriver):
    """Driver storing rows in process memory"""

    def __init__(self):
        self._tables: Dict[str, List[Row]] = {}
        self._auto_increment: Dict[str, int] = {}
        self._last_insert: Dict[str, Row] = {}
        self._snapshots: Dict[str, Tuple[Dict[str, List[Row]], Dict[str, int]]] = {}
        self._metrics = {
            "creates": 0,
            "loads": 0,
            "updates": 0,
            "deletes": 0,
            "queries": 0,
            "aggregates": 0,
            "begins": 0,
            "commits": 0,
            "rollbacks": 0,
        }

    # ----- storage helpers -----

    def table(self, tablename: str) -> List[Row]:
        return self._tables.setdefault(tablename, [])

    def rows(self, tablename: str) -> List[Row]:
        """Copies of every stored row of a table"""
        return [dict(row) for row in self._tables.get(tablename, [])]

    def insert_rows(self, tablename: str, rows: List[Row]) -> None:
        """Seed a table directly, bypassing models"""
        for row in rows:
            self._insert(tablename, dict(row), 'id')

    def _insert(self, tablename: str, row: Row, id_name: Optional[str]) -> Row:
        if id_name and row.get(id_name) is None:
            self._auto_increment[tablename] = self._auto_increment.get(tablename, 0) + 1
            row[id_name] = self._auto_increment[tablename]
        elif id_name and isinstance(row.get(id_name), int):
            self._auto_increment[tablename] = max(self._auto_increment.get(tablename, 0), row[id_name])
        self.table(tablename).append(row)
        self._last_insert[tablename] = row
        return row

    def _find(self, model) -> Optional[Row]:
        ids = model.ids()
        for row in self._tables.get(model.tablename(), []):
            if all(row.get(name) == value for name, value in ids.items()):
                return row
        return None

    # ----- driver contract -----

    def create_model(self, model, values):
        self._metrics["creates"] += 1
        ids = type(model).definition().ids
        id_name = ids[0] if len(ids) == 1 else None
        self._insert(model.tablename(), self.serialize(values), id_name)
        return True

    def get_created_id(self, model, property_name):
        row = self._last_insert.get(model.tablename())
        if row is None:
            raise DriverException(f"Nothing was inserted into {model.tablename()}",
                                  operation=f"get created id of {model.model_name()}")
        return row.get(property_name)

    def load_model(self, model):
        self._metrics["loads"] += 1
        row = self._find(model)
        return dict(row) if row is not None else None

    def update_model(self, model, values):
        self._metrics["updates"] += 1
        if not values:
            return True
        row = self._find(model)
        if row is None:
            return False
        row.update(self.serialize(values))
        return True

    def delete_model(self, model):
        self._metrics["deletes"] += 1
        row = self._find(model)
        if row is None:
            return False
        self.table(model.tablename()).remove(row)
        return True

    def query_models(self, query):
        self._metrics["queries"] += 1
        rows = self._select(query)
        rows = self._sort(rows, query)
        start = query.get_start()
        limit = query.get_limit()
        return [dict(row) for row in rows[start:start + limit]]

    def count(self, query):
        self._metrics["aggregates"] += 1
        return len(self._select(query))

    def sum(self, query, field):
        self._metrics["aggregates"] += 1
        return sum(self._numbers(query, field))

    def average(self, query, field):
        self._metrics["aggregates"] += 1
        numbers = self._numbers(query, field)
        return sum(numbers) / len(numbers) if numbers else 0

    def max(self, query, field):
        self._metrics["aggregates"] += 1
        values = [row.get(field) for row in self._select(query) if row.get(field) is not None]
        return max(values) if values else None

    def min(self, query, field):
        self._metrics["aggregates"] += 1
        values = [row.get(field) for row in self._select(query) if row.get(field) is not None]
        return min(values) if values else None

    def begin_transaction(self, connection=None):
        self._metrics["begins"] += 1
        self._snapshots[connection or DEFAULT_CONNECTION] = (
            copy.deepcopy(self._tables), dict(self._auto_increment))

    def commit(self, connection=None):
        self._metrics["commits"] += 1
        self._snapshots.pop(connection or DEFAULT_CONNECTION, None)

    def rollback(self, connection=None):
        self._metrics["rollbacks"] += 1
        snapshot = self._snapshots.pop(connection or DEFAULT_CONNECTION, None)
        if snapshot is not None:
            self._tables, self._auto_increment = snapshot
            logger.debug(f"Rolled back memory transaction on {connection or DEFAULT_CONNECTION}")

    def in_transaction(self, connection=None):
        return (connection or DEFAULT_CONNECTION) in self._snapshots

    # ----- query evaluation -----

    def _numbers(self, query, field) -> List[float]:
        values = []
        for row in self._select(query):
            value = row.get(field)
            if value is None:
                continue
            try:
                values.append(float(value) if isinstance(value, str) else value)
            except ValueError as e:
                raise DriverException(f"Cannot aggregate non numeric {field}",
                                      operation=f"aggregate {field}", cause=e) from e
        return values

    def _select(self, query) -> List[Row]:
        tablename = query.model_class.tablename()
        results = []
        for row in self._tables.get(tablename, []):
            for context in self._join(tablename, row, query.get_joins()):
                if all(self._matches(condition, context, tablename) for condition in query.get_where()):
                    results.append(row)
        return results

    def _join(self, tablename: str, row: Row, joins) -> List[Row]:
        base = dict(row)
        base.update({f"{tablename}.{key}": value for key, value in row.items()})
        contexts = [base]
        for join in joins:
            joined_table = join.tablename
            expanded = []
            for context in contexts:
                for other in self._tables.get(joined_table, []):
                    if other.get(join.foreign_key) == context.get(join.local_column):
                        merged = dict(context)
                        merged.update({f"{joined_table}.{key}": value for key, value in other.items()})
                        expanded.append(merged)
            contexts = expanded
        return contexts

    def _matches(self, condition, context: Row, tablename: str) -> bool:
        if isinstance(condition, RawCondition):
            condition = self._parse_raw(condition)
        table, column = split_column(condition.column)
        key = f"{table}.{column}" if table and table != tablename else column
        value = condition.value
        if not isinstance(value, list):
            value = self.serialize_value(value)
        else:
            value = [self.serialize_value(item) for item in value]
        return _compare(context.get(key), condition.operator, value)

    def _parse_raw(self, condition: RawCondition) -> Condition:
        match = _RAW_NULL.match(condition.sql)
        if match:
            operator = Operator.IS_NOT if match.group(2) else Operator.IS
            return Condition(match.group(1), None, operator)
        match = _RAW_COMPARISON.match(condition.sql)
        if match:
            try:
                return Condition.build(match.group(1), _parse_literal(match.group(3)), match.group(2))
            except ValueError as e:
                raise DriverException(f"Unsupported where fragment: {condition.sql}",
                                      operation="query", cause=e) from e
        raise DriverException(f"Unsupported where fragment: {condition.sql}", operation="query")

    def _sort(self, rows: List[Row], query) -> List[Row]:
        # stable sorts applied last key first
        for sort in reversed(query.get_sort()):
            _, column = split_column(sort.column)
            rows = sorted(rows, key=lambda row: (row.get(column) is not None, row.get(column)),
                          reverse=sort.direction == SortDirection.DESC)
        return rows

    def get_metrics(self) -> Dict[str, int]:
        return self._metrics.copy()

    def reset_metrics(self) -> None:
        for key in self._metrics:
            self._metrics[key] = 0


__all__ = ['MemoryDriver']
