"""
Query Conditions - structured where, sort and join descriptors.

Drivers receive these instead of query text and translate them for their
backend.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Operator(str, Enum):
    """Supported comparison operators"""
    EQUALS = "="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    IN = "IN"
    NOT_IN = "NOT IN"
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    IS = "IS"
    IS_NOT = "IS NOT"

    @classmethod
    def parse(cls, operator: Any) -> 'Operator':
        if isinstance(operator, Operator):
            return operator
        text = ' '.join(str(operator).upper().split())
        if text == '<>':
            return cls.NOT_EQUALS
        return cls(text)


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Condition:
    """``column <operator> value``"""
    column: str
    value: Any
    operator: Operator = Operator.EQUALS

    @classmethod
    def build(cls, column: str, value: Any, operator: Any = Operator.EQUALS) -> 'Condition':
        operator = Operator.parse(operator)
        if isinstance(value, (list, tuple, set, frozenset)):
            if operator == Operator.EQUALS:
                operator = Operator.IN
            elif operator == Operator.NOT_EQUALS:
                operator = Operator.NOT_IN
            value = list(value)
        elif value is None:
            if operator == Operator.EQUALS:
                operator = Operator.IS
            elif operator == Operator.NOT_EQUALS:
                operator = Operator.IS_NOT
        return cls(column, value, operator)


@dataclass(frozen=True)
class RawCondition:
    """A where fragment passed to the driver untouched"""
    sql: str


@dataclass(frozen=True)
class Sort:
    column: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class Join:
    """Join ``model_class`` on ``<query table>.local_column = <joined table>.foreign_key``"""
    model_class: Any
    local_column: str
    foreign_key: str

    @property
    def tablename(self) -> str:
        return self.model_class.tablename()


def split_column(column: str, default_table: Optional[str] = None):
    """``"people.name"`` -> ``("people", "name")``"""
    if '.' in column:
        table, name = column.rsplit('.', 1)
        return table, name
    return default_table, column


__all__ = [
    'Operator',
    'SortDirection',
    'Condition',
    'RawCondition',
    'Sort',
    'Join',
    'split_column',
]
