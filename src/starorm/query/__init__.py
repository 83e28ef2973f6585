"""
Query - fluent query building, paged iteration and batched eager loading.
"""

from .conditions import Condition, RawCondition, Operator, Sort, SortDirection, Join
from .query import Query
from .iterator import ModelIterator
from .hydrator import Hydrator

__all__ = [
    'Condition',
    'RawCondition',
    'Operator',
    'Sort',
    'SortDirection',
    'Join',
    'Query',
    'ModelIterator',
    'Hydrator',
]
