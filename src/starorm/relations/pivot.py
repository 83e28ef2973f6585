"""
Pivot models - one synthetic model type per many-to-many join table.
"""

from typing import Dict, Tuple

from ..entities.model import Model
from ..schema.property import Mutability
from ..schema.types import PropertyType


class Pivot(Model):
    """Row of a many-to-many join table, keyed by both of its columns"""

    abstract = True


_pivots: Dict[Tuple[str, str, str], type] = {}


def pivot_model(tablename: str, local_key: str, foreign_key: str) -> type:
    """The ``Pivot`` subclass for ``tablename``, created on first use"""
    key = (tablename, local_key, foreign_key)
    if key not in _pivots:
        column = {'type': PropertyType.INTEGER, 'mutable': Mutability.MUTABLE_CREATE_ONLY, 'required': True}
        _pivots[key] = type(f"{tablename}Pivot", (Pivot,), {
            '__module__': __name__,
            'table_name': tablename,
            'id_properties': [local_key, foreign_key],
            'properties': {local_key: dict(column), foreign_key: dict(column)},
        })
    return _pivots[key]


__all__ = ['Pivot', 'pivot_model']
