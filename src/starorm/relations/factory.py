"""Builds the relation object described by a relation property."""

from typing import Any

from ..exceptions import ModelException
from ..schema.property import Property, RelationKind
from .base import Relation
from .belongs_to import BelongsTo
from .belongs_to_many import BelongsToMany
from .has_many import HasMany
from .has_one import HasOne
from .polymorphic import Polymorphic


def make_relation(model: Any, prop: Property) -> Relation:
    kind = prop.relation_type
    if kind == RelationKind.BELONGS_TO:
        return BelongsTo(model, prop.local_key, prop.relation, prop.foreign_key)
    if kind == RelationKind.HAS_ONE:
        return HasOne(model, prop.local_key, prop.relation, prop.foreign_key)
    if kind == RelationKind.HAS_MANY:
        return HasMany(model, prop.local_key, prop.relation, prop.foreign_key)
    if kind == RelationKind.BELONGS_TO_MANY:
        return BelongsToMany(model, prop.local_key, prop.pivot_tablename, prop.relation, prop.foreign_key)
    if kind == RelationKind.POLYMORPHIC:
        return Polymorphic(model, f"{prop.local_key}_type", f"{prop.local_key}_id",
                           prop.morphs_to, prop.foreign_key)
    raise ModelException(f"Relationship type on '{prop.name}' property not supported: {kind}")


__all__ = ['make_relation']
