"""
Schema - property types, property definitions and per-type definitions.
"""

from .types import PropertyType, cast
from .property import Property, Mutability, RelationKind
from .definition import (
    Definition, DefinitionBuilder, DefinitionRegistry, definition_registry,
    underscore, relation_target_name,
)

__all__ = [
    'PropertyType',
    'cast',
    'Property',
    'Mutability',
    'RelationKind',
    'Definition',
    'DefinitionBuilder',
    'DefinitionRegistry',
    'definition_registry',
    'underscore',
    'relation_target_name',
]
