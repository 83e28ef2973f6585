"""
Model Definitions - Per-Type Property Registry

📐 Schema Resolution:
A ``Definition`` is the complete, name-ordered set of properties of one model
type. It is assembled once per type from:

- the properties the model class declares,
- the implicit ``id`` property when the type uses the default key,
- properties contributed by the type's features (timestamps, soft delete),
- companion key properties implied by relation declarations.

Definitions are built lazily on first access and cached for the life of the
process by the ``DefinitionRegistry``.
"""

import logging
import re
import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional, Type

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import DefinitionError
from .property import Mutability, Property, RelationKind
from .types import PropertyType

logger = logging.getLogger(__name__)

DEFAULT_ID_PROPERTY = {'type': PropertyType.INTEGER, 'mutable': Mutability.IMMUTABLE}


def underscore(name: str) -> str:
    """``GroupPerson`` -> ``group_person``"""
    name = re.sub(r'(.)([A-Z][a-z]+)', r'\1_\2', name)
    return re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', name).lower()


def relation_target_name(target: Any) -> str:
    """Model name of a relation target given as a class or a dotted string"""
    if isinstance(target, str):
        return target.rsplit('.', 1)[-1]
    if hasattr(target, 'model_name'):
        return target.model_name()
    return target.__name__


class Definition(Mapping):
    """Read-only, name-ordered mapping of property name to ``Property``"""

    def __init__(self, model_class: type, properties: Dict[str, Property], ids: List[str]):
        ordered = {name: properties[name] for name in sorted(properties)}
        self._model_class = model_class
        self._properties = MappingProxyType(ordered)
        self._ids = tuple(ids)

    @property
    def model_class(self) -> type:
        return self._model_class

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    @property
    def properties(self) -> Mapping:
        return self._properties

    def __getitem__(self, name: str) -> Property:
        return self._properties[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def __setitem__(self, name: str, value: Any) -> None:
        raise TypeError("Model definitions cannot be modified")

    def __delitem__(self, name: str) -> None:
        raise TypeError("Model definitions cannot be modified")

    def persisted_properties(self) -> List[Property]:
        return [prop for prop in self._properties.values() if prop.persisted]

    def relation_properties(self) -> List[Property]:
        return [prop for prop in self._properties.values() if prop.is_relation]

    def __repr__(self) -> str:
        return f"Definition({self._model_class.__name__}, {list(self._properties)})"


class DefinitionBuilder:
    """Builds the ``Definition`` of one model type"""

    def __init__(self, model_class: type):
        self.model_class = model_class
        self.model_name = model_class.model_name()

    def build(self) -> Definition:
        ids = list(getattr(self.model_class, 'id_properties', None) or ['id'])
        properties: Dict[str, Property] = {}

        for name, spec in (getattr(self.model_class, 'properties', None) or {}).items():
            properties[name] = self.normalize(name, spec)

        if ids == ['id'] and 'id' not in properties:
            properties['id'] = self.normalize('id', dict(DEFAULT_ID_PROPERTY))

        for feature in getattr(self.model_class, 'features', None) or []:
            for name, spec in feature.properties(self.model_class).items():
                if name not in properties:
                    properties[name] = self.normalize(name, spec)

        for prop in list(properties.values()):
            if prop.is_relation:
                properties.update(self.expand_relation(prop, properties))
            elif prop.encrypted and not prop.rules:
                properties[prop.name] = prop.with_changes(rules='encrypt')

        for name in ids:
            if name not in properties:
                raise DefinitionError(
                    f"{self.model_name} declares id property '{name}' which is not a property")

        logger.debug(f"Built definition for {self.model_name}: {sorted(properties)}")
        return Definition(self.model_class, properties, ids)

    def normalize(self, name: str, spec: Any) -> Property:
        """Turn a declared property spec (``dict`` or ``Property``) into a ``Property``"""
        if isinstance(spec, Property):
            return spec if spec.name == name else spec.with_changes(name=name)
        if spec is None:
            spec = {}
        if not isinstance(spec, dict):
            raise DefinitionError(f"Property '{name}' of {self.model_name} must be a dict or Property")

        data = dict(spec)
        if 'validate' in data:
            data['rules'] = data.pop('validate')
        data['name'] = name

        if 'morphs_to' in data and 'relation_type' not in data:
            data['relation_type'] = RelationKind.POLYMORPHIC
        elif 'relation' in data and 'relation_type' not in data:
            data['relation_type'] = RelationKind.BELONGS_TO

        if data.get('relation_type') is not None:
            data.setdefault('persisted', False)
            data.setdefault('in_array', False)

        try:
            return Property(**data)
        except PydanticValidationError as e:
            raise DefinitionError(f"Invalid property '{name}' on {self.model_name}: {e}") from e

    def expand_relation(self, prop: Property, existing: Dict[str, Property]) -> Dict[str, Property]:
        """Fill in relation keys and return the property plus any companion properties"""
        kind = prop.relation_type
        if kind != RelationKind.POLYMORPHIC and prop.relation is None:
            raise DefinitionError(f"Relation '{prop.name}' on {self.model_name} has no target model")

        result: Dict[str, Property] = {}

        if kind == RelationKind.BELONGS_TO:
            local_key = prop.local_key or f"{prop.name}_id"
            result[prop.name] = prop.with_changes(
                local_key=local_key, foreign_key=prop.foreign_key or 'id', required=False)
            if local_key not in existing:
                result[local_key] = Property(
                    name=local_key, type=PropertyType.INTEGER, mutable=prop.mutable,
                    null=prop.null, required=prop.required)

        elif kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
            result[prop.name] = prop.with_changes(
                local_key=prop.local_key or 'id',
                foreign_key=prop.foreign_key or f"{underscore(self.model_name)}_id")

        elif kind == RelationKind.BELONGS_TO_MANY:
            target = relation_target_name(prop.relation)
            result[prop.name] = prop.with_changes(
                local_key=prop.local_key or f"{underscore(self.model_name)}_id",
                foreign_key=prop.foreign_key or f"{underscore(target)}_id",
                pivot_tablename=prop.pivot_tablename or ''.join(sorted([self.model_name, target])))

        elif kind == RelationKind.POLYMORPHIC:
            if not prop.morphs_to:
                raise DefinitionError(
                    f"Polymorphic relation '{prop.name}' on {self.model_name} needs a morphs_to mapping")
            local_key = prop.local_key or prop.name
            result[prop.name] = prop.with_changes(local_key=local_key, foreign_key=prop.foreign_key or 'id')
            type_key, id_key = f"{local_key}_type", f"{local_key}_id"
            if type_key not in existing:
                result[type_key] = Property(name=type_key, type=PropertyType.STRING,
                                            mutable=prop.mutable, null=True)
            if id_key not in existing:
                result[id_key] = Property(name=id_key, type=PropertyType.INTEGER,
                                          mutable=prop.mutable, null=True)

        else:
            raise DefinitionError(f"Unsupported relation type '{kind}' on {self.model_name}.{prop.name}")

        return result


class DefinitionRegistry:
    """Process-wide cache of built definitions, keyed by model class"""

    def __init__(self):
        self._definitions: Dict[type, Definition] = {}
        self._lock = threading.Lock()

    def get(self, model_class: type) -> Definition:
        definition = self._definitions.get(model_class)
        if definition is not None:
            return definition

        with self._lock:
            definition = self._definitions.get(model_class)
            if definition is None:
                definition = DefinitionBuilder(model_class).build()
                self._definitions[model_class] = definition
        return definition

    def has(self, model_class: type) -> bool:
        return model_class in self._definitions

    def reset(self, model_class: Optional[Type] = None) -> None:
        if model_class is None:
            self._definitions.clear()
        else:
            self._definitions.pop(model_class, None)


definition_registry = DefinitionRegistry()


__all__ = [
    'Definition',
    'DefinitionBuilder',
    'DefinitionRegistry',
    'definition_registry',
    'underscore',
    'relation_target_name',
]
