"""
Hydrator - Batched Eager Loading

⚡ N+1 Avoidance:
For every relation named in a query's eager-load list the hydrator collects
the key values of the whole result batch and fetches all related models with
a single ``WHERE foreign_key IN (...)`` query, then attaches them to their
owners. Loading N relations over any number of models costs exactly N extra
queries.

Single valued relations (belongs-to, has-one) get the matching model or an
explicit resolved-empty ``None``; has-many relations get a list, possibly
empty. Many-to-many and polymorphic relations are left to lazy loading.
"""

import logging
from typing import Any, Dict, List

from ..exceptions import ModelException
from ..schema.property import RelationKind
from ..schema.registry import resolve_model

logger = logging.getLogger(__name__)

SINGLE_KINDS = (RelationKind.BELONGS_TO, RelationKind.HAS_ONE)


class Hydrator:
    def __init__(self, model_class: type):
        self.model_class = model_class

    def hydrate(self, models: List[Any], eager: List[str]) -> List[Any]:
        definition = self.model_class.definition()
        for name in eager:
            prop = definition.get(name)
            if prop is None or not prop.is_relation:
                raise ModelException(
                    f"Cannot eager load '{name}': it is not a relation of {self.model_class.model_name()}")
            if prop.relation_type in SINGLE_KINDS or prop.relation_type == RelationKind.HAS_MANY:
                self._load(models, prop)
            else:
                logger.debug(f"{prop.relation_type.value} relation '{name}' is loaded lazily")
        return models

    def _load(self, models: List[Any], prop) -> None:
        values = (model.get([prop.local_key])[prop.local_key] for model in models)
        keys = list(dict.fromkeys(key for key in values if key is not None))

        single = prop.relation_type in SINGLE_KINDS
        related: List[Any] = []
        if keys:
            target = resolve_model(prop.relation)
            query = target.query().where(prop.foreign_key, keys, 'IN')
            related = query.limit(query.MAX_LIMIT).execute()

        index: Dict[Any, Any] = {}
        for model in related:
            value = model.get([prop.foreign_key])[prop.foreign_key]
            if single:
                index.setdefault(value, model)
            else:
                index.setdefault(value, []).append(model)

        for model in models:
            key = model.get([prop.local_key])[prop.local_key]
            if single:
                model.set_relation(prop.name, index.get(key))
            else:
                model.set_relation_collection(prop.name, list(index.get(key, [])))


__all__ = ['Hydrator']
