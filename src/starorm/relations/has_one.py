"""A single foreign model holds the key of the local model."""

from typing import Any, Dict, Optional

from ..schema.property import RelationKind
from .base import Relation


class HasOne(Relation):
    kind = RelationKind.HAS_ONE

    def init_query(self, query):
        local_value = self.local_value()
        if local_value is None:
            self.empty = True
        query.where(self.foreign_key, local_value).limit(1)
        return query

    def get_results(self):
        if self.empty:
            return None
        return self.query.first()

    def save(self, model):
        model[self.foreign_key] = self.local_value()
        model.save_or_fail()
        return model

    def create(self, values: Optional[Dict[str, Any]] = None):
        model = self.foreign_model()
        values = dict(values or {})
        values[self.foreign_key] = self.local_value()
        model.create_or_fail(values)
        return model

    def attach(self, model):
        return self.save(model)

    def detach(self, model=None):
        model = model or self.get_results()
        if model is not None:
            model[self.foreign_key] = None
            model.save_or_fail()
        return model


__all__ = ['HasOne']
