"""The local model holds the key of a single foreign model."""

from typing import Any, Dict, Optional

from ..schema.property import RelationKind
from .base import Relation


class BelongsTo(Relation):
    kind = RelationKind.BELONGS_TO

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
        model.save_or_fail()
        return self.attach(model)

    def create(self, values: Optional[Dict[str, Any]] = None):
        model = self.foreign_model()
        model.create_or_fail(values or {})
        return self.attach(model)

    def attach(self, model):
        self.local_model[self.local_key] = model.get([self.foreign_key])[self.foreign_key]
        self.local_model.save_or_fail()
        self.empty = False
        return model

    def detach(self, model=None):
        self.local_model[self.local_key] = None
        self.local_model.save_or_fail()
        self.empty = True
        return self.local_model


__all__ = ['BelongsTo']
