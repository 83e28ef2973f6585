"""
Polymorphic relation: the local model stores a ``(type, id)`` pair and the
type name is mapped to a model class.
"""

from typing import Any, Dict, Optional

from ..exceptions import ModelException
from ..schema.property import RelationKind
from ..schema.registry import resolve_model
from .base import Relation


class Polymorphic(Relation):
    kind = RelationKind.POLYMORPHIC

    def __init__(self, local_model: Any, local_type_key: str, local_id_key: str,
                 model_map: Dict[str, Any], foreign_key: str = 'id'):
        self.local_model = local_model
        self.local_type_key = local_type_key
        self.local_key = local_id_key
        self.model_map = {name: resolve_model(target) for name, target in model_map.items()}
        self.foreign_key = foreign_key
        self.empty = False

        type_name = local_model.get([local_type_key])[local_type_key]
        self.foreign_model = self.model_map.get(type_name) if type_name is not None else None
        if self.foreign_model is None:
            self.empty = True
            self.query = None
        else:
            self.query = self.init_query(self.foreign_model.query())

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

    def type_name(self, model: Any) -> str:
        for name, model_class in self.model_map.items():
            if isinstance(model, model_class):
                return name
        raise ModelException(f"{type(model).__name__} is not a valid target of this polymorphic relation")

    def save(self, model):
        model.save_or_fail()
        return self.attach(model)

    def create(self, values: Optional[Dict[str, Any]] = None):
        if self.foreign_model is None:
            raise ModelException("Cannot create a polymorphic related model before its type is known")
        model = self.foreign_model()
        model.create_or_fail(values or {})
        return self.attach(model)

    def attach(self, model):
        self.local_model[self.local_type_key] = self.type_name(model)
        self.local_model[self.local_key] = model.get([self.foreign_key])[self.foreign_key]
        self.local_model.save_or_fail()
        self.foreign_model = type(model)
        self.empty = False
        return model

    def detach(self, model=None):
        self.local_model[self.local_type_key] = None
        self.local_model[self.local_key] = None
        self.local_model.save_or_fail()
        self.empty = True
        return self.local_model

    def __repr__(self) -> str:
        return (f"Polymorphic({self.local_model.model_name()}.{self.local_type_key}/{self.local_key} -> "
                f"{sorted(self.model_map)})")


__all__ = ['Polymorphic']
