"""
Many-to-many relation through a pivot (join) table.

The pivot table holds ``local_key`` (the local model's id) and
``foreign_key`` (the foreign model's id). Related models are found by joining
the pivot table onto the foreign table and filtering on the local id.
"""

from typing import Any, Dict, Iterable, List, Optional

from ..schema.property import RelationKind
from .base import Relation
from .pivot import pivot_model


class BelongsToMany(Relation):
    kind = RelationKind.BELONGS_TO_MANY

    def __init__(self, local_model: Any, local_key: str, tablename: str,
                 foreign_model: Any, foreign_key: str):
        self.tablename = tablename
        self.pivot_class = pivot_model(tablename, local_key, foreign_key)
        super().__init__(local_model, local_key, foreign_model, foreign_key)

    def local_id(self) -> Any:
        return self.local_model.id()

    def init_query(self, query):
        local_id = self.local_id()
        if local_id is None:
            self.empty = True
        id_name = self.foreign_model.definition().ids[0]
        query.join(self.pivot_class, id_name, self.foreign_key)
        query.where(f"{self.tablename}.{self.local_key}", local_id)
        return query

    def get_results(self) -> List[Any]:
        if self.empty:
            return []
        query = self.query.clone()
        return query.limit(query.MAX_LIMIT).execute()

    def save(self, model):
        model.save_or_fail()
        return self.attach(model)

    def create(self, values: Optional[Dict[str, Any]] = None):
        model = self.foreign_model()
        model.create_or_fail(values or {})
        return self.attach(model)

    def attach(self, model):
        pivot = self.pivot_class()
        pivot.create_or_fail({self.local_key: self.local_id(), self.foreign_key: model.id()})
        model.pivot = pivot
        return model

    def detach(self, model=None):
        if model is None:
            raise ValueError("BelongsToMany.detach() needs the model to detach")
        self.pivot_class.query().where({
            self.local_key: self.local_id(),
            self.foreign_key: model.id(),
        }).delete()
        model.pivot = None
        return model

    def sync(self, ids: Iterable[Any]) -> int:
        """Remove pivot rows linking the local model to ids not in ``ids``"""
        ids = list(ids)
        query = self.pivot_class.query().where(self.local_key, self.local_id())
        if ids:
            query.where(self.foreign_key, ids, 'NOT IN')
        return query.delete()


__all__ = ['BelongsToMany']
