"""Many foreign models hold the key of the local model."""

from typing import Any, Iterable, List

from ..schema.property import RelationKind
from .has_one import HasOne


class HasMany(HasOne):
    kind = RelationKind.HAS_MANY

    def init_query(self, query):
        local_value = self.local_value()
        if local_value is None:
            self.empty = True
        query.where(self.foreign_key, local_value)
        return query

    def get_results(self) -> List[Any]:
        if self.empty:
            return []
        query = self.query.clone()
        return query.limit(query.MAX_LIMIT).execute()

    def detach(self, model=None):
        if model is None:
            raise ValueError("HasMany.detach() needs the model to detach")
        model[self.foreign_key] = None
        model.save_or_fail()
        return model

    def sync(self, ids: Iterable[Any]) -> int:
        """Delete the related models whose ids are not in ``ids``"""
        if self.empty:
            return 0
        ids = list(ids)
        query = self.foreign_model.query().where(self.foreign_key, self.local_value())
        if ids:
            id_name = self.foreign_model.definition().ids[0]
            query.where(id_name, ids, 'NOT IN')
        return query.delete()


__all__ = ['HasMany']
