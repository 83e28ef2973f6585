"""
Soft deletion: ``delete()`` stamps ``deleted_at`` instead of removing the row,
the type's default query skips stamped rows and ``restore()`` clears the stamp.
"""

import logging
import time

from ...schema.types import PropertyType
from ...validation.rules import ValueHolder
from ...validation.validator import validate_property
from .base import ModelFeature
from .timestamps import TIMESTAMP_RULES

logger = logging.getLogger(__name__)


class SoftDelete(ModelFeature):
    column = 'deleted_at'

    def properties(self, model_class):
        return {
            self.column: {
                'type': PropertyType.DATE,
                'rules': TIMESTAMP_RULES,
                'null': True,
            },
        }

    def scope_query(self, query):
        return query.where(self.column, None)

    def perform_delete(self, model):
        prop = model.definition()[self.column]
        holder = ValueHolder(int(time.time()))
        if not validate_property(model, prop, holder, model.errors):
            return False
        if not model.get_driver().update_model(model, {self.column: holder.value}):
            return False
        model.hydrate_value(self.column, holder.value)
        logger.debug(f"Soft deleted {model.model_name()} {model.id()}")
        return True

    def is_deleted(self, model):
        return model.get([self.column])[self.column] is not None

    def stage_restore(self, model):
        if not model.has_id() or not self.is_deleted(model):
            return False
        model[self.column] = None
        return True


__all__ = ['SoftDelete']
