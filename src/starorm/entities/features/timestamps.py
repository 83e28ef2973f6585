"""Automatic ``created_at`` / ``updated_at`` stamping."""

import time

from ...events.dispatcher import SYSTEM_PRIORITY
from ...events.model_event import EventName
from ...schema.property import Mutability
from ...schema.types import PropertyType
from .base import ModelFeature

TIMESTAMP_RULES = 'timestamp|db_timestamp'


class AutoTimestamps(ModelFeature):
    def properties(self, model_class):
        return {
            'created_at': {
                'type': PropertyType.DATE,
                'rules': TIMESTAMP_RULES,
                'mutable': Mutability.MUTABLE_CREATE_ONLY,
                'null': True,
            },
            'updated_at': {
                'type': PropertyType.DATE,
                'rules': TIMESTAMP_RULES,
                'null': True,
            },
        }

    def install(self, model_class, dispatcher):
        dispatcher.add_listener(EventName.CREATING, self.stamp_created, SYSTEM_PRIORITY)
        dispatcher.add_listener(EventName.UPDATING, self.stamp_updated, SYSTEM_PRIORITY)

    @staticmethod
    def stamp_created(event):
        now = int(time.time())
        model = event.model
        if 'created_at' not in model.staged_values():
            model['created_at'] = now
        model['updated_at'] = now

    @staticmethod
    def stamp_updated(event):
        event.model['updated_at'] = int(time.time())


__all__ = ['AutoTimestamps']
