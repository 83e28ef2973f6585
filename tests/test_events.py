"""
Event Bus Tests

Listener ordering, the three ways to cancel an operation, and the built-in
listeners installed by model features.
"""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from starorm import EventName, ListenerException, Model, SYSTEM_PRIORITY, event_manager
from starorm.entities.features import timestamps
from starorm.events import EventDispatcher, ModelEvent

from models import Garage, Person


class TestDispatcher:
    def test_priority_then_registration_order(self):
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.add_listener(EventName.CREATING, lambda e: calls.append('low'), priority=-5)
        dispatcher.add_listener(EventName.CREATING, lambda e: calls.append('first'))
        dispatcher.add_listener(EventName.CREATING, lambda e: calls.append('second'))
        dispatcher.add_listener(EventName.CREATING, lambda e: calls.append('high'), priority=10)

        outcome = dispatcher.dispatch(ModelEvent(Mock(), EventName.CREATING))
        assert calls == ['high', 'first', 'second', 'low']
        assert outcome.should_continue
        assert outcome.listeners_called == 4

    def test_returning_false_stops_later_listeners(self):
        dispatcher = EventDispatcher()
        later = Mock()
        dispatcher.add_listener(EventName.UPDATING, lambda e: False)
        dispatcher.add_listener(EventName.UPDATING, later)

        outcome = dispatcher.dispatch(ModelEvent(Mock(), EventName.UPDATING))
        assert not outcome
        assert outcome.stopped
        later.assert_not_called()

    def test_remove_listener(self):
        dispatcher = EventDispatcher()
        listener = Mock()
        dispatcher.add_listener(EventName.DELETED, listener)
        assert dispatcher.remove_listener(EventName.DELETED, listener)
        assert not dispatcher.has_listeners(EventName.DELETED)

    def test_metrics(self):
        dispatcher = EventDispatcher()
        dispatcher.add_listener(EventName.CREATED, lambda e: e.stop_propagation('no'))
        dispatcher.dispatch(ModelEvent(Mock(), EventName.CREATED))
        assert dispatcher.get_metrics() == {
            'events_dispatched': 1,
            'events_stopped': 1,
            'listeners_called': 1,
        }


class TestModelEvents:
    def test_lifecycle_order(self):
        calls = []
        for name in ('creating', 'created', 'updating', 'updated', 'deleting', 'deleted'):
            getattr(Person, name)(lambda event, name=name: calls.append(name))

        person = Person()
        person.create({'name': 'Jared'})
        person.set({'age': 20})
        person.delete()
        assert calls == ['creating', 'created', 'updating', 'updated', 'deleting', 'deleted']

    def test_saving_and_saved(self):
        saving, saved = Mock(), Mock()
        Person.saving(saving)
        Person.saved(saved)

        person = Person()
        person.create({'name': 'Jared'})
        person.set({'age': 20})
        assert saving.call_count == 2
        assert saved.call_count == 2

    def test_cancelled_create_skips_the_driver(self, driver):
        Person.creating(lambda event: event.stop_propagation('closed for the day'))

        person = Person()
        assert person.create({'name': 'Jared'}) is False
        assert person.persisted() is False
        assert driver.get_metrics()['creates'] == 0

    def test_listener_exception_becomes_an_error(self, driver):
        def reject(event):
            raise ListenerException('Name is reserved.', {'field': 'name'})

        Person.creating(reject)
        person = Person()
        assert person.create({'name': 'Admin'}) is False
        assert person.errors.all() == ['Name is reserved.']
        assert person.errors.has('name')
        assert driver.get_metrics()['creates'] == 0

    def test_listeners_can_stage_values(self):
        Person.creating(lambda event: event.model.set_values({'nickname': 'auto'}))
        person = Person()
        person.create({'name': 'Jared'})
        assert Person.find(person.id())['nickname'] == 'auto'

    def test_initialize_hook(self):
        class Ticket(Model):
            properties = {'code': {}}
            seen = []

            @classmethod
            def initialize(cls):
                cls.created(lambda event: cls.seen.append(event.model.id()))

        Ticket().create({'code': 'A1'})
        assert Ticket.seen == [1]


class TestTimestamps:
    def test_created_and_updated_at(self, monkeypatch):
        ticks = [1700000000, 1700000500]
        clock = SimpleNamespace(time=lambda: ticks.pop(0) if len(ticks) > 1 else ticks[0])
        monkeypatch.setattr(timestamps, 'time', clock)

        garage = Garage()
        assert garage.create({'size': 2})
        assert garage['created_at'] == 1700000000
        assert garage['updated_at'] == 1700000000

        assert garage.set({'size': 3})
        assert garage['created_at'] == 1700000000
        assert garage['updated_at'] == 1700000500

    def test_timestamps_are_stored_as_datetimes(self, driver):
        Garage().create_or_fail({'size': 2})
        row = driver.rows(Garage.tablename())[0]
        assert isinstance(row['created_at'], str)
        assert len(row['created_at']) == len('2024-01-01 00:00:00')

    def test_explicit_created_at_is_kept(self):
        garage = Garage()
        garage.create_or_fail({'created_at': 1600000000})
        assert garage['created_at'] == 1600000000

    def test_reset_reinstalls_system_listeners(self):
        dispatcher = event_manager.get_dispatcher(Garage)
        assert dispatcher.has_listeners(EventName.CREATING)
        event_manager.reset(Garage)
        assert event_manager.get_dispatcher(Garage) is not dispatcher
        assert event_manager.get_dispatcher(Garage).has_listeners(EventName.UPDATING)

    def test_system_listeners_run_before_user_listeners(self):
        seen = []
        Garage.creating(lambda event: seen.append(event.model.staged_values().get('updated_at')))
        Garage().create_or_fail({'size': 1})
        assert seen and seen[0] is not None
        assert SYSTEM_PRIORITY > 0
