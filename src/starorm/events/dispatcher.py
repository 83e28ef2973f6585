"""
Event Dispatcher - Prioritized, Cancellable Lifecycle Listeners

🎯 Per-Type Event Registry:
Every model type owns one ``EventDispatcher``. Listeners are called in
descending priority, in registration order within the same priority, and any
of them can stop the operation. Built-in behaviours (timestamps, soft delete,
permission checks) are ordinary listeners registered at ``SYSTEM_PRIORITY``
when a type's dispatcher is first created, so resetting a dispatcher and
touching the type again reinstalls them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from ..exceptions import ListenerException
from .model_event import DispatchOutcome, EventName, ModelEvent

logger = logging.getLogger(__name__)

SYSTEM_PRIORITY = 1000

Listener = Callable[[ModelEvent], Any]


@dataclass
class Subscription:
    """A registered listener"""
    listener: Listener
    priority: int
    sequence: int


class EventDispatcher:
    """Listener registry for one model type"""

    def __init__(self):
        self._subscriptions: Dict[EventName, List[Subscription]] = {}
        self._sequence = 0
        self._metrics = {
            "events_dispatched": 0,
            "events_stopped": 0,
            "listeners_called": 0,
        }

    def add_listener(self, event_name: EventName, listener: Listener, priority: int = 0) -> None:
        event_name = EventName(event_name)
        self._sequence += 1
        subscriptions = self._subscriptions.setdefault(event_name, [])
        subscriptions.append(Subscription(listener, priority, self._sequence))
        subscriptions.sort(key=lambda s: (-s.priority, s.sequence))

    def remove_listener(self, event_name: EventName, listener: Listener) -> bool:
        subscriptions = self._subscriptions.get(EventName(event_name), [])
        for subscription in subscriptions:
            if subscription.listener == listener:
                subscriptions.remove(subscription)
                return True
        return False

    def get_listeners(self, event_name: EventName) -> List[Listener]:
        return [s.listener for s in self._subscriptions.get(EventName(event_name), [])]

    def has_listeners(self, event_name: EventName) -> bool:
        return bool(self._subscriptions.get(EventName(event_name)))

    def dispatch(self, event: ModelEvent) -> DispatchOutcome:
        self._metrics["events_dispatched"] += 1
        called = 0

        for subscription in list(self._subscriptions.get(event.name, [])):
            called += 1
            try:
                result = subscription.listener(event)
            except ListenerException as e:
                errors = getattr(event.model, 'errors', None)
                if errors is not None:
                    errors.add(str(e), e.context)
                event.stop_propagation(str(e))
                result = None

            if result is False:
                event.stop_propagation(f"{getattr(subscription.listener, '__name__', 'listener')} returned False")
            if event.is_propagation_stopped():
                break

        self._metrics["listeners_called"] += called
        if event.is_propagation_stopped():
            self._metrics["events_stopped"] += 1
            logger.debug(f"{event.name.value} stopped for {event.model!r}: {event.reason}")
            return DispatchOutcome.stop(event.name, event.reason, called)
        return DispatchOutcome.proceed(event.name, called)

    def get_metrics(self) -> Dict[str, int]:
        return self._metrics.copy()


class EventManager:
    """
    Process-wide registry of per-type dispatchers.

    When a dispatcher is created for a type, the type's
    ``install_listeners(dispatcher)`` hook is called if it has one.
    """

    def __init__(self):
        self._dispatchers: Dict[type, EventDispatcher] = {}

    def get_dispatcher(self, model_class: type) -> EventDispatcher:
        dispatcher = self._dispatchers.get(model_class)
        if dispatcher is None:
            dispatcher = EventDispatcher()
            self._dispatchers[model_class] = dispatcher
            install = getattr(model_class, 'install_listeners', None)
            if install is not None:
                install(dispatcher)
        return dispatcher

    def listen(self, model_class: type, event_name: EventName, listener: Listener,
               priority: int = 0) -> None:
        self.get_dispatcher(model_class).add_listener(event_name, listener, priority)

    def dispatch(self, model: Any, event_name: EventName) -> DispatchOutcome:
        return self.get_dispatcher(type(model)).dispatch(ModelEvent(model, event_name))

    def reset(self, model_class: Optional[Type] = None) -> None:
        if model_class is None:
            self._dispatchers.clear()
        else:
            self._dispatchers.pop(model_class, None)


event_manager = EventManager()


__all__ = [
    'EventDispatcher',
    'EventManager',
    'Subscription',
    'SYSTEM_PRIORITY',
    'event_manager',
]
