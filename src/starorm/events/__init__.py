"""
Events - per-type lifecycle listeners with priorities and cancellation.
"""

from .model_event import EventName, ModelEvent, DispatchOutcome
from .dispatcher import EventDispatcher, EventManager, Subscription, SYSTEM_PRIORITY, event_manager

__all__ = [
    'EventName',
    'ModelEvent',
    'DispatchOutcome',
    'EventDispatcher',
    'EventManager',
    'Subscription',
    'SYSTEM_PRIORITY',
    'event_manager',
]
