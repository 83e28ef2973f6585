"""
Model Events - lifecycle event names, the event object handed to listeners
and the outcome of a dispatch.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class EventName(str, Enum):
    """Lifecycle events dispatched by models"""
    CREATING = "model.creating"
    CREATED = "model.created"
    UPDATING = "model.updating"
    UPDATED = "model.updated"
    DELETING = "model.deleting"
    DELETED = "model.deleted"


class ModelEvent:
    """
    Event handed to listeners.

    A listener cancels the operation by calling ``stop_propagation()``,
    by returning ``False`` or by raising ``ListenerException``.
    """

    def __init__(self, model: Any, name: EventName):
        self.model = model
        self.name = EventName(name)
        self.occurred_at = datetime.now()
        self._stopped = False
        self.reason: Optional[str] = None

    def stop_propagation(self, reason: Optional[str] = None) -> None:
        self._stopped = True
        if reason and self.reason is None:
            self.reason = reason

    def is_propagation_stopped(self) -> bool:
        return self._stopped

    def __repr__(self) -> str:
        return f"ModelEvent({self.name.value}, {self.model!r}, stopped={self._stopped})"


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of dispatching an event: continue, or stopped with a reason"""
    event: EventName
    stopped: bool = False
    reason: Optional[str] = None
    listeners_called: int = 0

    @property
    def should_continue(self) -> bool:
        return not self.stopped

    def __bool__(self) -> bool:
        return not self.stopped

    @classmethod
    def proceed(cls, event: EventName, listeners_called: int = 0) -> 'DispatchOutcome':
        return cls(event=event, listeners_called=listeners_called)

    @classmethod
    def stop(cls, event: EventName, reason: Optional[str],
             listeners_called: int = 0) -> 'DispatchOutcome':
        return cls(event=event, stopped=True, reason=reason or "stopped by listener",
                   listeners_called=listeners_called)


__all__ = ['EventName', 'ModelEvent', 'DispatchOutcome']
