"""
Access Control - Permission Checks on Writes

🔐 ACL Listener Strategy:
Before a model is created, updated or deleted the current requester must hold
the ``create``, ``edit`` or ``delete`` permission on it. Failing the check adds
a ``no_permission`` error and cancels the operation.

Permissions are decided by a policy callable ``policy(model, permission,
requester)`` or, when none is given, by the model's own
``has_permission(permission, requester)`` method. Answers are cached on the
instance per (permission, requester type, requester id).
"""

import logging
from typing import Any, Callable, Hashable, Optional, Tuple

from ...events.dispatcher import SYSTEM_PRIORITY
from ...events.model_event import EventName
from ...exceptions import ModelException
from ..requester import get_requester
from .base import ModelFeature

logger = logging.getLogger(__name__)

PERMISSIONS = {
    EventName.CREATING: 'create',
    EventName.UPDATING: 'edit',
    EventName.DELETING: 'delete',
}

Policy = Callable[[Any, str, Any], bool]


def requester_key(requester: Any) -> Tuple[Optional[str], Hashable]:
    if requester is None:
        return None, None
    identity = requester.id() if callable(getattr(requester, 'id', None)) else getattr(requester, 'id', None)
    if isinstance(identity, dict):
        identity = tuple(sorted(identity.items()))
    return type(requester).__name__, identity


class AccessControl(ModelFeature):
    def __init__(self, policy: Optional[Policy] = None):
        self.policy = policy

    def install(self, model_class, dispatcher):
        for event_name, permission in PERMISSIONS.items():
            dispatcher.add_listener(event_name, self._listener(permission), SYSTEM_PRIORITY)

    def _listener(self, permission: str):
        def check_permission(event):
            model = event.model
            if not self.can(model, permission, get_requester()):
                model.errors.add('no_permission')
                event.stop_propagation('no_permission')
        check_permission.__name__ = f"check_{permission}_permission"
        return check_permission

    def can(self, model: Any, permission: str, requester: Any) -> bool:
        state = model.feature_state(self)
        if state.get('skip'):
            return True

        cache = state.setdefault('permissions', {})
        key = (permission,) + requester_key(requester)
        if key in cache:
            return cache[key]

        if self.policy is not None:
            allowed = bool(self.policy(model, permission, requester))
        elif hasattr(model, 'has_permission'):
            allowed = bool(model.has_permission(permission, requester))
        else:
            raise ModelException(
                f"{model.model_name()} uses AccessControl without a policy or has_permission()")

        cache[key] = allowed
        if not allowed:
            logger.debug(f"{key[1]} {key[2]} lacks '{permission}' on {model!r}")
        return allowed

    def check_permission(self, model, permission, requester):
        return self.can(model, permission, requester)

    def grant_all(self, model: Any) -> None:
        model.feature_state(self)['skip'] = True

    def enforce(self, model: Any) -> None:
        model.feature_state(self)['skip'] = False

    def clear_cache(self, model: Any) -> None:
        model.feature_state(self).pop('permissions', None)


__all__ = ['AccessControl', 'PERMISSIONS', 'requester_key']
