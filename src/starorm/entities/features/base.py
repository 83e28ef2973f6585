"""
Model Features - pluggable behaviours attached to a model type.

A feature can contribute properties to the type's definition, install event
listeners when the type's dispatcher is created, and hook into the loading,
refreshing and deleting of instances. Deletion, query scoping and permission
checks are strategies: ``Model`` asks each feature in turn and falls back to
its own behaviour when every feature answers ``None``.
"""

from typing import Any, Dict, Optional


class ModelFeature:
    """Base class for model features; every hook is a no-op by default"""

    def properties(self, model_class: type) -> Dict[str, Any]:
        """Property specs added to the definition of ``model_class``"""
        return {}

    def install(self, model_class: type, dispatcher: Any) -> None:
        """Register event listeners for ``model_class``"""
        pass

    def before_load(self, model: Any) -> Optional[Dict[str, Any]]:
        """Return stored values for ``model`` to skip the driver, or None"""
        return None

    def after_refresh(self, model: Any) -> None:
        pass

    def after_delete(self, model: Any) -> None:
        pass

    def after_clear(self, model: Any) -> None:
        pass

    # ----- strategies -----

    def scope_query(self, query: Any) -> Any:
        """Constrain the default query of the type"""
        return query

    def perform_delete(self, model: Any) -> Optional[bool]:
        """Delete ``model`` in place of the driver; None leaves it to the driver"""
        return None

    def is_deleted(self, model: Any) -> Optional[bool]:
        return None

    def stage_restore(self, model: Any) -> bool:
        """Stage the values that undo a delete; False when there is nothing to undo"""
        return False

    def check_permission(self, model: Any, permission: str, requester: Any) -> Optional[bool]:
        return None

    def grant_all(self, model: Any) -> None:
        pass

    def enforce(self, model: Any) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


__all__ = ['ModelFeature']
