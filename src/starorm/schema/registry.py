"""Model class registry, so relation targets can be named before they exist."""

from typing import Any, Dict, Optional

from ..exceptions import ModelException

_models: Dict[str, type] = {}


def register_model(model_class: type) -> None:
    _models[model_class.__name__] = model_class
    _models[f"{model_class.__module__}.{model_class.__qualname__}"] = model_class


def unregister_model(model_class: type) -> None:
    for key in [key for key, value in _models.items() if value is model_class]:
        del _models[key]


def resolve_model(target: Any) -> type:
    """Return the model class for a class or a (dotted) class name"""
    if isinstance(target, type):
        return target
    model_class: Optional[type] = _models.get(target)
    if model_class is None:
        raise ModelException(f"Unknown model class: {target}")
    return model_class


__all__ = ['register_model', 'unregister_model', 'resolve_model']
