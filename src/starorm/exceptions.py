"""
StarORM Exceptions

🚨 Error Channels:
Validation problems are reported on the model's error stack and surface as
``False`` return values. Everything in this module is raised instead: misuse
of the API, misconfigured definitions and storage failures.
"""

from typing import Any, Dict, Optional


class ModelException(Exception):
    """Base exception for model lifecycle errors"""
    pass


class DefinitionError(ModelException):
    """Raised when a model definition cannot be built"""
    pass


class MassAssignmentException(ModelException):
    """Raised when a value is mass assigned to a property that does not allow it"""
    pass


class ModelNotFoundException(ModelException):
    """Raised by the *_or_fail finders when nothing matches"""
    pass


class DriverMissingException(ModelException):
    """Raised when a model needs storage but no driver was registered"""
    pass


class DriverException(ModelException):
    """
    Raised when the storage backend fails.

    Carries the original error as ``cause`` and a short description of what
    the driver was doing as ``operation``.
    """

    def __init__(self, message: str, operation: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class ListenerException(ModelException):
    """
    Raised by an event listener to cancel the operation.

    The message is added to the model's errors with the given context.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


__all__ = [
    'ModelException',
    'DefinitionError',
    'MassAssignmentException',
    'ModelNotFoundException',
    'DriverMissingException',
    'DriverException',
    'ListenerException',
]
