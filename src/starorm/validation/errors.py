"""
Error Stack - accumulated, field scoped validation errors for one model.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from .translator import TranslatorInterface, get_translator, phrase_key


@dataclass
class ValidationError:
    """Represents a validation error"""
    code: str
    message: str
    field: Optional[str] = None
    field_name: Optional[str] = None
    params: Dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'message': self.message,
            'field': self.field,
            'field_name': self.field_name,
            'params': dict(self.params),
        }


class ErrorStack:
    """
    Ordered collection of ``ValidationError`` objects.

    ``add()`` takes an error code (``required``), a phrase key
    (``starorm.validation.required``) or a plain message, and renders it
    through the translator when it is added.
    """

    def __init__(self, translator: Optional[TranslatorInterface] = None,
                 locale: Optional[str] = None):
        self._translator = translator
        self.locale = locale
        self._errors: List[ValidationError] = []

    @property
    def translator(self) -> TranslatorInterface:
        return self._translator or get_translator()

    def add(self, error: str, params: Optional[Dict[str, Any]] = None) -> 'ErrorStack':
        params = dict(params or {})
        message = self.translator.translate(phrase_key(error), params, self.locale)
        self._errors.append(ValidationError(
            code=error,
            message=message,
            field=params.get('field'),
            field_name=params.get('field_name'),
            params=params,
        ))
        return self

    def errors(self) -> List[ValidationError]:
        return list(self._errors)

    def all(self) -> List[str]:
        """All error messages, in the order they were added"""
        return [error.message for error in self._errors]

    def find(self, field_name: str) -> List[ValidationError]:
        return [error for error in self._errors if error.field == field_name]

    def has(self, field_name: str) -> bool:
        return any(error.field == field_name for error in self._errors)

    def codes(self) -> List[str]:
        return [error.code for error in self._errors]

    def clear(self) -> 'ErrorStack':
        self._errors = []
        return self

    def count(self) -> int:
        return len(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[ValidationError]:
        return iter(list(self._errors))

    def __str__(self) -> str:
        return ' '.join(self.all())

    def __repr__(self) -> str:
        return f"ErrorStack({self.codes()})"


__all__ = ['ValidationError', 'ErrorStack']
