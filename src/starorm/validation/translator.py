"""
Translator - Locale Aware Error Messages

🌐 Phrase Lookup:
Errors are stored as phrase keys plus parameters and rendered through a
translator. Phrases are looked up in the requested locale's catalogue
(loaded from ``<data_dir>/<locale>.json``), then in the caller's fallback,
then in the library's default English phrases. A phrase nobody knows is
returned as-is, which is how plain messages pass through untouched.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from ..infrastructure.configuration import get_config

logger = logging.getLogger(__name__)

PHRASE_PREFIX = "starorm.validation."

DEFAULT_PHRASES: Dict[str, str] = {
    "starorm.validation.failed": "{field_name} is invalid",
    "starorm.validation.required": "{field_name} is missing",
    "starorm.validation.unique": "The {field_name} you chose has already been taken. Please try a different {field_name}.",
    "starorm.validation.alpha": "{field_name} should only contain letters",
    "starorm.validation.alpha_numeric": "{field_name} should only contain letters and numbers",
    "starorm.validation.alpha_dash": "{field_name} should only contain letters, numbers, dashes and underscores",
    "starorm.validation.boolean": "{field_name} must be yes or no",
    "starorm.validation.callable": "{field_name} is invalid",
    "starorm.validation.date": "{field_name} must be a date",
    "starorm.validation.email": "{field_name} must be a valid email address",
    "starorm.validation.encrypt": "{field_name} could not be encrypted",
    "starorm.validation.enum": "{field_name} must be one of the allowed values",
    "starorm.validation.ip": "{field_name} only allows an IP address",
    "starorm.validation.matching": "{field_name} must match",
    "starorm.validation.numeric": "{field_name} should only contain numbers",
    "starorm.validation.password": "{field_name} must meet the password requirements",
    "starorm.validation.range": "{field_name} must be within the allowed range",
    "starorm.validation.string": "{field_name} must be a string of the proper length",
    "starorm.validation.time_zone": "{field_name} only allows valid time zones",
    "starorm.validation.timestamp": "{field_name} only allows timestamps",
    "starorm.validation.db_timestamp": "{field_name} only allows timestamps",
    "starorm.validation.url": "{field_name} only allows valid URLs",
    "starorm.validation.no_permission": "You do not have permission to do that",
}

_PARAM_PATTERN = re.compile(r'\{(\w+)\}')


def phrase_key(code: str) -> str:
    """Phrase key for an error code; dotted codes are already keys"""
    if '.' in code or ' ' in code:
        return code
    return PHRASE_PREFIX + code


class TranslatorInterface(ABC):
    """Contract for message translators"""

    @abstractmethod
    def translate(self, phrase: str, params: Optional[Dict[str, Any]] = None,
                  locale: Optional[str] = None, fallback: Optional[str] = None) -> str:
        """Render ``phrase`` in ``locale`` with ``params`` substituted"""
        pass


class Translator(TranslatorInterface):
    """Catalogue backed translator with JSON locale files"""

    def __init__(self, locale: Optional[str] = None, data_dir: Optional[str] = None,
                 phrases: Optional[Dict[str, Dict[str, str]]] = None):
        settings = get_config().validation
        self.locale = locale or settings.locale
        self.data_dir = Path(data_dir or settings.locale_data_dir) if (data_dir or settings.locale_data_dir) else None
        self._catalogues: Dict[str, Dict[str, str]] = {}
        for locale_name, catalogue in (phrases or {}).items():
            self.add_phrases(locale_name, catalogue)

    def add_phrases(self, locale: str, phrases: Dict[str, str]) -> None:
        self._load(locale).update(phrases)

    def translate(self, phrase: str, params: Optional[Dict[str, Any]] = None,
                  locale: Optional[str] = None, fallback: Optional[str] = None) -> str:
        catalogue = self._load(locale or self.locale)
        text = catalogue.get(phrase)
        if text is None:
            text = fallback
        if text is None:
            text = DEFAULT_PHRASES.get(phrase)
        if text is None:
            return phrase
        return self.render(text, params or {})

    @staticmethod
    def render(text: str, params: Dict[str, Any]) -> str:
        def replace(match: 're.Match[str]') -> str:
            key = match.group(1)
            return str(params[key]) if key in params else match.group(0)
        return _PARAM_PATTERN.sub(replace, text)

    def _load(self, locale: str) -> Dict[str, str]:
        if locale in self._catalogues:
            return self._catalogues[locale]

        catalogue: Dict[str, str] = {}
        if self.data_dir is not None:
            path = self.data_dir / f"{locale}.json"
            if path.exists():
                with path.open(encoding='utf-8') as f:
                    data = json.load(f)
                catalogue.update(data.get('phrases', data))
                logger.debug(f"Loaded {len(catalogue)} phrases for locale {locale} from {path}")
        self._catalogues[locale] = catalogue
        return catalogue


_translator: Optional[TranslatorInterface] = None


def get_translator() -> TranslatorInterface:
    global _translator
    if _translator is None:
        _translator = Translator()
    return _translator


def set_translator(translator: TranslatorInterface) -> None:
    global _translator
    _translator = translator


def reset_translator() -> None:
    global _translator
    _translator = None


__all__ = [
    'TranslatorInterface',
    'Translator',
    'DEFAULT_PHRASES',
    'phrase_key',
    'get_translator',
    'set_translator',
    'reset_translator',
]
