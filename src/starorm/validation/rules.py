"""
Validation Rules - Named Value Checks and Normalizers

✅ Rule Catalogue:
Each rule receives a mutable ``ValueHolder``, its parsed options and the model
being validated (which may be ``None``). A rule returns ``True`` when the
value passes and may rewrite ``holder.value`` to normalize it (trimming an
email, hashing a password, formatting a timestamp).

Rules are looked up by name in a registry; applications register their own
with ``register_rule()``.
"""

import ipaddress
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..infrastructure.configuration import get_config
from ..schema.types import to_boolean, to_date
from .encryption import encrypt_value, hash_password

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_EMAIL_ADAPTER = TypeAdapter(EmailStr)
_ALPHA_PATTERN = re.compile(r'^[A-Za-z]*$')
_ALPHA_NUMERIC_PATTERN = re.compile(r'^[A-Za-z0-9]*$')
_ALPHA_DASH_PATTERN = re.compile(r'^[A-Za-z0-9_-]*$')


class ValueHolder:
    """Mutable box around the value being validated"""

    __slots__ = ('value',)

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"ValueHolder({self.value!r})"


class ValidationRule(ABC):
    """Abstract base class for validation rules"""

    @abstractmethod
    def validate(self, holder: ValueHolder, options: Dict[str, Any], model: Any) -> bool:
        """Return True when ``holder.value`` passes"""
        pass


def _is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple, dict, set)) and len(value) == 0:
        return True
    return False


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


class Required(ValidationRule):
    def validate(self, holder, options, model):
        return not _is_empty(holder.value)


class String(ValidationRule):
    """Checks the value is a string between ``min`` and ``max`` characters"""

    def validate(self, holder, options, model):
        if not isinstance(holder.value, str):
            return False
        length = len(holder.value)
        if length < int(options.get('min', 0)):
            return False
        if 'max' in options and length > int(options['max']):
            return False
        return True


class _PatternRule(ValidationRule):
    pattern: 're.Pattern[str]'

    def validate(self, holder, options, model):
        if not isinstance(holder.value, str):
            return False
        return bool(self.pattern.match(holder.value)) and len(holder.value) >= int(options.get('min', 0))


class Alpha(_PatternRule):
    pattern = _ALPHA_PATTERN


class AlphaNumeric(_PatternRule):
    pattern = _ALPHA_NUMERIC_PATTERN


class AlphaDash(_PatternRule):
    pattern = _ALPHA_DASH_PATTERN


class Boolean(ValidationRule):
    """Normalizes the value to a bool; always passes"""

    def validate(self, holder, options, model):
        holder.value = to_boolean(holder.value)
        return True


class Email(ValidationRule):
    def validate(self, holder, options, model):
        if not isinstance(holder.value, str):
            return False
        holder.value = holder.value.strip().lower()
        try:
            holder.value = _EMAIL_ADAPTER.validate_python(holder.value).lower()
        except PydanticValidationError:
            return False
        return True


class EnumChoice(ValidationRule):
    """Checks the value is one of ``choices`` (a list or comma separated string)"""

    def validate(self, holder, options, model):
        choices = options.get('choices', [])
        if isinstance(choices, str):
            choices = [choice.strip() for choice in choices.split(',')]
        elif isinstance(choices, type) and issubclass(choices, Enum):
            choices = [member.value for member in choices]
        value = holder.value.value if isinstance(holder.value, Enum) else holder.value
        return value in choices


class Date(ValidationRule):
    def validate(self, holder, options, model):
        try:
            to_date(holder.value)
        except (TypeError, ValueError):
            return False
        return True


class IpAddress(ValidationRule):
    def validate(self, holder, options, model):
        try:
            ipaddress.ip_address(str(holder.value))
        except ValueError:
            return False
        return True


class Matching(ValidationRule):
    """
    Checks every element of a list is equal, e.g. a password and its
    confirmation, and collapses the list to that single value.
    """

    def validate(self, holder, options, model):
        if not isinstance(holder.value, (list, tuple)):
            return True
        values = list(holder.value)
        if not values:
            return False
        first = values[0]
        if any(value != first for value in values[1:]):
            return False
        holder.value = first
        return True


class Numeric(ValidationRule):
    """Checks the value is a number, optionally of ``type`` int or float"""

    def validate(self, holder, options, model):
        value_type = options.get('type')
        if value_type in ('int', 'integer'):
            return isinstance(holder.value, int) and not isinstance(holder.value, bool)
        if value_type in ('float', 'double'):
            return isinstance(holder.value, float)
        return _is_number(holder.value)


class Password(ValidationRule):
    """Checks the minimum length and replaces the value with its hash"""

    def validate(self, holder, options, model):
        if not isinstance(holder.value, str):
            return False
        minimum = int(options.get('min', get_config().validation.password_min_length))
        if len(holder.value) < minimum:
            return False
        holder.value = hash_password(holder.value)
        return True


class Range(ValidationRule):
    def validate(self, holder, options, model):
        if not _is_number(holder.value):
            return False
        value = float(holder.value)
        if 'min' in options and value < float(options['min']):
            return False
        if 'max' in options and value > float(options['max']):
            return False
        return True


class TimeZone(ValidationRule):
    def validate(self, holder, options, model):
        if not isinstance(holder.value, str) or not holder.value:
            return False
        try:
            ZoneInfo(holder.value)
        except (ZoneInfoNotFoundError, ValueError):
            return False
        return True


class Timestamp(ValidationRule):
    """Converts dates and date strings to a UNIX timestamp"""

    def validate(self, holder, options, model):
        try:
            holder.value = to_date(holder.value)
        except (TypeError, ValueError):
            return False
        return True


class DbTimestamp(ValidationRule):
    """Formats a UNIX timestamp as a storage datetime string (UTC)"""

    def validate(self, holder, options, model):
        if isinstance(holder.value, int) and not isinstance(holder.value, bool):
            moment = datetime.fromtimestamp(holder.value, tz=timezone.utc)
            holder.value = moment.strftime(DB_TIMESTAMP_FORMAT)
        return True


class Url(ValidationRule):
    def validate(self, holder, options, model):
        if not isinstance(holder.value, str):
            return False
        parsed = urlparse(holder.value)
        return bool(parsed.scheme) and bool(parsed.netloc)


class Unique(ValidationRule):
    """
    Checks no other stored model has the same value in ``column``.

    Skipped when the model's value for the column has not changed.
    """

    def validate(self, holder, options, model):
        if model is None:
            return True
        column = options.get('column')
        if not model.dirty(column, True):
            return True
        return model.__class__.query().where(column, holder.value).count() == 0


class CallableRule(ValidationRule):
    """Delegates to ``fn(value, options, model)``"""

    def validate(self, holder, options, model):
        fn: Optional[Callable[..., bool]] = options.get('fn')
        if fn is None:
            return False
        return bool(fn(holder.value, options, model))


class Encrypt(ValidationRule):
    def validate(self, holder, options, model):
        holder.value = encrypt_value(holder.value, options.get('key'))
        return True


_rules: Dict[str, ValidationRule] = {}


def register_rule(name: str, rule: ValidationRule) -> None:
    _rules[name] = rule


def get_rule(name: str) -> ValidationRule:
    try:
        return _rules[name]
    except KeyError:
        raise ValueError(f"Unknown validation rule: {name}") from None


def has_rule(name: str) -> bool:
    return name in _rules


for _name, _rule in {
    'required': Required(),
    'string': String(),
    'alpha': Alpha(),
    'alpha_numeric': AlphaNumeric(),
    'alpha_dash': AlphaDash(),
    'boolean': Boolean(),
    'email': Email(),
    'enum': EnumChoice(),
    'date': Date(),
    'ip': IpAddress(),
    'matching': Matching(),
    'numeric': Numeric(),
    'password': Password(),
    'range': Range(),
    'time_zone': TimeZone(),
    'timestamp': Timestamp(),
    'db_timestamp': DbTimestamp(),
    'url': Url(),
    'unique': Unique(),
    'callable': CallableRule(),
    'encrypt': Encrypt(),
}.items():
    register_rule(_name, _rule)


__all__ = [
    'ValueHolder',
    'ValidationRule',
    'register_rule',
    'get_rule',
    'has_rule',
    'DB_TIMESTAMP_FORMAT',
]
