"""
Validation - rule pipeline, error stack and message translation.
"""

from .rules import ValueHolder, ValidationRule, register_rule, get_rule, has_rule
from .validator import Validator, validate_property, parse_rules
from .errors import ValidationError, ErrorStack
from .translator import (
    Translator, TranslatorInterface, get_translator, set_translator, reset_translator,
)
from .encryption import encrypt_value, decrypt_value, hash_password, verify_password

__all__ = [
    'ValueHolder',
    'ValidationRule',
    'register_rule',
    'get_rule',
    'has_rule',
    'Validator',
    'validate_property',
    'parse_rules',
    'ValidationError',
    'ErrorStack',
    'Translator',
    'TranslatorInterface',
    'get_translator',
    'set_translator',
    'reset_translator',
    'encrypt_value',
    'decrypt_value',
    'hash_password',
    'verify_password',
]
