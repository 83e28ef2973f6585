"""
Validator Pipeline

Runs an ordered chain of named rules over a single value. Chains are written
as ``"rule|rule:opt=val:opt2=val"`` strings or as lists whose entries are rule
strings, ``(name, options)`` pairs or bare callables. The first failing rule
stops the chain and its name is kept in ``failing_rule``.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import ErrorStack
from .rules import ValueHolder, get_rule

logger = logging.getLogger(__name__)

ParsedRule = Tuple[str, Dict[str, Any]]


def _parse_option_value(raw: str) -> Any:
    for convert in (int, float):
        try:
            return convert(raw)
        except ValueError:
            continue
    return raw


def parse_rule_string(text: str) -> ParsedRule:
    """``"string:min=5:max=10"`` -> ``("string", {"min": 5, "max": 10})``"""
    name, *parts = text.strip().split(':')
    options: Dict[str, Any] = {}
    for part in parts:
        key, sep, value = part.partition('=')
        options[key.strip()] = _parse_option_value(value.strip()) if sep else True
    return name.strip(), options


def parse_rules(rules: Any) -> List[ParsedRule]:
    """Normalize any supported rule chain form to ``[(name, options), ...]``"""
    if not rules:
        return []
    if isinstance(rules, str):
        return [parse_rule_string(part) for part in rules.split('|') if part.strip()]
    if callable(rules):
        return [('callable', {'fn': rules})]

    parsed: List[ParsedRule] = []
    for entry in rules:
        if isinstance(entry, str):
            parsed.extend(parse_rules(entry))
        elif callable(entry):
            parsed.append(('callable', {'fn': entry}))
        else:
            name, options = entry
            parsed.append((name, dict(options or {})))
    return parsed


class Validator:
    """
    Validates one value against a rule chain.

    Usage:
        validator = Validator("matching|string:min=5")
        holder = ValueHolder(["secret", "secret"])
        if not validator.validate(holder):
            print(validator.failing_rule)
    """

    def __init__(self, rules: Any):
        self.rules = parse_rules(rules)
        self.failing_rule: Optional[str] = None

    def validate(self, holder: ValueHolder, model: Any = None) -> bool:
        self.failing_rule = None
        for name, options in self.rules:
            if not get_rule(name).validate(holder, dict(options), model):
                self.failing_rule = name
                return False
        return True

    def check(self, value: Any, model: Any = None) -> Tuple[bool, Any]:
        """Validate a bare value, returning ``(passed, normalized value)``"""
        holder = ValueHolder(value)
        return self.validate(holder, model), holder.value


def validate_property(model: Any, prop: Any, holder: ValueHolder, errors: ErrorStack) -> bool:
    """
    Validate one property value of ``model``.

    ``None`` on a nullable property passes without running rules. Unique
    properties get the ``unique`` rule appended. On failure an error coded
    with the failing rule's name is added to ``errors``.
    """
    if holder.value is None and prop.null:
        return True

    rules = parse_rules(prop.rules)
    if prop.unique and not any(name == 'unique' for name, _ in rules):
        rules.append(('unique', {}))
    rules = [(name, {**options, 'column': options.get('column', prop.name)})
             if name == 'unique' else (name, options)
             for name, options in rules]
    if not rules:
        return True

    validator = Validator(rules)
    if validator.validate(holder, model):
        return True

    logger.debug(f"{prop.name} failed validation rule '{validator.failing_rule}'")
    errors.add(validator.failing_rule, {'field': prop.name, 'field_name': prop.get_title()})
    return False


__all__ = [
    'Validator',
    'validate_property',
    'parse_rules',
    'parse_rule_string',
]
