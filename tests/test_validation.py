"""
Validation Tests

Rule chains, built-in rules, the error stack and message translation.
"""

import json

import pytest

from starorm import Validator, ValueHolder, register_rule
from starorm.validation import (
    ErrorStack, Translator, ValidationRule, decrypt_value, encrypt_value, hash_password,
    parse_rules, set_translator, verify_password,
)


class TestRuleParsing:
    def test_string_chain_with_options(self):
        assert parse_rules("required|string:min=5:max=10") == [
            ('required', {}),
            ('string', {'min': 5, 'max': 10}),
        ]

    def test_mixed_list(self):
        check = lambda value, options, model: True
        parsed = parse_rules(['email', ('range', {'min': 1}), check])
        assert parsed[0] == ('email', {})
        assert parsed[1] == ('range', {'min': 1})
        assert parsed[2] == ('callable', {'fn': check})


class TestValidator:
    def test_first_failing_rule_is_reported(self):
        validator = Validator("matching|string:min=5")
        assert validator.validate(ValueHolder(["ab", "cd"])) is False
        assert validator.failing_rule == 'matching'

    def test_matching_collapses_then_string_checks_length(self):
        validator = Validator("matching|string:min=5")
        holder = ValueHolder(["ab", "ab"])
        assert validator.validate(holder) is False
        assert validator.failing_rule == 'string'
        assert holder.value == "ab"

    def test_normalizing_rules(self):
        passed, value = Validator('email').check("  Jared@Example.COM ")
        assert passed and value == "jared@example.com"

        passed, value = Validator('boolean').check("yes")
        assert passed and value is True

    @pytest.mark.parametrize("rules,value,expected", [
        ('alpha', 'abc', True),
        ('email', 'ana@example.org', True),
        ('email', 'a..b@example.org', False),
        ('email', 'ana@', False),
        ('email', 'not-an-email', False),
        ('alpha', 'ab1', False),
        ('alpha_numeric', 'ab1', True),
        ('alpha_dash', 'a-b_1', True),
        ('alpha_dash:min=6', 'a-b_1', False),
        ('numeric', '12.5', True),
        ('numeric:type=int', 12, True),
        ('numeric:type=int', 12.0, False),
        ('range:min=1:max=5', 6, False),
        ('range:min=1:max=5', '3', True),
        ('ip', '10.0.0.1', True),
        ('ip', '10.0.0.300', False),
        ('url', 'https://example.com/a', True),
        ('url', 'example.com', False),
        ('time_zone', 'Europe/Paris', True),
        ('time_zone', 'Mars/Olympus', False),
        ('date', '2024-02-03', True),
        ('date', 'not a date', False),
        ('enum:choices=draft,published', 'draft', True),
        ('enum:choices=draft,published', 'archived', False),
        ('required', '', False),
        ('required', [], False),
    ])
    def test_builtin_rules(self, rules, value, expected):
        assert Validator(rules).check(value)[0] is expected

    def test_timestamp_rules(self):
        passed, value = Validator('timestamp|db_timestamp').check('2024-01-02T03:04:05+00:00')
        assert passed
        assert value == '2024-01-02 03:04:05'

    def test_callable_rule_gets_options_and_model(self):
        seen = {}

        def check(value, options, model):
            seen.update(value=value, model=model)
            return value % 2 == 0

        validator = Validator([check])
        assert validator.validate(ValueHolder(4), model='owner') is True
        assert seen == {'value': 4, 'model': 'owner'}
        assert validator.validate(ValueHolder(3)) is False
        assert validator.failing_rule == 'callable'

    def test_custom_rule_registration(self):
        class Shouting(ValidationRule):
            def validate(self, holder, options, model):
                holder.value = str(holder.value).upper()
                return True

        register_rule('shouting', Shouting())
        assert Validator('shouting').check('hey') == (True, 'HEY')

    def test_unknown_rule(self):
        with pytest.raises(ValueError):
            Validator('no_such_rule').check('x')


class TestSecrets:
    def test_password_rule_hashes(self):
        passed, value = Validator('password:min=6').check('hunter22')
        assert passed
        assert value.startswith('pbkdf2_sha256$1000$')
        assert verify_password('hunter22', value)
        assert not verify_password('hunter23', value)

    def test_password_rule_checks_length(self):
        assert Validator('password').check('short')[0] is False

    def test_hash_is_salted(self):
        assert hash_password('same') != hash_password('same')

    def test_encrypt_round_trip(self, encryption_key):
        token = encrypt_value('classified')
        assert token.startswith('enc:')
        assert encrypt_value(token) == token
        assert decrypt_value(token) == 'classified'


class TestErrorStack:
    def test_codes_are_rendered(self):
        errors = ErrorStack()
        errors.add('required', {'field': 'name', 'field_name': 'Name'})
        errors.add('email', {'field': 'email', 'field_name': 'Email'})

        assert errors.codes() == ['required', 'email']
        assert errors.all() == ['Name is missing', 'Email must be a valid email address']
        assert errors.has('email')
        assert [e.code for e in errors.find('name')] == ['required']
        assert len(errors) == 2

    def test_plain_messages_pass_through(self):
        errors = ErrorStack()
        errors.add('Something went wrong.')
        assert errors.all() == ['Something went wrong.']

    def test_translation_catalogue_and_fallback(self, tmp_path):
        (tmp_path / 'fr.json').write_text(json.dumps({
            'starorm.validation.required': '{field_name} est obligatoire',
        }), encoding='utf-8')
        translator = Translator(locale='fr', data_dir=str(tmp_path))

        assert translator.translate('starorm.validation.required', {'field_name': 'Nom'}) == 'Nom est obligatoire'
        assert translator.translate('starorm.validation.email', {'field_name': 'Email'}) == \
            'Email must be a valid email address'
        assert translator.translate('custom.key', fallback='Custom {x}', params={'x': 1}) == 'Custom 1'

    def test_error_stack_uses_the_active_translator(self):
        set_translator(Translator(phrases={'en': {'starorm.validation.required': 'Need {field_name}'}}))
        errors = ErrorStack()
        errors.add('required', {'field': 'name', 'field_name': 'Name'})
        assert errors.all() == ['Need Name']
