"""Import smoke tests for the public package surface."""

import importlib

import pytest

import starorm


def test_every_exported_name_resolves():
    missing = [name for name in starorm.__all__ if not hasattr(starorm, name)]
    assert missing == []


@pytest.mark.parametrize('module', [
    'starorm.entities',
    'starorm.entities.features',
    'starorm.events',
    'starorm.infrastructure',
    'starorm.persistence',
    'starorm.query',
    'starorm.relations',
    'starorm.schema',
    'starorm.validation',
])
def test_subpackages_import(module):
    package = importlib.import_module(module)
    assert all(hasattr(package, name) for name in getattr(package, '__all__', []))


def test_error_params_default_to_a_fresh_dict():
    from starorm.validation import ValidationError

    first = ValidationError('required', 'Name is required')
    second = ValidationError('required', 'Age is required')
    first.params['field'] = 'name'
    assert second.params == {}
