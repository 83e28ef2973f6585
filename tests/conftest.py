"""Shared fixtures: a fresh memory driver and clean process-wide registries per test."""

import pytest
from cryptography.fernet import Fernet

from starorm import Environment, MemoryDriver, Model, ORMConfig, event_manager, set_config
from starorm.entities import requester_context, set_default_pool
from starorm.infrastructure import reset_config
from starorm.validation import reset_translator


@pytest.fixture(autouse=True)
def driver():
    """Install an empty MemoryDriver and reset global state around each test"""
    set_config(ORMConfig.for_environment(Environment.TESTING))
    memory = MemoryDriver()
    Model.set_driver(memory)
    event_manager.reset()
    requester_context.clear()
    reset_translator()
    set_default_pool(None)

    yield memory

    Model.clear_driver()
    event_manager.reset()
    requester_context.clear()
    reset_config()


@pytest.fixture
def encryption_key():
    from starorm import get_config

    key = Fernet.generate_key().decode()
    get_config().validation.encryption_key = key
    return key


@pytest.fixture
def person():
    from models import Person

    model = Person()
    assert model.create({'name': 'Jared', 'email': 'jared@example.com', 'age': 30}), model.errors.all()
    return model
