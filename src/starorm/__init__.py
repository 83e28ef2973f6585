"""
StarORM - Typed Entities over Pluggable Storage

An object-relational mapping engine: models declare typed properties,
relations and features; instances are created, updated and deleted through a
validated, event-driven lifecycle against a swappable storage driver.
"""

from .exceptions import (
    ModelException,
    DefinitionError,
    MassAssignmentException,
    ModelNotFoundException,
    DriverMissingException,
    DriverException,
    ListenerException,
)
from .schema import PropertyType, Property, Mutability, RelationKind, Definition, definition_registry
from .events import EventName, ModelEvent, DispatchOutcome, SYSTEM_PRIORITY, event_manager
from .query import Query, Operator, SortDirection, ModelIterator
from .persistence import (
    Driver, AbstractDriver,
    MemoryDriver, SqlAlchemyDriver,
    CachePool, MemoryCachePool,
    persistence_manager,
)
from .entities import (
    Model,
    ModelFeature, AutoTimestamps, SoftDelete, AccessControl, Cacheable,
    requester_context, get_requester,
)
from .relations import (
    Relation, BelongsTo, HasOne, HasMany, BelongsToMany, Polymorphic, Pivot
)
from .validation import Validator, ValueHolder, ErrorStack, register_rule, Translator
from .infrastructure import ORMConfig, Environment, get_config, set_config, configure_logging

__version__ = "0.1.0"

__all__ = [
    # Models
    'Model',
    'Property',
    'PropertyType',
    'Mutability',
    'RelationKind',
    'Definition',
    'definition_registry',

    # Features
    'ModelFeature',
    'AutoTimestamps',
    'SoftDelete',
    'AccessControl',
    'Cacheable',
    'requester_context',
    'get_requester',

    # Querying
    'Query',
    'Operator',
    'SortDirection',
    'ModelIterator',

    # Relations
    'Relation',
    'BelongsTo',
    'HasOne',
    'HasMany',
    'BelongsToMany',
    'Polymorphic',
    'Pivot',

    # Events
    'EventName',
    'ModelEvent',
    'DispatchOutcome',
    'SYSTEM_PRIORITY',
    'event_manager',

    # Persistence
    'Driver',
    'AbstractDriver',
    'MemoryDriver',
    'SqlAlchemyDriver',
    'CachePool',
    'MemoryCachePool',
    'persistence_manager',

    # Validation
    'Validator',
    'ValueHolder',
    'ErrorStack',
    'register_rule',
    'Translator',

    # Configuration
    'ORMConfig',
    'Environment',
    'get_config',
    'set_config',
    'configure_logging',

    # Exceptions
    'ModelException',
    'DefinitionError',
    'MassAssignmentException',
    'ModelNotFoundException',
    'DriverMissingException',
    'DriverException',
    'ListenerException',
]
