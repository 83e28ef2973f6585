"""
Model - Entity Lifecycle and Persistence Façade

🏛️ Entity State Machine:
A ``Model`` subclass declares its properties, identity and features; each
instance tracks three layers of values:

- *persisted* values, as last read from or written to storage,
- *staged* (unsaved) values set by the caller, which take precedence,
- a *relationship cache* of resolved related models.

Writes go through a fixed sequence: pre-event (cancellable) → validation →
driver → in-memory state update → post-event (cancellable). Types marked
``transactional`` wrap the sequence in a transaction that is rolled back on
any validation failure, cancellation or driver error.

Example:
    class Person(Model):
        properties = {
            'name': {'type': PropertyType.STRING, 'required': True},
            'email': {'type': PropertyType.STRING, 'validate': 'email', 'unique': True},
            'garage': {'relation': 'Garage', 'relation_type': RelationKind.HAS_ONE},
        }
        features = [AutoTimestamps(), SoftDelete()]

    person = Person()
    if not person.create({'name': 'Jared', 'email': 'jared@example.com'}):
        print(person.errors.all())
"""

import copy
import logging
import re
from contextlib import contextmanager
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Optional, Tuple

import inflect

from ..events.dispatcher import event_manager
from ..events.model_event import DispatchOutcome, EventName
from ..exceptions import MassAssignmentException, ModelException, ModelNotFoundException
from ..persistence.drivers.interface import Driver
from ..persistence.manager import persistence_manager
from ..query.query import Query
from ..schema.definition import Definition, definition_registry
from ..schema.property import Mutability, Property, RelationKind
from ..schema.registry import register_model
from ..validation.encryption import decrypt_value
from ..validation.errors import ErrorStack
from ..validation.rules import ValueHolder
from ..validation.validator import validate_property
from .features.base import ModelFeature

logger = logging.getLogger(__name__)

_inflect = inflect.engine()

_ACCESSOR = re.compile(r'^get_(\w+)_value$')
_MUTATOR = re.compile(r'^set_(\w+)_value$')

CREATE_WRITABLE = (Mutability.MUTABLE, Mutability.MUTABLE_CREATE_ONLY)


class Model:
    """
    Base class for persisted entities.

    Class attributes configure the type:

    - ``properties``: property specs (dicts or ``Property`` objects) by name
    - ``id_properties``: identity property names, ``['id']`` by default
    - ``features``: ``ModelFeature`` instances (timestamps, soft delete, ...)
    - ``permitted`` / ``protected``: mass assignment allow / deny lists
    - ``hidden`` / ``appended``: names removed from / added to ``to_dict()``
    - ``transactional``: wrap writes in a transaction
    - ``connection``: driver connection name
    - ``table_name``: storage table, the pluralized model name by default
    """

    properties: ClassVar[Dict[str, Any]] = {}
    id_properties: ClassVar[List[str]] = ['id']
    features: ClassVar[List[ModelFeature]] = []
    permitted: ClassVar[List[str]] = []
    protected: ClassVar[List[str]] = []
    hidden: ClassVar[List[str]] = []
    appended: ClassVar[List[str]] = []
    transactional: ClassVar[bool] = False
    connection: ClassVar[Optional[str]] = None
    table_name: ClassVar[Optional[str]] = None

    _accessors: ClassVar[Dict[str, str]] = {}
    _mutators: ClassVar[Dict[str, str]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._accessors = {}
        cls._mutators = {}
        for attribute in dir(cls):
            match = _ACCESSOR.match(attribute)
            if match:
                cls._accessors[match.group(1)] = attribute
            match = _MUTATOR.match(attribute)
            if match:
                cls._mutators[match.group(1)] = attribute
        if not cls.__dict__.get('abstract', False):
            register_model(cls)

    def __init__(self, values: Optional[Dict[str, Any]] = None, **kwargs: Any):
        self._values: Dict[str, Any] = {}
        self._unsaved: Dict[str, Any] = {}
        self._relationships: Dict[str, Any] = {}
        self._id_values: Dict[str, Any] = {}
        self._has_id = False
        self._persisted = False
        self._loaded = False
        self._ignore_unsaved = False
        self._errors: Optional[ErrorStack] = None
        self._feature_state: Dict[int, Dict[str, Any]] = {}
        self.pivot: Optional['Model'] = None

        values = {**(values or {}), **kwargs}
        definition = self.definition()
        ids = definition.ids
        if all(values.get(name) is not None for name in ids):
            self._set_ids({name: values[name] for name in ids})
            if len(values) > len(ids):
                self.refresh_with(values)
        else:
            for name, value in values.items():
                self[name] = value

    # ----- type information -----

    @classmethod
    def definition(cls) -> Definition:
        return definition_registry.get(cls)

    @classmethod
    def model_name(cls) -> str:
        return cls.__name__

    @classmethod
    def tablename(cls) -> str:
        return cls.table_name or _inflect.plural(cls.model_name())

    @classmethod
    def get_feature(cls, feature_class: type) -> Optional[ModelFeature]:
        for feature in cls.features:
            if isinstance(feature, feature_class):
                return feature
        return None


    # ----- driver -----

    @classmethod
    def set_driver(cls, driver: Driver) -> None:
        persistence_manager.set_driver(driver)

    @classmethod
    def get_driver(cls) -> Driver:
        return persistence_manager.get_driver()

    @classmethod
    def clear_driver(cls) -> None:
        persistence_manager.clear_driver()

    @classmethod
    @contextmanager
    def transaction(cls) -> Iterator[Any]:
        """Group several writes into one transaction on this type's connection"""
        with persistence_manager.transactions.transaction(cls.connection) as manager:
            yield manager

    def _start_transaction(self) -> None:
        if self.transactional:
            persistence_manager.transactions.start(self.connection)

    def _commit(self) -> None:
        if self.transactional:
            persistence_manager.transactions.commit(self.connection)

    def _rollback(self, snapshot: Optional[Dict[str, Any]] = None) -> None:
        if not self.transactional:
            return
        persistence_manager.transactions.rollback(self.connection)
        if snapshot is not None:
            self._restore_snapshot(snapshot)

    def _snapshot(self) -> Dict[str, Any]:
        return {
            '_id_values': dict(self._id_values),
            '_has_id': self._has_id,
            '_persisted': self._persisted,
            '_loaded': self._loaded,
            '_values': dict(self._values),
            '_unsaved': dict(self._unsaved),
            '_relationships': dict(self._relationships),
        }

    def _restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        """Put the in-memory state back to what it was before a rolled back write"""
        if self._has_id:
            for feature in self.features:
                feature.after_clear(self)
        for attribute, value in snapshot.items():
            setattr(self, attribute, value)
        if self._has_id and self._loaded:
            for feature in self.features:
                feature.after_refresh(self)
        logger.debug(f"Restored {self.model_name()} state after rollback")

    # ----- events -----

    @classmethod
    def install_listeners(cls, dispatcher: Any) -> None:
        """Called once when the type's dispatcher is created"""
        for feature in cls.features:
            feature.install(cls, dispatcher)
        cls.initialize()

    @classmethod
    def initialize(cls) -> None:
        """Hook for registering the type's own listeners"""
        pass

    @classmethod
    def listen(cls, event_name: EventName, listener, priority: int = 0) -> None:
        event_manager.listen(cls, event_name, listener, priority)

    @classmethod
    def creating(cls, listener, priority: int = 0) -> None:
        cls.listen(EventName.CREATING, listener, priority)

    @classmethod
    def created(cls, listener, priority: int = 0) -> None:
        cls.listen(EventName.CREATED, listener, priority)

    @classmethod
    def updating(cls, listener, priority: int = 0) -> None:
        cls.listen(EventName.UPDATING, listener, priority)

    @classmethod
    def updated(cls, listener, priority: int = 0) -> None:
        cls.listen(EventName.UPDATED, listener, priority)

    @classmethod
    def deleting(cls, listener, priority: int = 0) -> None:
        cls.listen(EventName.DELETING, listener, priority)

    @classmethod
    def deleted(cls, listener, priority: int = 0) -> None:
        cls.listen(EventName.DELETED, listener, priority)

    @classmethod
    def saving(cls, listener, priority: int = 0) -> None:
        """Listen before both creates and updates"""
        cls.creating(listener, priority)
        cls.updating(listener, priority)

    @classmethod
    def saved(cls, listener, priority: int = 0) -> None:
        """Listen after both creates and updates"""
        cls.created(listener, priority)
        cls.updated(listener, priority)

    def _dispatch(self, event_name: EventName) -> DispatchOutcome:
        return event_manager.dispatch(self, event_name)

    # ----- identity -----

    def _set_ids(self, values: Dict[str, Any]) -> None:
        definition = self.definition()
        self._id_values = {name: definition[name].cast(values[name]) for name in definition.ids}
        self._has_id = True

    def has_id(self) -> bool:
        return self._has_id

    def id(self) -> Any:
        """Scalar id, a key map for composite ids, or None before persistence"""
        if not self._has_id:
            return None
        if len(self._id_values) == 1:
            return next(iter(self._id_values.values()))
        return dict(self._id_values)

    def ids(self) -> Dict[str, Any]:
        return dict(self._id_values)

    # ----- value access -----

    def get(self, names: Iterable[str]) -> Dict[str, Any]:
        """Values of ``names``: staged, then identity, then stored, then relations or defaults"""
        ignore_unsaved = self._ignore_unsaved
        self._ignore_unsaved = False
        return {name: self._get_value(name, ignore_unsaved) for name in names}

    def _get_value(self, name: str, ignore_unsaved: bool = False) -> Any:
        prop = self.definition().get(name)

        if not ignore_unsaved and name in self._unsaved:
            value = self._unsaved[name]
        elif name in self._id_values:
            value = self._id_values[name]
        else:
            if (name not in self._values and prop is not None and prop.persisted
                    and self._has_id and not self._loaded):
                self.refresh()

            if name in self._values:
                value = self._values[name]
                if prop is not None and prop.encrypted:
                    value = decrypt_value(value)
            elif prop is not None and prop.is_relation:
                value = self.relation(name)
            elif prop is not None and prop.has_default:
                value = copy.deepcopy(prop.default)
            else:
                value = None

        accessor = self._accessors.get(name)
        if accessor is not None:
            value = getattr(self, accessor)(value)
        return value

    def __getitem__(self, name: str) -> Any:
        return self._get_value(name)

    def __setitem__(self, name: str, value: Any) -> None:
        mutator = self._mutators.get(name)
        if mutator is not None:
            value = getattr(self, mutator)(value)

        definition = self.definition()
        prop = definition.get(name)
        if prop is not None and prop.relation_type == RelationKind.BELONGS_TO:
            self._stage_belongs_to(prop, value)
        elif prop is not None and prop.relation_type == RelationKind.POLYMORPHIC:
            self._stage_polymorphic(prop, value)

        self._unsaved[name] = value
        self._relationships.pop(name, None)
        for relation_prop in definition.relation_properties():
            if relation_prop.relation_type == RelationKind.POLYMORPHIC:
                keys = (f"{relation_prop.local_key}_type", f"{relation_prop.local_key}_id")
            else:
                keys = (relation_prop.local_key,)
            if name in keys and relation_prop.name != name:
                self._relationships.pop(relation_prop.name, None)

    def _stage_belongs_to(self, prop: Property, value: Any) -> None:
        if value is None:
            self._unsaved[prop.local_key] = None
        elif isinstance(value, Model):
            self._unsaved[prop.local_key] = value.get([prop.foreign_key])[prop.foreign_key]
        else:
            raise ModelException(
                f"Value set on '{prop.name}' relationship must be a model or None")
        self._relationships.pop(prop.name, None)

    def _stage_polymorphic(self, prop: Property, value: Any) -> None:
        type_key, id_key = f"{prop.local_key}_type", f"{prop.local_key}_id"
        if value is None:
            self._unsaved[type_key] = None
            self._unsaved[id_key] = None
            return
        if not isinstance(value, Model):
            raise ModelException(
                f"Value set on '{prop.name}' relationship must be a model or None")
        for type_name, target in (prop.morphs_to or {}).items():
            target_name = target if isinstance(target, str) else target.__name__
            if type(value).__name__ == target_name or (isinstance(target, type) and isinstance(value, target)):
                self._unsaved[type_key] = type_name
                self._unsaved[id_key] = value.get([prop.foreign_key])[prop.foreign_key]
                return
        raise ModelException(f"{type(value).__name__} is not a valid target of '{prop.name}'")

    def __delitem__(self, name: str) -> None:
        self._unsaved.pop(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self._unsaved or name in self._values or name in self.definition()

    def ignore_unsaved(self) -> 'Model':
        """Make the next ``get()`` skip staged values"""
        self._ignore_unsaved = True
        return self

    def staged_values(self) -> Dict[str, Any]:
        return dict(self._unsaved)

    def persisted_values(self) -> Dict[str, Any]:
        return {**self._values, **self._id_values}

    def set_values(self, values: Dict[str, Any]) -> 'Model':
        """Stage ``values`` honouring the mass assignment allow / deny lists"""
        for name, value in values.items():
            if self.permitted:
                if name not in self.permitted:
                    raise MassAssignmentException(
                        f"Mass assignment of {name} on {self.model_name()} is not allowed")
            elif name in self.protected:
                raise MassAssignmentException(
                    f"Mass assignment of {name} on {self.model_name()} is not allowed")
            self[name] = value
        return self

    def dirty(self, name: str, has_changed: bool = False) -> bool:
        """
        Whether ``name`` has a staged value; with ``has_changed`` also whether
        it differs from the stored value.
        """
        if name not in self._unsaved:
            return False
        if not has_changed or not self._persisted:
            return True
        return self.ignore_unsaved().get([name])[name] != self._unsaved[name]

    def hydrate_value(self, name: str, value: Any) -> 'Model':
        """Set a stored value without staging it"""
        prop = self.definition().get(name)
        self._values[name] = prop.cast(value) if prop is not None else value
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Values of array visible properties minus ``hidden`` plus ``appended``"""
        definition = self.definition()
        names = [name for name, prop in definition.items()
                 if prop.in_array and not prop.is_relation and name not in self.hidden]
        names += [name for name in self.appended if name not in names]
        return {name: self._to_plain(value) for name, value in self.get(names).items()}

    @classmethod
    def _to_plain(cls, value: Any) -> Any:
        if isinstance(value, Model):
            return value.to_dict()
        if isinstance(value, (list, tuple)):
            return [cls._to_plain(item) for item in value]
        return value

    # ----- errors -----

    @property
    def errors(self) -> ErrorStack:
        if self._errors is None:
            self._errors = ErrorStack()
        return self._errors

    def get_errors(self) -> ErrorStack:
        return self.errors

    def _add_required_errors(self, present: Dict[str, Any]) -> bool:
        valid = True
        for name, prop in self.definition().items():
            if prop.required and present.get(name) is None:
                self.errors.add('required', {'field': name, 'field_name': prop.get_title()})
                valid = False
        return valid

    def _validate_staged(self, writable: Tuple[Mutability, ...]) -> Tuple[Dict[str, Any], Dict[str, Any], bool]:
        """Validate staged values, returning (storage values, non-stored values, ok)"""
        definition = self.definition()
        validated: Dict[str, Any] = {}
        preserved: Dict[str, Any] = {}
        valid = True
        for name, value in self._unsaved.items():
            prop = definition.get(name)
            if prop is None or not prop.persisted:
                preserved[name] = value
                continue
            writable_now = prop.mutable in writable or (
                prop.mutable == Mutability.IMMUTABLE and Mutability.MUTABLE_CREATE_ONLY in writable
                and prop.has_default and value == prop.default)
            if not writable_now:
                continue
            holder = ValueHolder(value)
            valid = validate_property(self, prop, holder, self.errors) and valid
            validated[name] = holder.value
        return validated, preserved, valid

    def valid(self) -> bool:
        """Validate the staged values without saving"""
        self.errors.clear()
        writable = (Mutability.MUTABLE,) if self._has_id else CREATE_WRITABLE
        validated, preserved, valid = self._validate_staged(writable)
        if not self._has_id:
            valid = self._add_required_errors({**self._defaults(), **validated, **preserved}) and valid
        return valid

    def _defaults(self) -> Dict[str, Any]:
        return {name: copy.deepcopy(prop.default)
                for name, prop in self.definition().items() if prop.has_default}

    # ----- relationships -----

    def get_relationship(self, name: str):
        from ..relations.factory import make_relation

        prop = self.definition().get(name)
        if prop is None or not prop.is_relation:
            raise ModelException(f"'{name}' is not a relationship of {self.model_name()}")
        return make_relation(self, prop)

    def relation(self, name: str) -> Any:
        """Related model(s) for relation ``name``, loaded once and cached"""
        if name in self._relationships:
            return self._relationships[name]
        result = self.get_relationship(name).get_results()
        self._relationships[name] = result
        return result

    def set_relation(self, name: str, model: Optional['Model']) -> 'Model':
        """Attach a resolved single relation; None marks it resolved-empty"""
        self._relationships[name] = model
        return self

    def set_relation_collection(self, name: str, models: List['Model']) -> 'Model':
        self._relationships[name] = list(models)
        return self

    def clear_relation(self, name: str) -> 'Model':
        self._relationships.pop(name, None)
        return self

    def _save_relationships(self) -> bool:
        """Save unsaved models staged on belongs-to relations and stage their keys"""
        for prop in self.definition().relation_properties():
            if prop.relation_type != RelationKind.BELONGS_TO:
                continue
            value = self._unsaved.get(prop.name)
            if not isinstance(value, Model) or value.persisted():
                continue
            try:
                value.save_or_fail()
            except ModelException as e:
                self.errors.add(str(e), {'field': prop.name, 'field_name': prop.get_title()})
                return False
            self._unsaved[prop.local_key] = value.get([prop.foreign_key])[prop.foreign_key]
        return True

    # ----- lifecycle -----

    def persisted(self) -> bool:
        return self._persisted

    def is_deleted(self) -> bool:
        for feature in self.features:
            deleted = feature.is_deleted(self)
            if deleted is not None:
                return deleted
        if self._has_id and not self._loaded:
            self.refresh()
        return self._has_id and not self._persisted

    def save(self) -> bool:
        return self.set() if self._has_id else self.create()

    def save_or_fail(self) -> 'Model':
        if not self.save():
            raise ModelException(f"Failed to save {self.model_name()}: {self.errors}")
        return self

    def create_or_fail(self, data: Optional[Dict[str, Any]] = None) -> 'Model':
        if not self.create(data):
            raise ModelException(f"Failed to create {self.model_name()}: {self.errors}")
        return self

    def delete_or_fail(self) -> 'Model':
        if not self.delete():
            raise ModelException(f"Failed to delete {self.model_name()}: {self.errors}")
        return self

    def create(self, data: Optional[Dict[str, Any]] = None) -> bool:
        """Insert the model into storage; returns False on validation failure or cancellation"""
        if self._has_id:
            raise ModelException(f"Cannot call create() on an existing {self.model_name()}")
        if data:
            self.set_values(data)
        self.errors.clear()
        snapshot = self._snapshot()

        self._start_transaction()
        try:
            if not self._dispatch(EventName.CREATING):
                self._rollback(snapshot)
                return False

            if not self._save_relationships():
                self._rollback(snapshot)
                return False

            for name, default in self._defaults().items():
                if name not in self._unsaved:
                    self._unsaved[name] = default

            insert, preserved, valid = self._validate_staged(CREATE_WRITABLE)
            valid = self._add_required_errors({**insert, **preserved}) and valid
            if not valid:
                self._rollback(snapshot)
                return False

            driver = self.get_driver()
            if not driver.create_model(self, insert):
                self._rollback(snapshot)
                return False

            definition = self.definition()
            ids = {}
            for name in definition.ids:
                prop = definition[name]
                if prop.mutable != Mutability.IMMUTABLE and insert.get(name) is not None:
                    ids[name] = insert[name]
                else:
                    ids[name] = prop.cast(driver.get_created_id(self, name))
            related = {name: value for name, value in preserved.items()
                       if name in definition and definition[name].is_relation}
            computed = {name: value for name, value in preserved.items() if name not in related}
            self.refresh_with({**insert, **computed, **ids})
            for name, value in related.items():
                if isinstance(value, Model):
                    self.set_relation(name, value)
            logger.debug(f"Created {self.model_name()} {self.id()}")

            if not self._dispatch(EventName.CREATED):
                self._rollback(snapshot)
                return False

            self._commit()
            return True
        except Exception:
            self._rollback(snapshot)
            raise

    def set(self, data: Optional[Dict[str, Any]] = None) -> bool:
        """Update the stored model with ``data`` and any staged values"""
        if not self._has_id:
            raise ModelException(f"Can only call set() on an existing {self.model_name()}")
        if data:
            self.set_values(data)
        if not self._unsaved:
            return True
        self.errors.clear()
        snapshot = self._snapshot()

        self._start_transaction()
        try:
            if not self._dispatch(EventName.UPDATING):
                self._rollback(snapshot)
                return False

            if not self._save_relationships():
                self._rollback(snapshot)
                return False

            definition = self.definition()
            validated, preserved, valid = self._validate_staged((Mutability.MUTABLE,))
            for name, value in validated.items():
                prop = definition[name]
                if prop.required and value in (None, ''):
                    self.errors.add('required', {'field': name, 'field_name': prop.get_title()})
                    valid = False
            if not valid:
                self._rollback(snapshot)
                return False

            if validated and not self.get_driver().update_model(self, validated):
                self._rollback(snapshot)
                return False

            for name, value in validated.items():
                self._values[name] = definition[name].cast(value)
                self._relationships.pop(name, None)
            for name in preserved:
                self._relationships.pop(name, None)
            self._unsaved = {}
            for feature in self.features:
                feature.after_refresh(self)
            logger.debug(f"Updated {self.model_name()} {self.id()}: {sorted(validated)}")

            if not self._dispatch(EventName.UPDATED):
                self._rollback(snapshot)
                return False

            self._commit()
            return True
        except Exception:
            self._rollback(snapshot)
            raise

    def delete(self) -> bool:
        """Delete the model; a feature such as ``SoftDelete`` may keep the row"""
        if not self._has_id:
            raise ModelException(f"Can only call delete() on an existing {self.model_name()}")
        self.errors.clear()
        snapshot = self._snapshot()

        self._start_transaction()
        try:
            if not self._dispatch(EventName.DELETING):
                self._rollback(snapshot)
                return False

            removed = False
            deleted = None
            for feature in self.features:
                deleted = feature.perform_delete(self)
                if deleted is not None:
                    break
            if deleted is None:
                deleted = self.get_driver().delete_model(self)
                removed = True
            if not deleted:
                self._rollback(snapshot)
                return False

            if removed:
                self._persisted = False
            if not self._dispatch(EventName.DELETED):
                self._rollback(snapshot)
                return False

            for feature in self.features:
                feature.after_delete(self)
            logger.debug(f"Deleted {self.model_name()} {self.id()} (row kept={not removed})")

            self._commit()
            return True
        except Exception:
            self._rollback(snapshot)
            raise

    def restore(self) -> bool:
        """Undo a delete that kept the row, through the update path"""
        staged = False
        for feature in self.features:
            staged = feature.stage_restore(self) or staged
        if not staged:
            raise ModelException(f"Can only call restore() on a soft-deleted {self.model_name()}")
        return self.set()

    # ----- loading -----

    @classmethod
    def from_storage(cls, row: Dict[str, Any]) -> 'Model':
        """Build a loaded, persisted instance from a raw storage row"""
        model = cls()
        return model.refresh_with(row)

    def refresh(self) -> 'Model':
        """Reload stored values from the cache or the driver"""
        if not self._has_id:
            return self

        values = None
        for feature in self.features:
            values = feature.before_load(self)
            if values is not None:
                break
        if values is None:
            values = self.get_driver().load_model(self)

        if values is None:
            self._loaded = True
            self._persisted = False
            return self
        return self.refresh_with(values)

    def refresh_with(self, values: Dict[str, Any]) -> 'Model':
        """Replace stored values with ``values`` (cast to property types)"""
        definition = self.definition()
        self._values = {}
        for name, value in values.items():
            prop = definition.get(name)
            self._values[name] = prop.cast(value) if prop is not None else value
        if all(self._values.get(name) is not None for name in definition.ids):
            self._set_ids(self._values)
        for name in definition.ids:
            self._values.pop(name, None)

        self._unsaved = {}
        self._relationships = {}
        self._loaded = True
        self._persisted = self._has_id
        for feature in self.features:
            feature.after_refresh(self)
        return self

    def clear_cache(self) -> 'Model':
        """Forget stored, staged and related values; the next read reloads"""
        self._values = {}
        self._unsaved = {}
        self._relationships = {}
        self._loaded = False
        for feature in self.features:
            feature.after_clear(self)
        return self

    # ----- access control -----

    def feature_state(self, feature: ModelFeature) -> Dict[str, Any]:
        return self._feature_state.setdefault(id(feature), {})

    def can(self, permission: str, requester: Any) -> bool:
        for feature in self.features:
            if feature.check_permission(self, permission, requester) is False:
                return False
        return True

    def grant_all_permissions(self) -> 'Model':
        for feature in self.features:
            feature.grant_all(self)
        return self

    def enforce_permissions(self) -> 'Model':
        for feature in self.features:
            feature.enforce(self)
        return self

    # ----- querying -----

    @classmethod
    def query(cls) -> Query:
        """Query for this type, narrowed by its features (soft-deleted rows are excluded)"""
        query = Query(cls)
        for feature in cls.features:
            query = feature.scope_query(query)
        return query

    @classmethod
    def with_deleted(cls) -> Query:
        return Query(cls)

    @classmethod
    def where(cls, *args: Any) -> Query:
        return cls.query().where(*args)

    @classmethod
    def all(cls):
        return cls.query().all()

    @classmethod
    def first(cls, limit: int = 1) -> Any:
        return cls.query().first(limit)

    @classmethod
    def count(cls) -> int:
        return cls.query().count()

    @classmethod
    def _id_conditions(cls, id_value: Any) -> Dict[str, Any]:
        ids = cls.definition().ids
        if isinstance(id_value, dict):
            return {name: id_value.get(name) for name in ids}
        if isinstance(id_value, (list, tuple)):
            return dict(zip(ids, id_value))
        if len(ids) > 1 and isinstance(id_value, str) and ',' in id_value:
            return dict(zip(ids, id_value.split(',')))
        if len(ids) > 1:
            raise ModelException(f"{cls.model_name()} has a composite id; pass a key map")
        return {ids[0]: id_value}

    @classmethod
    def find(cls, id_value: Any) -> Optional['Model']:
        if id_value is None:
            return None
        return cls.query().where(cls._id_conditions(id_value)).first()

    @classmethod
    def find_or_fail(cls, id_value: Any) -> 'Model':
        model = cls.find(id_value)
        if model is None:
            raise ModelNotFoundException(f"Could not find {cls.model_name()} {id_value}")
        return model

    def __repr__(self) -> str:
        return f"<{self.model_name()} id={self.id()!r}>"


__all__ = ['Model']
