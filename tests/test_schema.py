"""
Schema Tests

Covers property casting, property immutability and how definitions are
assembled from declared properties, features and relations.
"""

from datetime import datetime, timezone
from enum import Enum

import pytest
from pydantic import ValidationError as PydanticValidationError

from starorm import DefinitionError, Model, Mutability, Property, PropertyType, RelationKind
from starorm.schema import cast, definition_registry, underscore

from models import Car, Comment, Document, Garage, Group, Person, Secret


class Color(Enum):
    RED = "red"
    BLUE = "blue"


class TestCasting:
    def test_scalar_types(self):
        assert cast(PropertyType.INTEGER, "42") == 42
        assert cast(PropertyType.INTEGER, "4.7") == 4
        assert cast(PropertyType.FLOAT, "1.5") == 1.5
        assert cast(PropertyType.STRING, 12) == "12"
        assert cast(PropertyType.BOOLEAN, "no") is False
        assert cast(PropertyType.BOOLEAN, "yes") is True

    def test_none_and_empty_strings(self):
        assert cast(PropertyType.INTEGER, None) is None
        assert cast(PropertyType.STRING, "", nullable=True) is None
        assert cast(PropertyType.STRING, "") == ""

    def test_dates_become_timestamps(self):
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        expected = int(moment.timestamp())
        assert cast(PropertyType.DATE, moment) == expected
        assert cast(PropertyType.DATE, "2024-01-02 03:04:05") == expected
        assert cast(PropertyType.DATE, str(expected)) == expected
        assert cast(PropertyType.DATE, "02/01/2024", date_format="%d/%m/%Y") == expected - (3 * 3600 + 4 * 60 + 5)

    def test_json_types(self):
        assert cast(PropertyType.ARRAY, '[1, 2]') == [1, 2]
        assert cast(PropertyType.OBJECT, '{"a": 1}') == {"a": 1}
        assert cast(PropertyType.ARRAY, (1, 2)) == [1, 2]

    def test_enum(self):
        assert cast(PropertyType.ENUM, "red", enum_class=Color) is Color.RED
        assert cast(PropertyType.ENUM, "red") == "red"

    def test_casting_is_idempotent(self):
        raw = {'age': '41', 'name': 7, 'when': '2024-05-01 10:00:00', 'tags': '["a"]'}
        types = {'age': PropertyType.INTEGER, 'name': PropertyType.STRING,
                 'when': PropertyType.DATE, 'tags': PropertyType.ARRAY}
        once = {key: cast(types[key], value) for key, value in raw.items()}
        twice = {key: cast(types[key], value) for key, value in once.items()}
        assert once == twice


class TestProperty:
    def test_property_is_frozen(self):
        prop = Property(name='title', type=PropertyType.STRING)
        with pytest.raises(PydanticValidationError):
            prop.name = 'other'

    def test_default_presence_is_tracked(self):
        assert Property(name='a', default=None).has_default is True
        assert Property(name='a').has_default is False
        assert Property(name='a').with_changes(default=3).has_default is True

    def test_title(self):
        assert Property(name='first_name').get_title() == 'First name'
        assert Property(name='first_name', title='Given name').get_title() == 'Given name'


class TestDefinition:
    def test_implicit_id_and_ordering(self):
        definition = Person.definition()
        assert definition.ids == ['id']
        assert definition['id'].mutable == Mutability.IMMUTABLE
        assert definition['id'].type == PropertyType.INTEGER
        assert list(definition) == sorted(definition)

    def test_definition_is_cached_and_read_only(self):
        assert Person.definition() is Person.definition()
        with pytest.raises(TypeError):
            Person.definition()['name'] = Property(name='name')

    def test_feature_properties(self):
        definition = Document.definition()
        assert definition['created_at'].mutable == Mutability.MUTABLE_CREATE_ONLY
        assert definition['updated_at'].type == PropertyType.DATE
        assert definition['deleted_at'].null is True
        assert definition['deleted_at'].rules == 'timestamp|db_timestamp'

    def test_belongs_to_keys(self):
        definition = Car.definition()
        relation = definition['person']
        assert relation.relation_type == RelationKind.BELONGS_TO
        assert relation.local_key == 'person_id'
        assert relation.foreign_key == 'id'
        assert relation.persisted is False
        assert definition['person_id'].type == PropertyType.INTEGER

    def test_has_one_and_has_many_keys(self):
        definition = Person.definition()
        assert definition['garage'].local_key == 'id'
        assert definition['garage'].foreign_key == 'person_id'
        assert definition['cars'].foreign_key == 'person_id'
        assert definition['cars'].in_array is False

    def test_belongs_to_many_keys(self):
        relation = Group.definition()['people']
        assert relation.local_key == 'group_id'
        assert relation.foreign_key == 'person_id'
        assert relation.pivot_tablename == 'GroupPerson'

    def test_polymorphic_keys(self):
        definition = Comment.definition()
        assert definition['commentable'].relation_type == RelationKind.POLYMORPHIC
        assert definition['commentable_type'].type == PropertyType.STRING
        assert definition['commentable_id'].type == PropertyType.INTEGER

    def test_encrypted_properties_get_the_encrypt_rule(self):
        assert Secret.definition()['value'].rules == 'encrypt'

    def test_relation_without_target_is_rejected(self):
        class Orphan(Model):
            properties = {'owner': {'relation_type': RelationKind.HAS_ONE}}

        with pytest.raises(DefinitionError):
            Orphan.definition()

    def test_unknown_id_property_is_rejected(self):
        class Keyless(Model):
            id_properties = ['code']
            properties = {'name': {'type': PropertyType.STRING}}

        with pytest.raises(DefinitionError):
            Keyless.definition()

    def test_reset_rebuilds(self):
        first = Garage.definition()
        definition_registry.reset(Garage)
        assert Garage.definition() is not first


def test_tablename():
    assert Garage.tablename() == 'Garages'
    assert Secret.tablename() == 'secrets'


def test_underscore():
    assert underscore('GroupPerson') == 'group_person'
    assert underscore('Person') == 'person'
