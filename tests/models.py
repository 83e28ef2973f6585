"""
Model types shared by the test suite.

People own cars and a garage, groups hold people through a pivot table,
comments point at either a car or a garage, and documents exercise the
timestamp, soft delete and access control features together. Ledgers and
invoices are written inside transactions.
"""

from starorm import (
    AccessControl, AutoTimestamps, Cacheable, Model, Mutability, PropertyType, RelationKind, SoftDelete,
)


class Person(Model):
    properties = {
        'name': {'type': PropertyType.STRING, 'required': True, 'validate': 'string:min=2'},
        'email': {'type': PropertyType.STRING, 'validate': 'email', 'unique': True, 'null': True},
        'age': {'type': PropertyType.INTEGER, 'default': 18},
        'status': {'type': PropertyType.STRING, 'mutable': Mutability.MUTABLE_CREATE_ONLY, 'default': 'active'},
        'nickname': {'type': PropertyType.STRING, 'null': True},
        'garage': {'relation': 'Garage', 'relation_type': RelationKind.HAS_ONE},
        'cars': {'relation': 'Car', 'relation_type': RelationKind.HAS_MANY},
    }
    hidden = ['status']
    appended = ['display_name']

    def get_display_name_value(self, value):
        return f"{self['name']} ({self['age']})"

    def set_nickname_value(self, value):
        return value.strip() if isinstance(value, str) else value


class Car(Model):
    properties = {
        'name': {'type': PropertyType.STRING, 'required': True},
        'plate': {'type': PropertyType.STRING, 'required': True},
        'person': {'relation': 'Person', 'null': True},
    }


class Garage(Model):
    properties = {
        'size': {'type': PropertyType.INTEGER, 'default': 1},
        'person': {'relation': Person, 'relation_type': RelationKind.BELONGS_TO, 'null': True},
    }
    features = [AutoTimestamps()]


class Group(Model):
    properties = {
        'name': {'type': PropertyType.STRING, 'required': True},
        'people': {'relation': 'Person', 'relation_type': RelationKind.BELONGS_TO_MANY},
    }


class Comment(Model):
    properties = {
        'body': {'type': PropertyType.STRING},
        'commentable': {'morphs_to': {'car': 'Car', 'garage': 'Garage'}},
    }


def document_policy(model, permission, requester):
    if requester is None:
        return False
    return permission != 'delete' or requester['name'] == 'Admin'


class Document(Model):
    properties = {
        'title': {'type': PropertyType.STRING, 'required': True},
    }
    features = [AutoTimestamps(), SoftDelete(), AccessControl(document_policy)]


class Ledger(Model):
    properties = {
        'amount': {'type': PropertyType.INTEGER, 'required': True, 'validate': 'range:min=0'},
        'memo': {'type': PropertyType.STRING, 'null': True},
    }
    transactional = True


class Profile(Model):
    properties = {
        'bio': {'type': PropertyType.STRING, 'null': True},
    }
    features = [Cacheable(ttl=30)]


class Secret(Model):
    properties = {
        'label': {'type': PropertyType.STRING},
        'value': {'type': PropertyType.STRING, 'encrypted': True},
    }
    table_name = 'secrets'


class Invoice(Model):
    properties = {
        'total': {'type': PropertyType.INTEGER, 'default': 0},
    }
    features = [SoftDelete()]
    transactional = True
