"""
Relation Tests

Lazy loading, caching and the attach / detach / save / create / sync
operations of every relation variant.
"""

import pytest

from starorm import BelongsTo, BelongsToMany, HasMany, HasOne, Model, ModelException, Polymorphic, PropertyType
from starorm.relations import Pivot

from models import Car, Comment, Garage, Group, Person


class Sticker(Model):
    properties = {
        'label': {'type': PropertyType.STRING},
        'target': {'morphs_to': {'car': 'Car'}, 'local_key': 'attached'},
    }


@pytest.fixture
def owner():
    model = Person()
    model.create_or_fail({'name': 'Owner'})
    return model


class TestBelongsTo:
    def test_lazy_load_is_cached(self, owner, driver):
        car = Car()
        car.create_or_fail({'name': 'Beetle', 'plate': 'A', 'person_id': owner.id()})
        car = Car.find(car.id())
        driver.reset_metrics()

        assert car['person']['name'] == 'Owner'
        assert car['person']['name'] == 'Owner'
        assert driver.get_metrics()['queries'] == 1
        assert isinstance(car.get_relationship('person'), BelongsTo)

    def test_reassigning_the_key_invalidates_the_cache(self, owner):
        other = Person()
        other.create_or_fail({'name': 'Other'})
        car = Car()
        car.create_or_fail({'name': 'Beetle', 'plate': 'A', 'person': owner})
        assert car['person'] is owner

        car['person_id'] = other.id()
        assert car['person']['name'] == 'Other'

    def test_assigning_a_model_stages_the_key(self, owner):
        car = Car({'name': 'Beetle', 'plate': 'A'})
        car['person'] = owner
        assert car['person_id'] == owner.id()
        car['person'] = None
        assert car['person_id'] is None

    def test_assigning_anything_else_fails(self):
        with pytest.raises(ModelException):
            Car()['person'] = 5

    def test_unsaved_related_models_are_saved_first(self, driver):
        car = Car()
        assert car.create({'name': 'Beetle', 'plate': 'A', 'person': Person({'name': 'New'})})
        assert car['person_id'] == 1
        assert driver.rows(Person.tablename())[0]['name'] == 'New'

    def test_invalid_related_model_fails_the_save(self, driver):
        car = Car()
        assert car.create({'name': 'Beetle', 'plate': 'A', 'person': Person({'name': ''})}) is False
        assert car.errors.has('person')
        assert driver.get_metrics()['creates'] == 0

    def test_attach_and_detach(self, owner):
        car = Car()
        car.create_or_fail({'name': 'Beetle', 'plate': 'A'})
        relation = car.get_relationship('person')

        relation.attach(owner)
        assert Car.find(car.id())['person_id'] == owner.id()

        relation.detach()
        assert Car.find(car.id())['person_id'] is None

    def test_null_key_is_empty(self):
        car = Car()
        car.create_or_fail({'name': 'Beetle', 'plate': 'A'})
        assert car['person'] is None


class TestHasOne:
    def test_results_and_save(self, owner):
        relation = owner.get_relationship('garage')
        assert isinstance(relation, HasOne)
        assert relation.get_results() is None

        garage = relation.create({'size': 4})
        assert garage['person_id'] == owner.id()
        owner.clear_relation('garage')
        assert owner['garage']['size'] == 4

        relation.detach()
        assert Garage.find(garage.id())['person_id'] is None

    def test_unsaved_local_model_is_empty(self):
        assert Person()['garage'] is None


class TestHasMany:
    def test_collection(self, owner):
        relation = owner.get_relationship('cars')
        assert isinstance(relation, HasMany)
        relation.create({'name': 'Beetle', 'plate': 'A'})
        relation.save(Car({'name': 'Golf', 'plate': 'B'}))

        assert [car['plate'] for car in owner['cars']] == ['A', 'B']
        assert Person()['cars'] == []

    def test_detach_needs_a_model(self, owner):
        with pytest.raises(ValueError):
            owner.get_relationship('cars').detach()

    def test_sync_deletes_the_rest(self, owner):
        relation = owner.get_relationship('cars')
        keep = relation.create({'name': 'Beetle', 'plate': 'A'})
        relation.create({'name': 'Golf', 'plate': 'B'})
        relation.create({'name': 'Polo', 'plate': 'C'})

        assert relation.sync([keep.id()]) == 2
        assert [car.id() for car in Car.all()] == [keep.id()]


class TestBelongsToMany:
    def test_attach_detach_and_sync(self, owner, driver):
        group = Group()
        group.create_or_fail({'name': 'Drivers'})
        other = Person()
        other.create_or_fail({'name': 'Other'})

        relation = group.get_relationship('people')
        assert isinstance(relation, BelongsToMany)
        attached = relation.attach(owner)
        relation.attach(other)

        assert isinstance(attached.pivot, Pivot)
        assert attached.pivot.ids() == {'group_id': group.id(), 'person_id': owner.id()}
        assert sorted(p['name'] for p in group['people']) == ['Other', 'Owner']
        assert len(driver.rows('GroupPerson')) == 2

        relation.detach(other)
        group.clear_relation('people')
        assert [p['name'] for p in group['people']] == ['Owner']

        relation.attach(other)
        assert relation.sync([other.id()]) == 1
        assert driver.rows('GroupPerson') == [{'group_id': group.id(), 'person_id': other.id()}]

    def test_pivot_models_are_shared(self):
        first = Group().get_relationship('people').pivot_class
        second = Group().get_relationship('people').pivot_class
        assert first is second
        assert first.tablename() == 'GroupPerson'
        assert first.definition().ids == ['group_id', 'person_id']

    def test_unsaved_local_model_is_empty(self):
        assert Group()['people'] == []


class TestPolymorphic:
    def test_assignment_resolves_by_type(self, owner):
        car = Car()
        car.create_or_fail({'name': 'Beetle', 'plate': 'A'})
        garage = Garage()
        garage.create_or_fail({'size': 2})

        on_car = Comment()
        on_car.create_or_fail({'body': 'Nice', 'commentable': car})
        on_garage = Comment()
        on_garage.create_or_fail({'body': 'Roomy', 'commentable': garage})

        assert on_car['commentable_type'] == 'car'
        assert Comment.find(on_car.id())['commentable']['plate'] == 'A'
        assert Comment.find(on_garage.id())['commentable']['size'] == 2
        assert isinstance(on_car.get_relationship('commentable'), Polymorphic)

    def test_companion_keys_follow_the_local_key(self, driver):
        definition = Sticker.definition()
        assert 'attached_type' in definition and 'attached_id' in definition
        assert 'target_type' not in definition

        car = Car()
        car.create_or_fail({'name': 'Beetle', 'plate': 'A'})
        sticker = Sticker()
        sticker.create_or_fail({'label': 'Fragile', 'target': car})

        row = driver.rows(Sticker.tablename())[0]
        assert (row['attached_type'], row['attached_id']) == ('car', car.id())
        assert Sticker.find(sticker.id())['target']['plate'] == 'A'

    def test_unknown_type_is_empty(self):
        comment = Comment()
        comment.create_or_fail({'body': 'Hm', 'commentable_type': 'boat', 'commentable_id': 1})
        assert Comment.find(comment.id())['commentable'] is None

    def test_attach_and_detach(self):
        garage = Garage()
        garage.create_or_fail({'size': 2})
        comment = Comment()
        comment.create_or_fail({'body': 'Hm'})

        relation = comment.get_relationship('commentable')
        relation.attach(garage)
        stored = Comment.find(comment.id())
        assert (stored['commentable_type'], stored['commentable_id']) == ('garage', garage.id())

        relation.detach()
        assert Comment.find(comment.id())['commentable_type'] is None

    def test_invalid_target(self, owner):
        with pytest.raises(ModelException):
            Comment()['commentable'] = owner


def test_non_relation_name(owner):
    with pytest.raises(ModelException):
        owner.get_relationship('name')
