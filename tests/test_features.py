"""
Feature Tests

🧩 Pluggable Behaviours:
- SoftDelete: deleted_at stamping, scoped queries, restore
- AccessControl: requester permissions checked on every write
- Cacheable: read-through / write-through caching of stored values
- custom features taking over deletion, query scoping and permissions
- the requester held per execution context
"""

import contextvars
from unittest.mock import Mock

import pytest

from starorm import (
    MemoryCachePool, Model, ModelException, ModelFeature, PropertyType, SoftDelete, get_requester,
    requester_context,
)
from starorm.entities import set_default_pool

from models import Document, Person, Profile


class Archived(ModelFeature):
    """Deletes by flagging rows archived and hides them from the default query"""

    def properties(self, model_class):
        return {'archived': {'type': PropertyType.BOOLEAN, 'default': False}}

    def scope_query(self, query):
        return query.where('archived', False)

    def perform_delete(self, model):
        if not model.get_driver().update_model(model, {'archived': True}):
            return False
        model.hydrate_value('archived', True)
        return True

    def is_deleted(self, model):
        return bool(model['archived'])


class ViewOnly(ModelFeature):
    def check_permission(self, model, permission, requester):
        return permission == 'view'


class Note(Model):
    properties = {
        'text': {'type': PropertyType.STRING},
    }
    features = [Archived(), ViewOnly()]


@pytest.fixture
def admin():
    model = Person()
    model.create_or_fail({'name': 'Admin'})
    return model


@pytest.fixture
def document(admin):
    requester_context.set(admin)
    model = Document()
    model.create_or_fail({'title': 'Plan'})
    return model


class TestSoftDelete:
    def test_delete_stamps_deleted_at(self, document, driver):
        assert document.delete() is True

        assert document.is_deleted() is True
        assert document.persisted() is True
        assert driver.rows(Document.tablename())[0]['deleted_at'] is not None

    def test_deleted_models_are_hidden_from_queries(self, document):
        Document().create_or_fail({'title': 'Budget'})
        document.delete()

        assert Document.find(document.id()) is None
        assert Document.count() == 1
        assert Document.with_deleted().count() == 2
        assert [d['title'] for d in Document.all()] == ['Budget']

    def test_restore(self, document):
        document.delete()
        assert document.restore() is True
        assert document.is_deleted() is False
        assert Document.find(document.id())['title'] == 'Plan'

    def test_restore_requires_a_deleted_model(self, document):
        with pytest.raises(ModelException):
            document.restore()


class TestAccessControl:
    def test_without_requester_writes_are_refused(self, driver):
        document = Document()
        assert document.create({'title': 'Plan'}) is False
        assert document.errors.codes() == ['no_permission']
        assert document.errors.all() == ['You do not have permission to do that']
        assert driver.get_metrics()['creates'] == 0

    def test_policy_decides_per_permission(self, document):
        editor = Person()
        editor.create_or_fail({'name': 'Editor'})
        requester_context.set(editor)

        assert document.set({'title': 'Plan B'}) is True
        assert document.delete() is False
        assert document.errors.codes() == ['no_permission']

    def test_can(self, document, admin):
        assert document.can('delete', admin) is True
        assert document.can('edit', None) is False

    def test_grant_and_enforce(self, driver):
        document = Document({'title': 'Plan'})
        document.grant_all_permissions()
        assert document.create() is True

        document.enforce_permissions()
        assert document.set({'title': 'Other'}) is False

    def test_answers_are_cached_per_requester(self, admin):
        policy = Mock(return_value=True)
        requester_context.set_callable(lambda: admin)
        feature = Document.features[2]
        original, feature.policy = feature.policy, policy
        try:
            document = Document()
            document.create_or_fail({'title': 'Plan'})
            document.set({'title': 'A'})
            document.set({'title': 'B'})
        finally:
            feature.policy = original

        assert [call.args[1] for call in policy.call_args_list] == ['create', 'edit']

    def test_model_permission_method(self):
        from starorm import AccessControl, Model, PropertyType

        class Note(Model):
            properties = {'body': {'type': PropertyType.STRING}}
            features = [AccessControl()]

            def has_permission(self, permission, requester):
                return permission == 'create'

        note = Note()
        assert note.create({'body': 'hello'}) is True
        assert note.set({'body': 'changed'}) is False


class TestCacheable:
    def test_reads_come_from_the_cache(self, driver):
        Profile().create_or_fail({'bio': 'Hello'})
        driver.reset_metrics()

        assert Profile(id=1)['bio'] == 'Hello'
        assert driver.get_metrics()['loads'] == 0

    def test_updates_write_through(self, driver):
        profile = Profile()
        profile.create_or_fail({'bio': 'Hello'})
        profile.set({'bio': 'Updated'})
        driver.reset_metrics()

        assert Profile(id=1)['bio'] == 'Updated'
        assert driver.get_metrics()['loads'] == 0

    def test_delete_and_clear_cache_invalidate(self, driver):
        pool = MemoryCachePool()
        set_default_pool(pool)
        profile = Profile()
        profile.create_or_fail({'bio': 'Hello'})
        assert pool.has('models.profile.1')

        profile.clear_cache()
        assert not pool.has('models.profile.1')
        assert profile['bio'] == 'Hello'
        assert driver.get_metrics()['loads'] == 1

        profile.delete()
        assert not pool.has('models.profile.1')


class TestCustomFeatures:
    def test_feature_takes_over_deletion_and_scoping(self, driver):
        note = Note()
        note.create_or_fail({'text': 'draft'})
        Note().create_or_fail({'text': 'final'})

        assert note.delete() is True
        assert note.persisted() is True
        assert note.is_deleted() is True
        assert driver.rows(Note.tablename())[0]['archived'] is True
        assert [n['text'] for n in Note.all()] == ['final']
        assert Note.with_deleted().count() == 2

    def test_restore_needs_a_feature_that_can_undo(self, driver):
        note = Note()
        note.create_or_fail({'text': 'draft'})
        note.delete()
        with pytest.raises(ModelException):
            note.restore()

    def test_permission_answers_come_from_features(self):
        assert Note().can('view', None) is True
        assert Note().can('edit', None) is False
        assert Person().can('edit', None) is True

    def test_get_feature(self):
        assert isinstance(Document.get_feature(SoftDelete), SoftDelete)
        assert Note.get_feature(SoftDelete) is None


class TestRequesterContext:
    def test_copied_context_does_not_leak(self, admin):
        def act_as_guest():
            requester_context.set({'name': 'Guest'})
            return get_requester()

        requester_context.set(admin)
        assert contextvars.copy_context().run(act_as_guest) == {'name': 'Guest'}
        assert get_requester() is admin

    def test_callable_provider(self, admin):
        requester_context.set_callable(lambda: admin)
        assert get_requester() is admin

        requester_context.clear()
        assert get_requester() is None
