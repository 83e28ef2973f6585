"""
Transaction Depth Tests

Only the outermost level of nested lifecycle operations reaches the driver.
"""

from unittest.mock import Mock

import pytest

from starorm import Driver, Model
from starorm.persistence import TransactionManager

from models import Ledger


@pytest.fixture
def mock_driver():
    driver = Mock(spec=Driver)
    driver.in_transaction.return_value = False
    return driver


@pytest.fixture
def manager(mock_driver):
    return TransactionManager(lambda: mock_driver)


class TestTransactionManager:
    def test_nested_levels_begin_once(self, manager, mock_driver):
        manager.start()
        manager.start()
        manager.start()
        assert manager.depth() == 3

        manager.commit()
        manager.commit()
        manager.rollback()

        mock_driver.begin_transaction.assert_called_once_with(None)
        mock_driver.rollback.assert_called_once_with(None)
        mock_driver.commit.assert_not_called()
        assert manager.depth() == 0

    def test_outermost_commit_reaches_the_driver(self, manager, mock_driver):
        manager.start()
        manager.start()
        manager.commit()
        mock_driver.commit.assert_not_called()
        manager.commit()
        mock_driver.commit.assert_called_once_with(None)

    def test_joining_an_open_transaction(self, manager, mock_driver):
        mock_driver.in_transaction.return_value = True

        manager.start()
        assert manager.depth() == 2
        mock_driver.begin_transaction.assert_not_called()

        manager.commit()
        assert manager.depth() == 1
        mock_driver.commit.assert_not_called()

    def test_unbalanced_calls_are_ignored(self, manager, mock_driver):
        manager.commit()
        manager.rollback()
        assert manager.depth() == 0
        mock_driver.commit.assert_not_called()
        mock_driver.rollback.assert_not_called()

    def test_depth_is_per_connection(self, manager, mock_driver):
        manager.start()
        manager.start('reporting')
        assert (manager.depth(), manager.depth('reporting')) == (1, 1)
        manager.commit('reporting')
        mock_driver.commit.assert_called_once_with('reporting')

    def test_context_manager(self, manager, mock_driver):
        with manager.transaction():
            assert manager.depth() == 1
        mock_driver.commit.assert_called_once_with(None)

        with pytest.raises(KeyError):
            with manager.transaction():
                raise KeyError("boom")
        mock_driver.rollback.assert_called_once_with(None)

    def test_reset(self, manager):
        manager.start()
        manager.reset()
        assert manager.depth() == 0


class TestTransactionalModels:
    def test_create_runs_in_its_own_transaction(self, mock_driver):
        mock_driver.create_model.return_value = True
        mock_driver.get_created_id.return_value = 5
        Model.set_driver(mock_driver)

        ledger = Ledger()
        assert ledger.create({'amount': 10}) is True
        assert ledger.id() == 5
        mock_driver.begin_transaction.assert_called_once_with(None)
        mock_driver.commit.assert_called_once_with(None)
        mock_driver.rollback.assert_not_called()

    def test_failed_validation_rolls_back(self, mock_driver):
        Model.set_driver(mock_driver)

        ledger = Ledger()
        assert ledger.create({'amount': -1}) is False
        mock_driver.create_model.assert_not_called()
        mock_driver.rollback.assert_called_once_with(None)

    def test_driver_errors_roll_back_and_propagate(self, mock_driver):
        mock_driver.create_model.side_effect = RuntimeError("disk full")
        Model.set_driver(mock_driver)

        with pytest.raises(RuntimeError):
            Ledger().create({'amount': 1})
        mock_driver.rollback.assert_called_once_with(None)
