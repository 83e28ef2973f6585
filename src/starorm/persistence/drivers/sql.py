"""
SQL Driver - SQLAlchemy Core Backend

🗄️ Relational Storage:
Translates models and structured query descriptors into SQLAlchemy Core
statements. Tables are reflected from the database on first use, so the
schema is owned by the application's migrations rather than by the models.

Connections follow SQLAlchemy's "commit as you go" style: writes outside an
explicit transaction are committed immediately, while ``begin_transaction``
opens a real transaction that stays open until ``commit``/``rollback``.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import MetaData, Table, and_, create_engine, delete, func, insert, select, text, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ...exceptions import DriverException
from ...query.conditions import Operator, RawCondition, SortDirection, split_column
from .interface import AbstractDriver

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION = "default"


class SqlAlchemyDriver(AbstractDriver):
    """
    Driver backed by one or more SQLAlchemy engines.

    Usage:
        driver = SqlAlchemyDriver("sqlite:///app.db")
        Model.set_driver(driver)
    """

    def __init__(self, engine: Union[Engine, str], connections: Optional[Dict[str, Union[Engine, str]]] = None):
        self._engines: Dict[str, Engine] = {DEFAULT_CONNECTION: self._to_engine(engine)}
        for name, other in (connections or {}).items():
            self._engines[name] = self._to_engine(other)
        self._connections: Dict[str, Connection] = {}
        self._transactions: Dict[str, Any] = {}
        self._metadata: Dict[str, MetaData] = {}
        self._last_insert: Dict[str, Any] = {}

    @staticmethod
    def _to_engine(engine: Union[Engine, str]) -> Engine:
        return create_engine(engine) if isinstance(engine, str) else engine

    # ----- connections -----

    def get_connection(self, name: Optional[str] = None) -> Connection:
        name = name or DEFAULT_CONNECTION
        if name not in self._connections:
            if name not in self._engines:
                raise DriverException(f"No connection named '{name}'", operation="connect")
            self._connections[name] = self._engines[name].connect()
        return self._connections[name]

    def _table(self, tablename: str, connection: Optional[str] = None) -> Table:
        name = connection or DEFAULT_CONNECTION
        metadata = self._metadata.setdefault(name, MetaData())
        if tablename in metadata.tables:
            return metadata.tables[tablename]
        return Table(tablename, metadata, autoload_with=self.get_connection(name))

    def _finish(self, connection: Optional[str]) -> None:
        """Commit the implicit transaction unless an explicit one is open"""
        name = connection or DEFAULT_CONNECTION
        conn = self.get_connection(name)
        if name not in self._transactions and conn.in_transaction():
            conn.commit()

    def _execute(self, operation: str, connection: Optional[str], build):
        try:
            conn = self.get_connection(connection)
            result = build(conn)
            self._finish(connection)
            return result
        except (SQLAlchemyError, KeyError) as e:
            logger.error(f"Error during {operation}: {e}")
            name = connection or DEFAULT_CONNECTION
            conn = self._connections.get(name)
            if name not in self._transactions and conn is not None and conn.in_transaction():
                conn.rollback()
            raise DriverException(f"An error occurred in the database driver during {operation}: {e}",
                                  operation=operation, cause=e) from e

    # ----- statement building -----

    def _column(self, column: str, tables: Dict[str, Table], default: Table):
        tablename, name = split_column(column, default.name)
        table = tables.get(tablename, default)
        return table.c[name]

    def _condition(self, condition, tables: Dict[str, Table], default: Table):
        if isinstance(condition, RawCondition):
            return text(condition.sql)

        col = self._column(condition.column, tables, default)
        op, value = condition.operator, condition.value
        if not isinstance(value, list):
            value = self.serialize_value(value)

        if op == Operator.EQUALS:
            return col == value
        if op == Operator.NOT_EQUALS:
            return col != value
        if op == Operator.GREATER_THAN:
            return col > value
        if op == Operator.GREATER_THAN_OR_EQUAL:
            return col >= value
        if op == Operator.LESS_THAN:
            return col < value
        if op == Operator.LESS_THAN_OR_EQUAL:
            return col <= value
        if op == Operator.IN:
            return col.in_([self.serialize_value(v) for v in value])
        if op == Operator.NOT_IN:
            return col.not_in([self.serialize_value(v) for v in value])
        if op == Operator.LIKE:
            return col.like(value)
        if op == Operator.NOT_LIKE:
            return col.not_like(value)
        if op == Operator.IS:
            return col.is_(value)
        return col.is_not(value)

    def _filtered(self, statement, query, connection: Optional[str]):
        main = self._table(query.model_class.tablename(), connection)
        tables = {main.name: main}
        for join in query.get_joins():
            joined = self._table(join.tablename, connection)
            tables[joined.name] = joined
            statement = statement.join_from(
                main, joined, main.c[join.local_column] == joined.c[join.foreign_key])
        clauses = [self._condition(c, tables, main) for c in query.get_where()]
        if clauses:
            statement = statement.where(and_(*clauses))
        return statement, main, tables

    def _identity(self, model, table: Table):
        return and_(*[table.c[name] == value for name, value in model.ids().items()])

    # ----- driver contract -----

    def create_model(self, model, values):
        def run(conn):
            table = self._table(model.tablename(), model.connection)
            result = conn.execute(insert(table).values(**self.serialize(values)))
            key = result.inserted_primary_key
            self._last_insert[model.tablename()] = key[0] if key else None
            return True

        return self._execute(f"create {model.model_name()}", model.connection, run)

    def get_created_id(self, model, property_name):
        return self._last_insert.get(model.tablename())

    def load_model(self, model):
        def run(conn):
            table = self._table(model.tablename(), model.connection)
            row = conn.execute(select(table).where(self._identity(model, table)).limit(1)).mappings().first()
            return dict(row) if row is not None else None

        return self._execute(f"load {model.model_name()}", model.connection, run)

    def query_models(self, query):
        connection = query.model_class.connection

        def run(conn):
            main = self._table(query.model_class.tablename(), connection)
            statement, main, tables = self._filtered(select(main), query, connection)
            for sort in query.get_sort():
                col = self._column(sort.column, tables, main)
                statement = statement.order_by(col.desc() if sort.direction == SortDirection.DESC else col.asc())
            statement = statement.limit(query.get_limit()).offset(query.get_start())
            return [dict(row) for row in conn.execute(statement).mappings()]

        return self._execute(f"query {query.model_class.model_name()}", connection, run)

    def update_model(self, model, values):
        if not values:
            return True

        def run(conn):
            table = self._table(model.tablename(), model.connection)
            conn.execute(update(table).where(self._identity(model, table)).values(**self.serialize(values)))
            return True

        return self._execute(f"update {model.model_name()}", model.connection, run)

    def delete_model(self, model):
        def run(conn):
            table = self._table(model.tablename(), model.connection)
            conn.execute(delete(table).where(self._identity(model, table)))
            return True

        return self._execute(f"delete {model.model_name()}", model.connection, run)

    def _aggregate(self, query, function, field: Optional[str], operation: str):
        connection = query.model_class.connection

        def run(conn):
            main = self._table(query.model_class.tablename(), connection)
            target = function(main.c[field]) if field else function()
            statement, _, _ = self._filtered(select(target).select_from(main), query, connection)
            return conn.execute(statement).scalar()

        return self._execute(f"{operation} {query.model_class.model_name()}", connection, run)

    def count(self, query):
        return int(self._aggregate(query, func.count, None, "count") or 0)

    def sum(self, query, field):
        return self._aggregate(query, func.sum, field, "sum") or 0

    def average(self, query, field):
        return self._aggregate(query, func.avg, field, "average") or 0

    def max(self, query, field):
        return self._aggregate(query, func.max, field, "max")

    def min(self, query, field):
        return self._aggregate(query, func.min, field, "min")

    def begin_transaction(self, connection=None):
        name = connection or DEFAULT_CONNECTION
        try:
            self._transactions[name] = self.get_connection(name).begin()
        except SQLAlchemyError as e:
            logger.error(f"Error beginning transaction: {e}")
            raise DriverException("Could not begin transaction", operation="begin transaction", cause=e) from e

    def commit(self, connection=None):
        name = connection or DEFAULT_CONNECTION
        try:
            transaction = self._transactions.pop(name, None)
            if transaction is not None:
                transaction.commit()
            else:
                self.get_connection(name).commit()
        except SQLAlchemyError as e:
            logger.error(f"Error committing transaction: {e}")
            raise DriverException("Could not commit transaction", operation="commit", cause=e) from e

    def rollback(self, connection=None):
        name = connection or DEFAULT_CONNECTION
        try:
            transaction = self._transactions.pop(name, None)
            if transaction is not None:
                transaction.rollback()
            else:
                self.get_connection(name).rollback()
        except SQLAlchemyError as e:
            logger.error(f"Error rolling back transaction: {e}")
            raise DriverException("Could not roll back transaction", operation="rollback", cause=e) from e

    def in_transaction(self, connection=None):
        name = connection or DEFAULT_CONNECTION
        return name in self._transactions or self.get_connection(name).in_transaction()

    def close(self) -> None:
        for connection in self._connections.values():
            connection.close()
        self._connections.clear()
        self._transactions.clear()
        logger.info("SQL driver closed")


__all__ = ['SqlAlchemyDriver']
