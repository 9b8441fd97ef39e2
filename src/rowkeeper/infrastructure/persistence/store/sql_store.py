"""SQLAlchemy Core implementation of the data store.

Outside a transaction every statement runs in its own short-lived connection
that commits on success. Inside ``transaction()`` all statements share the
transaction's connection; nested ``transaction()`` calls use savepoints.
"""

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Connection, Engine, MetaData, Table, delete, func, insert, select, update
from sqlalchemy.engine import NestedTransaction, RootTransaction
from sqlalchemy.exc import NoSuchTableError

from rowkeeper.core.exceptions import ConfigurationError
from rowkeeper.core.logging import get_logger
from rowkeeper.domain.entities.table_schema import TableSchema
from rowkeeper.infrastructure.persistence.conditions import build_where
from rowkeeper.infrastructure.persistence.store.base import (
    Condition,
    DataStore,
    TransactionHandle,
)

logger = get_logger(__name__)


class SqlTransaction(TransactionHandle):
    """Wraps a SQLAlchemy root transaction or savepoint."""

    def __init__(self, transaction: RootTransaction | NestedTransaction, depth: int) -> None:
        self._transaction = transaction
        self.depth = depth

    @property
    def is_active(self) -> bool:
        return self._transaction.is_active

    def rollback(self) -> None:
        if self._transaction.is_active:
            self._transaction.rollback()
            logger.info("Transaction rolled back", depth=self.depth)

    def commit(self) -> None:
        if self._transaction.is_active:
            self._transaction.commit()
            logger.debug("Transaction committed", depth=self.depth)


class SqlDataStore(DataStore):
    """Data store backed by a synchronous SQLAlchemy ``Engine``.

    Tables are reflected on first use and cached.

    Example:
        store = SqlDataStore(create_engine("sqlite:///app.db"))
        with store.transaction():
            store.update("customers", {"name": "Ada"}, {"id": 1})
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._metadata = MetaData()
        self._connection: Connection | None = None
        self._depth = 0

    # Transactions

    def in_transaction(self) -> bool:
        return self._connection is not None

    @contextmanager
    def transaction(self) -> Iterator[SqlTransaction]:
        if self._connection is None:
            with self.engine.connect() as conn:
                self._connection = conn
                try:
                    yield from self._scoped(conn.begin())
                finally:
                    self._connection = None
        else:
            yield from self._scoped(self._connection.begin_nested())

    def _scoped(self, transaction: RootTransaction | NestedTransaction) -> Iterator[SqlTransaction]:
        self._depth += 1
        handle = SqlTransaction(transaction, self._depth)
        logger.debug("Transaction started", depth=self._depth)
        try:
            yield handle
        except BaseException as e:
            if handle.is_active:
                logger.warning(
                    "Rolling back transaction after error",
                    depth=self._depth,
                    error=str(e),
                )
                handle.rollback()
            raise
        else:
            handle.commit()
        finally:
            self._depth -= 1

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
        else:
            with self.engine.begin() as conn:
                yield conn

    # Schema

    def _table(self, name: str) -> Table:
        table = self._metadata.tables.get(name)
        if table is not None:
            return table
        bind = self._connection if self._connection is not None else self.engine
        try:
            table = Table(name, self._metadata, autoload_with=bind)
        except NoSuchTableError as e:
            raise ConfigurationError(f"The table does not exist: {name}") from e
        logger.debug("Table reflected", table=name, columns=[c.name for c in table.columns])
        return table

    def table_schema(self, table: str) -> TableSchema:
        reflected = self._table(table)
        column_types: dict[str, type | None] = {}
        for column in reflected.columns:
            try:
                column_types[column.name] = column.type.python_type
            except NotImplementedError:
                column_types[column.name] = None
        return TableSchema(
            name=table,
            columns=tuple(c.name for c in reflected.columns),
            primary_key=tuple(c.name for c in reflected.primary_key.columns),
            column_types=column_types,
        )

    def forget(self, table: str | None = None) -> None:
        """Drop cached reflection for one table, or for all tables."""
        if table is None:
            self._metadata.clear()
        elif table in self._metadata.tables:
            self._metadata.remove(self._metadata.tables[table])

    # Statements

    def insert(self, table: str, values: Mapping[str, Any]) -> dict[str, Any] | None:
        target = self._table(table)
        with self._connect() as conn:
            result = conn.execute(insert(target).values(dict(values)))
            if result.rowcount == 0:
                logger.warning("Insert affected no rows", table=table)
                return None
            inserted = result.inserted_primary_key
        keys = [c.name for c in target.primary_key.columns]
        primary_key = dict(zip(keys, inserted or ()))
        logger.debug("Row inserted", table=table, columns=list(values), primary_key=primary_key)
        return primary_key

    def update(self, table: str, values: Mapping[str, Any], condition: Condition) -> int:
        if not values:
            return 0
        target = self._table(table)
        stmt = update(target).values(dict(values))
        where = build_where(target, condition)
        if where is not None:
            stmt = stmt.where(where)
        with self._connect() as conn:
            rows = conn.execute(stmt).rowcount
        logger.debug("Rows updated", table=table, columns=list(values), condition=dict(condition), rows=rows)
        return rows

    def update_counters(self, table: str, counters: Mapping[str, int], condition: Condition) -> int:
        if not counters:
            return 0
        target = self._table(table)
        values = {}
        for name, delta in counters.items():
            if name not in target.c:
                raise ConfigurationError(f"Table {table!r} has no column {name!r}")
            values[name] = func.coalesce(target.c[name], 0) + delta
        stmt = update(target).values(values)
        where = build_where(target, condition)
        if where is not None:
            stmt = stmt.where(where)
        with self._connect() as conn:
            rows = conn.execute(stmt).rowcount
        logger.debug("Counters updated", table=table, counters=dict(counters), rows=rows)
        return rows

    def delete(self, table: str, condition: Condition) -> int:
        target = self._table(table)
        stmt = delete(target)
        where = build_where(target, condition)
        if where is not None:
            stmt = stmt.where(where)
        with self._connect() as conn:
            rows = conn.execute(stmt).rowcount
        logger.debug("Rows deleted", table=table, condition=dict(condition), rows=rows)
        return rows

    def select(
        self,
        table: str,
        columns: Sequence[str],
        condition: Condition | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        target = self._table(table)
        stmt = select(*(target.c[name] for name in columns))
        where = build_where(target, condition)
        if where is not None:
            stmt = stmt.where(where)
        for entry in order_by:
            if entry.startswith("-"):
                stmt = stmt.order_by(target.c[entry[1:]].desc())
            else:
                stmt = stmt.order_by(target.c[entry])
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)
        with self._connect() as conn:
            rows = [dict(row._mapping) for row in conn.execute(stmt)]
        logger.debug("Rows selected", table=table, rows=len(rows))
        return rows

    def count(self, table: str, condition: Condition | None = None) -> int:
        target = self._table(table)
        stmt = select(func.count()).select_from(target)
        where = build_where(target, condition)
        if where is not None:
            stmt = stmt.where(where)
        with self._connect() as conn:
            return conn.execute(stmt).scalar_one()
