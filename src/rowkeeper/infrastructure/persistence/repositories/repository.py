"""Generic repository mediating between records and a data store.

One ``Repository`` class serves every entity: its behaviour is configured by
the ``EntitySchema`` it is constructed with, and its data store is injected.

Write operations follow the same lifecycle:
validate, open a transaction when the record's scenario requires one, run
the before-hook, write the dirty attributes, rebase the record's snapshot,
run the after-hook.
"""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, Literal

from rowkeeper.core.config import get_settings
from rowkeeper.core.exceptions import ConfigurationError, StaleRecordError
from rowkeeper.core.hooks import RepositoryHooks
from rowkeeper.core.logging import get_logger
from rowkeeper.domain.entities.entity_schema import EntitySchema
from rowkeeper.domain.entities.hook_context import HookContext
from rowkeeper.domain.entities.record import Record
from rowkeeper.domain.entities.table_schema import TableSchema
from rowkeeper.domain.entities.transaction_policy import Operation
from rowkeeper.infrastructure.persistence.query import QueryBuilder, RecordQuery
from rowkeeper.infrastructure.persistence.store.base import Condition, DataStore, TransactionHandle

logger = get_logger(__name__)


class Repository:
    """Persistence operations for the records of one entity.

    Example:
        customers = Repository(store, customer_schema)
        record = customers.create({"name": "Ada", "email": "ada@example.com"})
        customers.save(record)
        same = customers.find_one(record["id"])
    """

    def __init__(
        self,
        data_store: DataStore,
        schema: EntitySchema,
        query_builder: QueryBuilder | None = None,
        hooks: RepositoryHooks | None = None,
        unknown_columns: Literal["reject", "ignore"] | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            data_store: Store the records are persisted in.
            schema: Capability set of the entity.
            query_builder: Builder for find queries. Defaults to ``QueryBuilder()``.
            hooks: Hook slots. Defaults to an empty ``RepositoryHooks``.
            unknown_columns: Overrides the schema's and the configured policy
                for table columns no attribute declares.
        """
        self.data_store = data_store
        self.schema = schema
        self.query_builder = query_builder or QueryBuilder()
        self.hooks = hooks or RepositoryHooks()
        self._unknown_columns = unknown_columns
        self._table_schema: TableSchema | None = None

    @property
    def table_name(self) -> str:
        return self.schema.table_name

    @property
    def unknown_columns(self) -> Literal["reject", "ignore"]:
        return self._unknown_columns or self.schema.unknown_columns or get_settings().unknown_columns

    def optimistic_lock(self) -> str | None:
        """Name of the version attribute, or None when locking is off."""
        return self.schema.lock_column

    # Schema binding

    def table_schema(self) -> TableSchema:
        """Return the table schema, binding to the table on first use.

        Raises:
            ConfigurationError: If the table is missing, lacks a declared
                attribute, or has undeclared columns under the "reject" policy.
        """
        if self._table_schema is not None:
            return self._table_schema

        table = self.data_store.table_schema(self.table_name)
        attributes = self.schema.attributes

        missing = [name for name in attributes if not table.has_column(name)]
        if missing:
            raise ConfigurationError(
                f"Table {self.table_name!r} has no column for attributes: {', '.join(missing)}"
            )

        extra = [name for name in table.columns if name not in attributes]
        if extra:
            if self.unknown_columns == "reject":
                raise ConfigurationError(
                    f"Table {self.table_name!r} has columns no attribute declares: {', '.join(extra)}"
                )
            logger.debug("Ignoring undeclared columns", table=self.table_name, columns=extra)

        self._table_schema = table
        logger.debug("Repository bound to table", table=self.table_name, columns=list(table.columns))
        return table

    def select_columns(self) -> tuple[str, ...]:
        self.table_schema()
        return self.schema.attributes

    def primary_key(self) -> tuple[str, ...]:
        """Primary key attribute names, declared or taken from the table."""
        if self.schema.primary_key:
            return self.schema.primary_key
        return self.table_schema().primary_key

    def _require_primary_key(self) -> tuple[str, ...]:
        keys = self.primary_key()
        if not keys:
            raise ConfigurationError(
                f"{self.table_name!r} does not have a primary key. Either define one on the "
                "table or declare it on the entity schema."
            )
        return keys

    def is_primary_key(self, names: Iterable[str]) -> bool:
        """Whether ``names`` is exactly the set of primary key attributes."""
        names = list(names)
        keys = self.primary_key()
        return len(names) == len(keys) and set(names) == set(keys)

    # Records

    def create(self, values: Mapping[str, Any] | None = None) -> Record:
        """Create a new, unsaved record."""
        return Record(self.schema, values)

    def instantiate(self, row: Mapping[str, Any]) -> Record:
        """Create the empty record a fetched row is populated into."""
        return Record(self.schema)

    def populate_record(self, record: Record, row: Mapping[str, Any]) -> None:
        """Assign row values and make them the record's snapshot.

        Raises:
            ConfigurationError: If the row has a column no attribute declares
                and the policy is "reject".
        """
        for name, value in row.items():
            if record.has_attribute(name):
                record.set_attribute(name, value)
            elif self.unknown_columns == "reject":
                raise ConfigurationError(f"Row column {name!r} is not an attribute of {self.table_name!r}")
        record.set_old_attributes(record.get_attributes())

    def create_records(self, rows: Iterable[Mapping[str, Any]]) -> list[Record]:
        """Populate one record per row and run the after-find hook on each."""
        records = []
        for row in rows:
            record = self.instantiate(row)
            self.populate_record(record, row)
            self.hooks.after_find.trigger(record, self._context(record))
            records.append(record)
        return records

    # Finding

    def find(self) -> RecordQuery:
        return self.query_builder.new_query(self)

    def find_one(self, condition: Any) -> Record | None:
        """Find a single record.

        Args:
            condition: A primary key value, a list of primary key values, or a
                mapping of attribute names to values.
        """
        return self._find_by_condition(condition).one()

    def find_all(self, condition: Any) -> list[Record]:
        return self._find_by_condition(condition).all()

    def _find_by_condition(self, condition: Any) -> RecordQuery:
        return self.find().and_where(self._normalize_condition(condition))

    def _normalize_condition(self, condition: Any) -> dict[str, Any]:
        if isinstance(condition, Mapping):
            return dict(condition)
        keys = self.primary_key()
        if not keys:
            raise ConfigurationError(f"{self.table_name!r} must have a primary key.")
        if isinstance(condition, (list, tuple)):
            return {keys[0]: list(condition)}
        return {keys[0]: condition}

    # Writing

    def save(self, record: Record, names: Sequence[str] | None = None) -> bool:
        """Insert a new record or update a persisted one.

        An update writing zero rows still counts as success.
        """
        if record.is_new_record:
            return self.insert(record, names)
        return self.update(record, names) is not False

    def insert(self, record: Record, names: Sequence[str] | None = None) -> bool:
        """Insert the record.

        Returns:
            False if validation failed, a before-hook vetoed, or the store
            inserted nothing. True otherwise.
        """
        self.table_schema()
        if not record.validate(names):
            logger.info(
                "Insert skipped, validation failed",
                table=self.table_name,
                fields=[e.field for e in record.errors],
            )
            return False

        with self._transaction_for(record, Operation.INSERT) as transaction:
            return self._insert_internal(record, names, transaction)

    def _insert_internal(
        self, record: Record, names: Sequence[str] | None, transaction: TransactionHandle | None
    ) -> bool:
        if self.hooks.before_insert.trigger(record, self._context(record)).aborted:
            self._rollback(transaction)
            return False

        values = record.get_dirty_attributes(names)
        primary_key = self.data_store.insert(self.table_name, values)
        if primary_key is None:
            logger.warning("Insert produced no primary key", table=self.table_name)
            self._rollback(transaction)
            return False

        table = self.table_schema()
        for name, value in primary_key.items():
            if record.has_attribute(name) and record.get_attribute(name) is None:
                value = table.typecast(name, value)
                record.set_attribute(name, value)
                values[name] = value

        changed_attributes = {name: None for name in values}
        record.set_old_attributes(values)
        logger.debug("Record inserted", table=self.table_name, primary_key=primary_key)
        self.hooks.after_insert.trigger(
            record, self._context(record, changed_attributes=changed_attributes, rows=1)
        )
        return True

    def update(self, record: Record, names: Sequence[str] | None = None) -> int | Literal[False]:
        """Write the record's dirty attributes.

        Returns:
            The number of affected rows, which may be 0, or False if
            validation failed or a before-hook vetoed.

        Raises:
            StaleRecordError: If optimistic locking is enabled and the row's
                version no longer matches the record's.
        """
        self.table_schema()
        if not record.validate(names):
            logger.info(
                "Update skipped, validation failed",
                table=self.table_name,
                fields=[e.field for e in record.errors],
            )
            return False

        with self._transaction_for(record, Operation.UPDATE) as transaction:
            return self._update_internal(record, names, transaction)

    def _update_internal(
        self, record: Record, names: Sequence[str] | None, transaction: TransactionHandle | None
    ) -> int | Literal[False]:
        if self.hooks.before_update.trigger(record, self._context(record)).aborted:
            self._rollback(transaction)
            return False

        values = record.get_dirty_attributes(names)
        if not values:
            self.hooks.after_update.trigger(record, self._context(record, changed_attributes={}, rows=0))
            return 0

        condition = self.get_old_primary_key(record, as_dict=True)
        lock = self.optimistic_lock()
        if lock is not None:
            version = record.get_attribute(lock)
            values[lock] = (version or 0) + 1
            condition[lock] = version

        rows = self.update_all(values, condition)

        if lock is not None and not rows:
            logger.warning("Stale record on update", table=self.table_name, condition=condition)
            raise StaleRecordError(self.table_name, condition, "The record being updated is outdated.")

        if lock is not None:
            record.set_attribute(lock, values[lock])

        changed_attributes = {}
        for name, value in values.items():
            changed_attributes[name] = record.get_old_attribute(name)
            record.set_old_attribute(name, value)

        self.hooks.after_update.trigger(
            record, self._context(record, changed_attributes=changed_attributes, rows=rows)
        )
        return rows

    def update_attributes(self, record: Record, attributes: Iterable[str] | Mapping[str, Any]) -> int:
        """Write selected attributes directly.

        ``attributes`` is a list of names, or a mapping of names to new values
        that are assigned first. Validation, hooks, locking and transactions
        are skipped.
        """
        self.table_schema()
        if isinstance(attributes, Mapping):
            for name, value in attributes.items():
                record.set_attribute(name, value)
        names = list(attributes)

        values = record.get_dirty_attributes(names)
        if not values:
            return 0

        rows = self.update_all(values, self.get_old_primary_key(record, as_dict=True))
        for name in values:
            record.set_old_attribute(name, record.get_attribute(name))
        return rows

    def update_counters(self, record: Record, counters: Mapping[str, int]) -> bool:
        """Add deltas to counter attributes of this record's row.

        Returns:
            True if the row was found and updated.
        """
        if self.update_all_counters(counters, self.get_old_primary_key(record, as_dict=True)) > 0:
            for name, delta in counters.items():
                value = (record.get_attribute(name) or 0) + delta
                record.set_attribute(name, value)
                record.set_old_attribute(name, value)
            return True
        return False

    def delete(self, record: Record) -> int | Literal[False]:
        """Delete the record's row and detach the record.

        Returns:
            The number of deleted rows (0 if the row was already gone and no
            lock is configured), or False if a before-hook vetoed.

        Raises:
            StaleRecordError: If optimistic locking is enabled and no row
                matched the record's key and version.
        """
        self.table_schema()
        with self._transaction_for(record, Operation.DELETE) as transaction:
            return self._delete_internal(record, transaction)

    def _delete_internal(self, record: Record, transaction: TransactionHandle | None) -> int | Literal[False]:
        if self.hooks.before_delete.trigger(record, self._context(record)).aborted:
            self._rollback(transaction)
            return False

        condition = self.get_old_primary_key(record, as_dict=True)
        lock = self.optimistic_lock()
        if lock is not None:
            condition[lock] = record.get_attribute(lock)

        rows = self.delete_all(condition)
        if lock is not None and not rows:
            logger.warning("Stale record on delete", table=self.table_name, condition=condition)
            raise StaleRecordError(self.table_name, condition, "The record being deleted is outdated.")

        record.set_old_attributes(None)
        self.hooks.after_delete.trigger(record, self._context(record, rows=rows))
        return rows

    # Bulk operations

    def update_all(self, values: Mapping[str, Any], condition: Condition | None = None) -> int:
        """Update every row matching ``condition``. No condition matches all rows."""
        self.table_schema()
        return self.data_store.update(self.table_name, values, condition or {})

    def update_all_counters(self, counters: Mapping[str, int], condition: Condition | None = None) -> int:
        """Add deltas to counter columns of matching rows in one statement."""
        self.table_schema()
        return self.data_store.update_counters(self.table_name, counters, condition or {})

    def delete_all(self, condition: Condition | None = None) -> int:
        self.table_schema()
        return self.data_store.delete(self.table_name, condition or {})

    # Identity

    def get_old_primary_key(self, record: Record, as_dict: bool = False) -> Any:
        """Primary key values as of the last load or save.

        Returns a scalar for single-column keys unless ``as_dict`` is set.
        """
        keys = self._require_primary_key()
        if not as_dict and len(keys) == 1:
            return record.get_old_attribute(keys[0])
        return {name: record.get_old_attribute(name) for name in keys}

    def get_primary_key(self, record: Record, as_dict: bool = False) -> Any:
        """Current primary key values."""
        keys = self._require_primary_key()
        if not as_dict and len(keys) == 1:
            return record.get_attribute(keys[0])
        return {name: record.get_attribute(name) for name in keys}

    def equals(self, source: Record, target: Record) -> bool:
        """Whether two persisted records refer to the same row."""
        if source.is_new_record or target.is_new_record:
            return False
        if source.table_name != target.table_name:
            return False
        left = self.get_primary_key(source, as_dict=True)
        right = self.get_primary_key(target, as_dict=True)
        return all(type(left[name]) is type(right[name]) and left[name] == right[name] for name in left)

    # Helpers

    @contextmanager
    def _transaction_for(self, record: Record, operation: Operation) -> Iterator[TransactionHandle | None]:
        if self.schema.transactions.is_transactional(record.scenario, operation):
            with self.data_store.transaction() as transaction:
                yield transaction
        else:
            yield None

    def _rollback(self, transaction: TransactionHandle | None) -> None:
        if transaction is not None:
            transaction.rollback()

    def _context(self, record: Record, **kwargs: Any) -> HookContext:
        return HookContext(table_name=self.table_name, scenario=record.scenario, **kwargs)
