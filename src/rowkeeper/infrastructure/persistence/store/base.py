"""Base abstractions for data stores."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from typing import Any

from rowkeeper.domain.entities.table_schema import TableSchema

# Attribute name -> value. A sequence value means "one of", None means IS NULL.
Condition = Mapping[str, Any]


class TransactionHandle(ABC):
    """Handle yielded by ``DataStore.transaction()``."""

    @abstractmethod
    def rollback(self) -> None:
        """Roll back now. Leaving the block afterwards does not commit."""
        ...

    @property
    @abstractmethod
    def is_active(self) -> bool:
        ...


class DataStore(ABC):
    """Abstract relational data store used by repositories.

    Conditions are plain mappings; an empty condition matches every row.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[TransactionHandle]:
        """Open a transaction scope.

        Commits when the block exits normally, rolls back and re-raises when
        it exits with an exception. Nested scopes become savepoints.
        """
        ...

    @abstractmethod
    def in_transaction(self) -> bool:
        ...

    @abstractmethod
    def insert(self, table: str, values: Mapping[str, Any]) -> dict[str, Any] | None:
        """Insert one row.

        Returns:
            The primary key values of the new row, or None if nothing was inserted.
        """
        ...

    @abstractmethod
    def update(self, table: str, values: Mapping[str, Any], condition: Condition) -> int:
        """Update matching rows and return the affected row count."""
        ...

    @abstractmethod
    def update_counters(self, table: str, counters: Mapping[str, int], condition: Condition) -> int:
        """Add each delta to its column in a single statement (NULL counts as 0)."""
        ...

    @abstractmethod
    def delete(self, table: str, condition: Condition) -> int:
        """Delete matching rows and return the affected row count."""
        ...

    @abstractmethod
    def select(
        self,
        table: str,
        columns: Sequence[str],
        condition: Condition | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows as mappings of column name to value.

        ``order_by`` entries are column names, prefixed with ``-`` for
        descending order.
        """
        ...

    @abstractmethod
    def count(self, table: str, condition: Condition | None = None) -> int:
        ...

    @abstractmethod
    def table_schema(self, table: str) -> TableSchema:
        """Describe a table.

        Raises:
            ConfigurationError: If the table does not exist.
        """
        ...
