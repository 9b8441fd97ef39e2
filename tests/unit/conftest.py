"""Pytest configuration for unit tests."""

from unittest.mock import MagicMock

import pytest

from rowkeeper.domain.entities.table_schema import TableSchema
from rowkeeper.infrastructure.persistence.store.base import DataStore, TransactionHandle

CUSTOMERS = TableSchema(
    name="customers",
    columns=("id", "name", "email", "version", "visits"),
    primary_key=("id",),
    column_types={"id": int, "name": str, "email": str, "version": int, "visits": int},
)


@pytest.fixture
def transaction() -> MagicMock:
    """Handle yielded by the mock store's transaction()."""
    return MagicMock(spec=TransactionHandle)


@pytest.fixture
def mock_store(transaction: MagicMock) -> MagicMock:
    """Data store mock describing the customers table.

    ``transaction()`` works as a context manager yielding ``transaction`` and
    never swallows exceptions.
    """
    store = MagicMock(spec=DataStore)
    store.table_schema.return_value = CUSTOMERS
    store.transaction.return_value.__enter__.return_value = transaction
    store.transaction.return_value.__exit__.return_value = False
    return store
