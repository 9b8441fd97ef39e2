"""Data store interface and implementations."""

from rowkeeper.infrastructure.persistence.store.base import (
    Condition,
    DataStore,
    TransactionHandle,
)
from rowkeeper.infrastructure.persistence.store.sql_store import SqlDataStore, SqlTransaction

__all__ = [
    "Condition",
    "DataStore",
    "SqlDataStore",
    "SqlTransaction",
    "TransactionHandle",
]
