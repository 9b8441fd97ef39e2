"""rowkeeper - Repository persistence for records on relational stores.

Tracks changed attributes, wraps writes in transactions per scenario and
detects concurrent modification with optimistic locking.
"""

__version__ = "0.1.0"

from rowkeeper.core.exceptions import (
    ConfigurationError,
    RowkeeperError,
    StaleRecordError,
    UnknownAttributeError,
)
from rowkeeper.core.hooks import RepositoryHooks
from rowkeeper.domain.entities import (
    AbortHookException,
    EntitySchema,
    FieldSpec,
    FieldType,
    HookContext,
    Operation,
    TransactionPolicy,
)
from rowkeeper.domain.entities.record import Record
from rowkeeper.infrastructure.persistence.database import DatabaseManager
from rowkeeper.infrastructure.persistence.repositories import Repository
from rowkeeper.infrastructure.persistence.store import DataStore, SqlDataStore

__all__ = [
    "__version__",
    "AbortHookException",
    "ConfigurationError",
    "DataStore",
    "DatabaseManager",
    "EntitySchema",
    "FieldSpec",
    "FieldType",
    "HookContext",
    "Operation",
    "Record",
    "Repository",
    "RepositoryHooks",
    "RowkeeperError",
    "SqlDataStore",
    "StaleRecordError",
    "TransactionPolicy",
    "UnknownAttributeError",
]
