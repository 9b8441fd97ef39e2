"""Exceptions raised by the persistence layer.

Validation failures and vetoed operations are not exceptions: they are
reported through the boolean/``False`` return values of the repository.
"""

from typing import Any


class RowkeeperError(Exception):
    """Base class for all rowkeeper errors."""


class ConfigurationError(RowkeeperError):
    """Raised when an entity or the data store is misconfigured.

    Examples are a missing primary key, a table that does not exist, or a
    table whose columns do not match the declared attributes. These errors
    are never caught internally.
    """


class StaleRecordError(RowkeeperError):
    """Raised when a version-guarded write affects zero rows.

    The row was modified or deleted by someone else since the record was
    loaded. Callers are expected to catch this and retry or merge.
    """

    def __init__(self, table_name: str, condition: dict[str, Any], message: str | None = None) -> None:
        if message is None:
            message = f"The record in {table_name!r} being written is outdated."
        super().__init__(message)
        self.table_name = table_name
        self.condition = condition


class UnknownAttributeError(RowkeeperError, KeyError):
    """Raised when accessing an attribute that the entity does not declare."""

    def __init__(self, table_name: str, name: str) -> None:
        super().__init__(f"{table_name!r} has no attribute named {name!r}.")
        self.table_name = table_name
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])
