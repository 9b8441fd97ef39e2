"""Translation of condition mappings into SQLAlchemy WHERE clauses."""

from collections.abc import Mapping, Set
from typing import Any

from sqlalchemy import Table, and_
from sqlalchemy.sql.elements import ColumnElement

from rowkeeper.core.exceptions import ConfigurationError


def is_sequence_value(value: Any) -> bool:
    """Whether a condition value means "one of" rather than equality."""
    return isinstance(value, (list, tuple, Set))


def build_where(table: Table, condition: Mapping[str, Any] | None) -> ColumnElement[bool] | None:
    """Build the WHERE clause for ``condition``.

    Each entry becomes ``column = value``; list, tuple and set values become
    ``column IN (...)`` and None becomes ``column IS NULL``. Entries are
    AND-ed together. An empty or missing condition yields None (no WHERE).

    Raises:
        ConfigurationError: If a condition names a column the table lacks.
    """
    if not condition:
        return None

    clauses = []
    for name, value in condition.items():
        if name not in table.c:
            raise ConfigurationError(f"Table {table.name!r} has no column {name!r}")
        column = table.c[name]
        if value is None:
            clauses.append(column.is_(None))
        elif is_sequence_value(value):
            clauses.append(column.in_(list(value)))
        else:
            clauses.append(column == value)

    if len(clauses) == 1:
        return clauses[0]
    return and_(*clauses)
