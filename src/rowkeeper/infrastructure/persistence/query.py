"""Query builder producing records for a repository."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from rowkeeper.core.logging import get_logger

if TYPE_CHECKING:
    from rowkeeper.domain.entities.record import Record
    from rowkeeper.infrastructure.persistence.repositories.repository import Repository

logger = get_logger(__name__)


class RecordQuery:
    """A query against the table of one repository.

    Conditions added with ``and_where`` are AND-ed together. Results are
    populated into records through the repository, so the after-find hook
    fires once per fetched record.

    Example:
        records = (
            repository.find()
            .and_where({"status": "active"})
            .order_by("-created_at")
            .limit(10)
            .all()
        )
    """

    def __init__(self, repository: "Repository") -> None:
        self.repository = repository
        self.condition: dict[str, Any] = {}
        self._order_by: list[str] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def and_where(self, condition: Mapping[str, Any]) -> "RecordQuery":
        """Add equality/membership constraints.

        Raises:
            ValueError: If an attribute is already constrained to a different value.
        """
        for name, value in condition.items():
            if name in self.condition and self.condition[name] != value:
                raise ValueError(f"Attribute {name!r} is already constrained to {self.condition[name]!r}")
            self.condition[name] = value
        return self

    def order_by(self, *columns: str) -> "RecordQuery":
        """Sort by columns; prefix a name with ``-`` for descending order."""
        self._order_by.extend(columns)
        return self

    def limit(self, limit: int | None) -> "RecordQuery":
        self._limit = limit
        return self

    def offset(self, offset: int | None) -> "RecordQuery":
        self._offset = offset
        return self

    def _fetch(self, limit: int | None) -> list[dict[str, Any]]:
        repository = self.repository
        rows = repository.data_store.select(
            repository.table_name,
            repository.select_columns(),
            self.condition,
            order_by=tuple(self._order_by),
            limit=limit,
            offset=self._offset,
        )
        logger.debug(
            "Query executed",
            table=repository.table_name,
            condition=self.condition,
            rows=len(rows),
        )
        return rows

    def one(self) -> "Record | None":
        """Return the first matching record, or None."""
        rows = self._fetch(1)
        if not rows:
            return None
        return self.repository.create_records(rows)[0]

    def all(self) -> "list[Record]":
        return self.repository.create_records(self._fetch(self._limit))

    def count(self) -> int:
        repository = self.repository
        return repository.data_store.count(repository.table_name, self.condition)

    def exists(self) -> bool:
        return bool(self._fetch(1))


class QueryBuilder:
    """Creates queries for repositories.

    Override ``new_query`` to return a ``RecordQuery`` subclass with extra
    scopes.
    """

    query_class = RecordQuery

    def new_query(self, repository: "Repository") -> RecordQuery:
        return self.query_class(repository)
