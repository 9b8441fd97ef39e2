"""Table schema as reported by the data store."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TableSchema:
    """Reflected description of a physical table.

    Attributes:
        name: Table name.
        columns: Column names in table order.
        primary_key: Primary key column names in key order.
        column_types: Python type of each column, None when unknown.
    """

    name: str
    columns: tuple[str, ...]
    primary_key: tuple[str, ...] = ()
    column_types: dict[str, type | None] = field(default_factory=dict, compare=False)

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def typecast(self, name: str, value: Any) -> Any:
        """Cast a value read back from the store to the column's Python type.

        Generated keys come back as whatever the driver produced (often int
        for SQLite rowids, sometimes str). Values that are already of the
        right type, None, or of unknown column type are returned unchanged.
        """
        python_type = self.column_types.get(name)
        if value is None or python_type is None or isinstance(value, python_type):
            return value
        try:
            return python_type(value)
        except (TypeError, ValueError):
            return value
