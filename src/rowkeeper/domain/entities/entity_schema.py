"""Entity schema: the capability set describing one persisted entity.

A repository is not subclassed per entity. Instead every entity is described
by an ``EntitySchema`` naming its table, attributes, primary key, optional
optimistic-lock column and transaction policy.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Literal

from rowkeeper.domain.entities.transaction_policy import TransactionPolicy

if TYPE_CHECKING:
    from rowkeeper.domain.entities.record import Record
    from rowkeeper.domain.services.record_validator import RecordValidationError


class FieldType(str, Enum):
    """Supported attribute types."""

    ANY = "any"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    EMAIL = "email"
    URL = "url"
    JSON = "json"


@dataclass(frozen=True)
class FieldSpec:
    """A declared attribute.

    Attributes:
        name: Attribute (and column) name.
        type: Expected value type, checked by ``Record.validate``.
        required: Whether the attribute must be present and not None.
    """

    name: str
    type: FieldType = FieldType.ANY
    required: bool = False


# Extra validation callables receive the record and the attribute names being
# validated, and yield errors.
RecordRule = Callable[["Record", Sequence[str]], Iterable["RecordValidationError"]]


@dataclass(frozen=True)
class EntitySchema:
    """Capability set for one entity.

    Attributes:
        table_name: Physical table name.
        fields: Declared attributes in order.
        primary_key: Primary key attribute names. Empty means "ask the data
            store" when the repository binds to the table.
        lock_column: Attribute holding the optimistic-lock version, if any.
        transactions: Which operations run inside a transaction per scenario.
        unknown_columns: How table columns that are not declared attributes
            are treated. None means use the configured default.
        rules: Extra validation callables.
    """

    table_name: str
    fields: tuple[FieldSpec, ...]
    primary_key: tuple[str, ...] = ()
    lock_column: str | None = None
    transactions: TransactionPolicy = field(default_factory=TransactionPolicy)
    unknown_columns: Literal["reject", "ignore"] | None = None
    rules: tuple[RecordRule, ...] = ()

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if not names:
            raise ValueError(f"Entity {self.table_name!r} must declare at least one attribute")
        if len(set(names)) != len(names):
            raise ValueError(f"Entity {self.table_name!r} declares duplicate attributes")
        for name in self.primary_key:
            if name not in names:
                raise ValueError(f"Primary key {name!r} is not an attribute of {self.table_name!r}")
        if self.lock_column is not None and self.lock_column not in names:
            raise ValueError(
                f"Lock column {self.lock_column!r} is not an attribute of {self.table_name!r}"
            )

    @property
    def attributes(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def field_for(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    @classmethod
    def build(
        cls,
        table_name: str,
        attributes: Iterable[str | FieldSpec],
        **options,
    ) -> "EntitySchema":
        """Build a schema from plain attribute names and/or ``FieldSpec`` objects.

        Example:
            EntitySchema.build(
                "customers",
                ["id", FieldSpec("email", FieldType.EMAIL, required=True), "version"],
                primary_key=("id",),
                lock_column="version",
            )
        """
        fields = tuple(a if isinstance(a, FieldSpec) else FieldSpec(a) for a in attributes)
        if "primary_key" in options:
            options["primary_key"] = tuple(options["primary_key"])
        return cls(table_name=table_name, fields=fields, **options)
