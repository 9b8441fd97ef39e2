"""In-memory domain record with change tracking."""

from collections.abc import Iterable, Mapping
from typing import Any

from rowkeeper.core.exceptions import UnknownAttributeError
from rowkeeper.domain.entities.entity_schema import EntitySchema
from rowkeeper.domain.services.record_validator import RecordValidationError, RecordValidator


def _is_different(current: Any, old: Any) -> bool:
    """Strict comparison: values of different types are always different."""
    if type(current) is not type(old):
        return True
    return current != old


class Record:
    """A single entity instance bound to an ``EntitySchema``.

    Holds the current attribute values and a snapshot of the values as of the
    last load or save. A record without a snapshot is new (never persisted, or
    detached after a delete).

    Only attributes that have been assigned are *present*; reading an absent
    declared attribute returns None.
    """

    def __init__(self, schema: EntitySchema, values: Mapping[str, Any] | None = None) -> None:
        self._schema = schema
        self._known = frozenset(schema.attributes)
        self._values: dict[str, Any] = {}
        self._old: dict[str, Any] | None = None
        self.scenario = "default"
        self.errors: list[RecordValidationError] = []
        if values:
            for name, value in values.items():
                self.set_attribute(name, value)

    @property
    def schema(self) -> EntitySchema:
        return self._schema

    @property
    def table_name(self) -> str:
        return self._schema.table_name

    def _check(self, name: str) -> None:
        if name not in self._known:
            raise UnknownAttributeError(self._schema.table_name, name)

    def attributes(self) -> tuple[str, ...]:
        return self._schema.attributes

    def has_attribute(self, name: str) -> bool:
        """Check whether the entity declares ``name``."""
        return name in self._known

    def has_value(self, name: str) -> bool:
        """Check whether ``name`` has been assigned a value."""
        return name in self._values

    def get_attribute(self, name: str) -> Any:
        self._check(name)
        return self._values.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        self._check(name)
        self._values[name] = value

    def get_attributes(self, names: Iterable[str] | None = None) -> dict[str, Any]:
        """Return present attribute values, optionally restricted to ``names``."""
        if names is None:
            return dict(self._values)
        result = {}
        for name in names:
            self._check(name)
            if name in self._values:
                result[name] = self._values[name]
        return result

    @property
    def is_new_record(self) -> bool:
        return self._old is None

    @property
    def old_attributes(self) -> dict[str, Any] | None:
        return None if self._old is None else dict(self._old)

    def get_old_attribute(self, name: str) -> Any:
        self._check(name)
        if self._old is None:
            return None
        return self._old.get(name)

    def set_old_attribute(self, name: str, value: Any) -> None:
        self._check(name)
        if self._old is None:
            self._old = {}
        self._old[name] = value

    def set_old_attributes(self, values: Mapping[str, Any] | None) -> None:
        """Replace the snapshot. None detaches the record, making it new again."""
        if values is None:
            self._old = None
            return
        for name in values:
            self._check(name)
        self._old = dict(values)

    def get_dirty_attributes(self, names: Iterable[str] | None = None) -> dict[str, Any]:
        """Return present attributes whose value differs from the snapshot.

        Without a snapshot every present attribute is dirty.

        Args:
            names: Attribute names to consider. Defaults to all declared attributes.
        """
        if names is None:
            names = self._schema.attributes
        else:
            names = list(names)
            for name in names:
                self._check(name)

        dirty = {}
        for name in names:
            if name not in self._values:
                continue
            value = self._values[name]
            if self._old is None or name not in self._old or _is_different(value, self._old[name]):
                dirty[name] = value
        return dirty

    def is_attribute_changed(self, name: str) -> bool:
        self._check(name)
        if name not in self._values:
            return False
        if self._old is None or name not in self._old:
            return True
        return _is_different(self._values[name], self._old[name])

    def validate(self, names: Iterable[str] | None = None) -> bool:
        """Validate ``names`` (default: all declared attributes).

        Errors are stored in ``errors``, replacing those of the previous call.
        """
        names = self._schema.attributes if names is None else tuple(names)
        self.errors = RecordValidator.validate_record(self, names)
        return not self.errors

    def has_errors(self) -> bool:
        return bool(self.errors)

    def __getitem__(self, name: str) -> Any:
        return self.get_attribute(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set_attribute(name, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._values

    def __repr__(self) -> str:
        state = "new" if self.is_new_record else "persisted"
        return f"<Record {self._schema.table_name} {state} {self._values!r}>"
