"""Record validation against declared attribute types.

Checks the type of every validated attribute and that required attributes are
present. Extra entity rules run afterwards.
"""

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from rowkeeper.domain.entities.entity_schema import FieldType

if TYPE_CHECKING:
    from rowkeeper.domain.entities.record import Record


# Email validation pattern (simplified but effective)
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# URL validation pattern (simplified)
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


@dataclass
class RecordValidationError:
    """A single record validation error."""

    field: str
    message: str
    code: str


def _type_error(field_name: str, expected: str, value: Any) -> RecordValidationError:
    return RecordValidationError(
        field=field_name,
        message=f"Expected {expected} value, got {type(value).__name__}",
        code="invalid_type",
    )


class RecordValidator:
    """Validator for record attribute values."""

    @classmethod
    def validate_text(cls, value: Any, field_name: str) -> RecordValidationError | None:
        if not isinstance(value, str):
            return _type_error(field_name, "text", value)
        return None

    @classmethod
    def validate_integer(cls, value: Any, field_name: str) -> RecordValidationError | None:
        if not isinstance(value, int) or isinstance(value, bool):
            return _type_error(field_name, "integer", value)
        return None

    @classmethod
    def validate_number(cls, value: Any, field_name: str) -> RecordValidationError | None:
        if not isinstance(value, (int, float, Decimal)) or isinstance(value, bool):
            return _type_error(field_name, "number", value)
        return None

    @classmethod
    def validate_boolean(cls, value: Any, field_name: str) -> RecordValidationError | None:
        if not isinstance(value, bool):
            return _type_error(field_name, "boolean", value)
        return None

    @classmethod
    def validate_datetime(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate a datetime value.

        Accepts datetime objects or ISO 8601 formatted strings.
        """
        if isinstance(value, datetime):
            return None

        if isinstance(value, str):
            try:
                datetime.fromisoformat(value.replace("Z", "+00:00"))
                return None
            except ValueError:
                return RecordValidationError(
                    field=field_name,
                    message="Invalid datetime format. Use ISO 8601 format (e.g., 2024-01-01T12:00:00Z)",
                    code="invalid_datetime_format",
                )

        return _type_error(field_name, "datetime", value)

    @classmethod
    def validate_date(cls, value: Any, field_name: str) -> RecordValidationError | None:
        if isinstance(value, date) and not isinstance(value, datetime):
            return None

        if isinstance(value, str):
            try:
                date.fromisoformat(value)
                return None
            except ValueError:
                return RecordValidationError(
                    field=field_name,
                    message="Invalid date format. Use YYYY-MM-DD",
                    code="invalid_date_format",
                )

        return _type_error(field_name, "date", value)

    @classmethod
    def validate_email(cls, value: Any, field_name: str) -> RecordValidationError | None:
        if not isinstance(value, str):
            return _type_error(field_name, "email", value)

        if not EMAIL_PATTERN.match(value):
            return RecordValidationError(
                field=field_name,
                message="Invalid email format",
                code="invalid_email_format",
            )

        return None

    @classmethod
    def validate_url(cls, value: Any, field_name: str) -> RecordValidationError | None:
        if not isinstance(value, str):
            return _type_error(field_name, "URL", value)

        if not URL_PATTERN.match(value):
            return RecordValidationError(
                field=field_name,
                message="Invalid URL format. Must start with http:// or https://",
                code="invalid_url_format",
            )

        return None

    @classmethod
    def validate_json(cls, value: Any, field_name: str) -> RecordValidationError | None:
        """Validate that a value is JSON-serializable."""
        try:
            json.dumps(value)
            return None
        except (TypeError, ValueError):
            return RecordValidationError(
                field=field_name,
                message="Value must be JSON-serializable (dict, list, string, number, boolean, or null)",
                code="invalid_json",
            )

    @classmethod
    def validate_field_value(
        cls, value: Any, field_type: FieldType, field_name: str
    ) -> RecordValidationError | None:
        """Validate a single non-null value against its declared type."""
        validators = {
            FieldType.TEXT: cls.validate_text,
            FieldType.INTEGER: cls.validate_integer,
            FieldType.NUMBER: cls.validate_number,
            FieldType.BOOLEAN: cls.validate_boolean,
            FieldType.DATETIME: cls.validate_datetime,
            FieldType.DATE: cls.validate_date,
            FieldType.EMAIL: cls.validate_email,
            FieldType.URL: cls.validate_url,
            FieldType.JSON: cls.validate_json,
        }

        validator = validators.get(field_type)
        if validator is None:
            return None
        return validator(value, field_name)

    @classmethod
    def validate_record(
        cls, record: "Record", names: Sequence[str]
    ) -> list[RecordValidationError]:
        """Validate the given attributes of a record.

        Args:
            record: The record to validate.
            names: Attribute names to check.

        Returns:
            List of errors, empty if validation passed.
        """
        errors: list[RecordValidationError] = []
        schema = record.schema

        for name in names:
            spec = schema.field_for(name)
            if spec is None:
                continue

            value = record.get_attribute(name)
            if value is None:
                if spec.required:
                    code = "required_null" if record.has_value(name) else "required_missing"
                    errors.append(
                        RecordValidationError(
                            field=name,
                            message=f"Required attribute '{name}' cannot be empty",
                            code=code,
                        )
                    )
                continue

            error = cls.validate_field_value(value, spec.type, name)
            if error:
                errors.append(error)

        for rule in schema.rules:
            errors.extend(rule(record, names))

        return errors
