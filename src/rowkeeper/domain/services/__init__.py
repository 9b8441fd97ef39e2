"""Domain services for rowkeeper."""

from rowkeeper.domain.services.record_validator import (
    RecordValidationError,
    RecordValidator,
)

__all__ = ["RecordValidationError", "RecordValidator"]
