"""Domain entities for rowkeeper.

``Record`` lives in ``rowkeeper.domain.entities.record`` and is not re-exported
here, since it depends on the validation service.
"""

from rowkeeper.domain.entities.entity_schema import EntitySchema, FieldSpec, FieldType
from rowkeeper.domain.entities.hook_context import (
    AbortHookException,
    HookContext,
    HookResult,
)
from rowkeeper.domain.entities.table_schema import TableSchema
from rowkeeper.domain.entities.transaction_policy import Operation, TransactionPolicy

__all__ = [
    "AbortHookException",
    "EntitySchema",
    "FieldSpec",
    "FieldType",
    "HookContext",
    "HookResult",
    "Operation",
    "TableSchema",
    "TransactionPolicy",
]
