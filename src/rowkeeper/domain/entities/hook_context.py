"""Hook context and exceptions for the hook system.

Contains the core data structures used by the hook system:
- HookContext: Context passed to all hook callbacks
- AbortHookException: Raised by before-hooks to cancel operations
- HookResult: Result of triggering a hook slot
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional


class AbortHookException(Exception):
    """Raised by before-hooks to cancel an operation.

    The repository treats the operation as vetoed: it returns ``False`` and
    rolls back the transaction it opened, if any.

    Example:
        @repository.hooks.before_insert
        def reject_negative(event, record, context):
            if record["total"] < 0:
                raise AbortHookException("Order total cannot be negative")
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


@dataclass
class HookContext:
    """Context passed to all hook callbacks.

    Attributes:
        table_name: Table of the record the operation applies to.
        scenario: Scenario tag of the record.
        changed_attributes: For after-update, each written attribute mapped to
            its value before the write. For after-insert, each written
            attribute mapped to None. Empty for other events.
        rows: Affected row count, when the event follows a store write.
        request_id: Correlation ID for logging.
    """

    table_name: str
    scenario: str = "default"
    changed_attributes: dict[str, Any] = field(default_factory=dict)
    rows: Optional[int] = None
    request_id: str = ""

    def __post_init__(self) -> None:
        if not self.request_id:
            self.request_id = f"hk_{uuid.uuid4().hex[:12]}"


@dataclass
class HookResult:
    """Result of triggering a hook slot.

    Attributes:
        success: Whether every callback ran without vetoing.
        aborted: Whether a before-hook vetoed the operation.
        abort_message: Message of the veto, if any.
        hook_id: Id of the callback that vetoed.
    """

    success: bool = True
    aborted: bool = False
    abort_message: Optional[str] = None
    hook_id: Optional[str] = None
