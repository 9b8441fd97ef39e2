"""Transaction policy: which write operations run inside a transaction."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntFlag


class Operation(IntFlag):
    """Write operations that can be wrapped in a transaction."""

    NONE = 0
    INSERT = 1
    UPDATE = 2
    DELETE = 4
    ALL = INSERT | UPDATE | DELETE


@dataclass(frozen=True)
class TransactionPolicy:
    """Maps a scenario tag to the operations that must run atomically.

    Scenarios that are not listed fall back to ``default``.

    Example:
        policy = TransactionPolicy({"checkout": Operation.INSERT | Operation.UPDATE})
        policy.is_transactional("checkout", Operation.UPDATE)  # True
        policy.is_transactional("default", Operation.UPDATE)  # False
    """

    scenarios: Mapping[str, Operation] = field(default_factory=dict)
    default: Operation = Operation.NONE

    def operations_for(self, scenario: str) -> Operation:
        return Operation(self.scenarios.get(scenario, self.default))

    def is_transactional(self, scenario: str, operation: Operation) -> bool:
        """Check whether ``operation`` must be wrapped for ``scenario``."""
        return bool(self.operations_for(scenario) & operation)

    @classmethod
    def always(cls) -> "TransactionPolicy":
        """Policy wrapping every operation in every scenario."""
        return cls(default=Operation.ALL)
