"""Hook slots - fixed, typed event hooks invoked inline by the repository.

Each ``RepositoryHooks`` instance owns one slot per event. Callbacks are
called synchronously with ``(event, record, context)``, in priority order
(higher first, registration order within equal priority).

Before-slots can veto: a callback returning ``False`` or raising
``AbortHookException`` cancels the operation. Any other exception raised by a
callback propagates to the caller of the repository operation.
"""

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from rowkeeper.core.hooks.hook_events import HookEvent
from rowkeeper.core.logging import get_logger
from rowkeeper.domain.entities.hook_context import (
    AbortHookException,
    HookContext,
    HookResult,
)

if TYPE_CHECKING:
    from rowkeeper.domain.entities.record import Record

logger = get_logger(__name__)

HookCallback = Callable[[str, "Record", HookContext], Any]


@dataclass
class RegisteredHook:
    """Internal representation of a registered hook.

    Attributes:
        id: Unique identifier for this hook registration.
        event: The event this hook is registered for.
        callback: The function to call.
        priority: Execution priority (higher = earlier).
        registration_order: Order in which this hook was registered.
    """

    id: str
    event: str
    callback: HookCallback
    priority: int = 0
    registration_order: int = 0


class HookSlot:
    """Callbacks registered for a single event.

    A slot can be used as a decorator, with or without a priority:

        @hooks.after_update
        def audit(event, record, context): ...

        @hooks.before_delete(priority=10)
        def guard(event, record, context): ...
    """

    def __init__(self, event: str) -> None:
        self.event = event
        self._hooks: list[RegisteredHook] = []
        self._registration_counter = 0

    def register(self, callback: HookCallback, priority: int = 0) -> str:
        """Register a callback and return its hook id."""
        hook_id = f"hook_{uuid.uuid4().hex[:12]}"
        self._registration_counter += 1
        self._hooks.append(
            RegisteredHook(
                id=hook_id,
                event=self.event,
                callback=callback,
                priority=priority,
                registration_order=self._registration_counter,
            )
        )
        logger.debug("Hook registered", hook_id=hook_id, hook_event=self.event, priority=priority)
        return hook_id

    def __call__(
        self, callback: Optional[HookCallback] = None, *, priority: int = 0
    ) -> HookCallback | Callable[[HookCallback], HookCallback]:
        if callback is None:

            def decorator(func: HookCallback) -> HookCallback:
                self.register(func, priority=priority)
                return func

            return decorator

        self.register(callback, priority=priority)
        return callback

    def unregister(self, hook_id: str) -> bool:
        """Remove a callback. Returns False if the id is unknown."""
        remaining = [h for h in self._hooks if h.id != hook_id]
        if len(remaining) == len(self._hooks):
            logger.warning("Hook not found for unregister", hook_id=hook_id, hook_event=self.event)
            return False
        self._hooks = remaining
        logger.debug("Hook unregistered", hook_id=hook_id, hook_event=self.event)
        return True

    def clear(self) -> int:
        count = len(self._hooks)
        self._hooks = []
        return count

    def ordered(self) -> list[RegisteredHook]:
        """Registered hooks sorted by priority (descending), then registration order."""
        return sorted(self._hooks, key=lambda h: (-h.priority, h.registration_order))

    def __len__(self) -> int:
        return len(self._hooks)

    def __contains__(self, hook_id: object) -> bool:
        return any(h.id == hook_id for h in self._hooks)


class BeforeHookSlot(HookSlot):
    """Cancellable slot run before a write."""

    def trigger(self, record: "Record", context: HookContext) -> HookResult:
        """Run callbacks until one vetoes.

        Returns:
            HookResult with ``aborted`` set when a callback vetoed.
        """
        result = HookResult()
        for hook in self.ordered():
            try:
                outcome = hook.callback(self.event, record, context)
            except AbortHookException as e:
                message = e.message
            else:
                if outcome is not False:
                    continue
                message = None

            logger.info(
                "Hook vetoed operation",
                hook_id=hook.id,
                hook_event=self.event,
                table=context.table_name,
                message=message,
            )
            result.success = False
            result.aborted = True
            result.abort_message = message
            result.hook_id = hook.id
            return result

        return result


class AfterHookSlot(HookSlot):
    """Notification-only slot run after a successful operation."""

    def trigger(self, record: "Record", context: HookContext) -> HookResult:
        for hook in self.ordered():
            hook.callback(self.event, record, context)
        return HookResult()


class RepositoryHooks:
    """The fixed set of hook slots of a repository.

    Example:
        hooks = RepositoryHooks()

        @hooks.before_insert
        def stamp(event, record, context):
            record["created_at"] = datetime.now(timezone.utc)

        repository = Repository(store, schema, hooks=hooks)
    """

    def __init__(self) -> None:
        self.before_insert = BeforeHookSlot(HookEvent.BEFORE_INSERT)
        self.after_insert = AfterHookSlot(HookEvent.AFTER_INSERT)
        self.before_update = BeforeHookSlot(HookEvent.BEFORE_UPDATE)
        self.after_update = AfterHookSlot(HookEvent.AFTER_UPDATE)
        self.before_delete = BeforeHookSlot(HookEvent.BEFORE_DELETE)
        self.after_delete = AfterHookSlot(HookEvent.AFTER_DELETE)
        self.after_find = AfterHookSlot(HookEvent.AFTER_FIND)

    def slots(self) -> dict[str, HookSlot]:
        return {event: getattr(self, event) for event in HookEvent.ALL}

    def unregister(self, hook_id: str) -> bool:
        """Remove a callback from whichever slot holds it."""
        for slot in self.slots().values():
            if hook_id in slot:
                return slot.unregister(hook_id)
        logger.warning("Hook not found for unregister", hook_id=hook_id)
        return False

    def clear(self) -> int:
        """Remove every callback from every slot."""
        count = sum(slot.clear() for slot in self.slots().values())
        logger.debug("Hooks cleared", count=count)
        return count
