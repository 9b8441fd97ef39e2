"""Repository hook system.

Exports:
    HookEvent: Event name constants
    RepositoryHooks: The fixed slots a repository invokes
    HookSlot, BeforeHookSlot, AfterHookSlot: Slot types
    RegisteredHook: Internal registration record
"""

from rowkeeper.core.hooks.hook_events import HookEvent
from rowkeeper.core.hooks.hook_registry import (
    AfterHookSlot,
    BeforeHookSlot,
    HookSlot,
    RegisteredHook,
    RepositoryHooks,
)

__all__ = [
    "HookEvent",
    "HookSlot",
    "BeforeHookSlot",
    "AfterHookSlot",
    "RegisteredHook",
    "RepositoryHooks",
]
