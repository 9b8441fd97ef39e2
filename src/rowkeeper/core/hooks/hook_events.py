"""Hook event names.

Each repository exposes one fixed slot per event:
- before_* events can veto the operation
- after_* events are notifications, called after the store write succeeded
"""


class HookEvent:
    """Repository hook event names."""

    BEFORE_INSERT = "before_insert"
    AFTER_INSERT = "after_insert"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_DELETE = "before_delete"
    AFTER_DELETE = "after_delete"
    AFTER_FIND = "after_find"

    BEFORE_EVENTS = (BEFORE_INSERT, BEFORE_UPDATE, BEFORE_DELETE)
    AFTER_EVENTS = (AFTER_INSERT, AFTER_UPDATE, AFTER_DELETE, AFTER_FIND)
    ALL = BEFORE_EVENTS + AFTER_EVENTS
