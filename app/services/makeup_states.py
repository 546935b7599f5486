"""
Makeup Request States
Status enum and the single transition table for makeup requests
"""

from enum import Enum
from typing import Optional

from app.exceptions import InvalidStateTransition


class MakeupStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class MakeupAction(str, Enum):
    APPROVE = "approve"
    DENY = "deny"
    COMPLETE = "complete"
    CANCEL = "cancel"
    EXPIRE = "expire"
    UPDATE = "update"


# (current status, action) -> next status
TRANSITIONS = {
    (MakeupStatus.PENDING, MakeupAction.APPROVE): MakeupStatus.APPROVED,
    (MakeupStatus.PENDING, MakeupAction.DENY): MakeupStatus.DENIED,
    (MakeupStatus.PENDING, MakeupAction.CANCEL): MakeupStatus.CANCELLED,
    (MakeupStatus.APPROVED, MakeupAction.COMPLETE): MakeupStatus.COMPLETED,
    (MakeupStatus.APPROVED, MakeupAction.CANCEL): MakeupStatus.CANCELLED,
    (MakeupStatus.APPROVED, MakeupAction.EXPIRE): MakeupStatus.EXPIRED,
    # Edits keep the status
    (MakeupStatus.PENDING, MakeupAction.UPDATE): MakeupStatus.PENDING,
    (MakeupStatus.APPROVED, MakeupAction.UPDATE): MakeupStatus.APPROVED,
}

# Requests that block a new submission for the same registration
OUTSTANDING_STATUSES = (MakeupStatus.PENDING, MakeupStatus.APPROVED)

# Requests that may be removed outright
DELETABLE_STATUSES = (MakeupStatus.PENDING, MakeupStatus.CANCELLED, MakeupStatus.EXPIRED)

TERMINAL_STATUSES = (
    MakeupStatus.DENIED,
    MakeupStatus.COMPLETED,
    MakeupStatus.CANCELLED,
    MakeupStatus.EXPIRED,
)


def next_status(current: str, action: str) -> Optional[MakeupStatus]:
    """Target status for an action, or None when the table has no such edge"""
    try:
        key = (MakeupStatus(current), MakeupAction(action))
    except ValueError:
        return None
    return TRANSITIONS.get(key)


def validate_transition(current: str, action: str) -> MakeupStatus:
    """
    Resolve a transition or raise

    Raises:
        InvalidStateTransition: If the action is not allowed from the current status
    """
    target = next_status(current, action)
    if target is None:
        raise InvalidStateTransition(getattr(action, "value", action), getattr(current, "value", current))
    return target
