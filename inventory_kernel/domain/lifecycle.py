"""
Lifecycle -- item status machine.

Responsibility:
    Single source of truth for which status moves an inventory item may
    make, and for which fields each move sets or clears.  The service layer
    calls ``validate_transition`` before every item write; no other module
    decides legality.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

State diagram:

        available ---> assigned ---> staged ---> installed
            ^  ^          |            |             |
            |  +----------+------------+  (cancel)   |
            |                                        v
            +---------------- maintenance <----------+
                                 ^   (from any state)

Failure modes:
    - InvalidTransitionError for any move not listed in VALID_TRANSITIONS.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from inventory_kernel.exceptions import InvalidTransitionError


class ItemStatus(str, Enum):
    """Lifecycle status of a physical inventory item."""

    AVAILABLE = "available"
    ASSIGNED = "assigned"
    STAGED = "staged"
    INSTALLED = "installed"
    MAINTENANCE = "maintenance"


class TransactionType(str, Enum):
    """Kind of ledger record appended for an item event."""

    RECEIVED = "received"
    ASSIGNED = "assigned"
    STAGED = "staged"
    INSTALLED = "installed"
    MAINTENANCE = "maintenance"
    NOTE = "note"


VALID_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.AVAILABLE: frozenset({ItemStatus.ASSIGNED, ItemStatus.MAINTENANCE}),
    ItemStatus.ASSIGNED: frozenset(
        {
            ItemStatus.AVAILABLE,
            ItemStatus.STAGED,
            ItemStatus.INSTALLED,
            ItemStatus.MAINTENANCE,
        }
    ),
    ItemStatus.STAGED: frozenset(
        {ItemStatus.AVAILABLE, ItemStatus.INSTALLED, ItemStatus.MAINTENANCE}
    ),
    ItemStatus.INSTALLED: frozenset({ItemStatus.MAINTENANCE}),
    ItemStatus.MAINTENANCE: frozenset({ItemStatus.AVAILABLE}),
}

# Statuses that tie an item to a school.
SCHOOL_BOUND_STATUSES: frozenset[ItemStatus] = frozenset(
    {ItemStatus.ASSIGNED, ItemStatus.STAGED, ItemStatus.INSTALLED}
)

# Statuses a cancellation may revert to available.
CANCELLABLE_STATUSES: frozenset[ItemStatus] = frozenset(
    {ItemStatus.ASSIGNED, ItemStatus.STAGED}
)

# Forward-only targets for advance().
ADVANCE_TARGETS: frozenset[ItemStatus] = frozenset(
    {ItemStatus.STAGED, ItemStatus.INSTALLED}
)

_FORWARD_RANK = {
    ItemStatus.AVAILABLE: 0,
    ItemStatus.ASSIGNED: 1,
    ItemStatus.STAGED: 2,
    ItemStatus.INSTALLED: 3,
}

# Fields cleared whenever an item returns to the pool.
_RELEASE_FIELDS = ("school_id", "checkout_id", "school_order_id")


def is_valid_transition(from_status: ItemStatus, to_status: ItemStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, frozenset())


def validate_transition(
    item_id: str,
    from_status: ItemStatus | str,
    to_status: ItemStatus | str,
) -> None:
    """
    Raise InvalidTransitionError unless ``from_status -> to_status`` is legal.

    Unknown status strings are treated as illegal rather than raising
    ValueError, so corrupt documents surface as lifecycle errors.
    """
    try:
        src = ItemStatus(from_status)
        dst = ItemStatus(to_status)
    except ValueError:
        raise InvalidTransitionError(item_id, str(from_status), str(to_status))
    if not is_valid_transition(src, dst):
        raise InvalidTransitionError(item_id, src.value, dst.value)


def validate_advance(
    item_id: str,
    from_status: ItemStatus | str,
    to_status: ItemStatus | str,
) -> None:
    """Forward-only moves along assigned -> staged -> installed."""
    validate_transition(item_id, from_status, to_status)
    src = ItemStatus(from_status)
    dst = ItemStatus(to_status)
    if dst not in ADVANCE_TARGETS or _FORWARD_RANK[dst] <= _FORWARD_RANK.get(src, 99):
        raise InvalidTransitionError(item_id, src.value, dst.value)


def transaction_type_for(to_status: ItemStatus) -> TransactionType:
    """Ledger type recorded when an item enters ``to_status``."""
    if to_status == ItemStatus.AVAILABLE:
        return TransactionType.NOTE
    return TransactionType(to_status.value)


def transition_changes(
    to_status: ItemStatus,
    now: datetime,
    *,
    school_id: str | None = None,
    checkout_id: str | None = None,
    school_order_id: str | None = None,
) -> dict[str, Any]:
    """
    Field changes for moving an item into ``to_status``.

    Entering ``available`` always clears the school, checkout and
    school-order references.  Entering ``assigned`` records the school and
    whichever of checkout/school-order is supplied.
    """
    changes: dict[str, Any] = {"status": to_status.value}
    if to_status == ItemStatus.AVAILABLE:
        for name in _RELEASE_FIELDS:
            changes[name] = None
        changes["staged_at"] = None
        changes["installed_at"] = None
    elif to_status == ItemStatus.ASSIGNED:
        changes["school_id"] = school_id
        changes["checkout_id"] = checkout_id
        changes["school_order_id"] = school_order_id
    elif to_status == ItemStatus.STAGED:
        changes["staged_at"] = now
    elif to_status == ItemStatus.INSTALLED:
        changes["installed_at"] = now
    return changes
