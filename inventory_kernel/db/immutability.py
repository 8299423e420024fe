"""
ORM-level immutability of the transaction ledger.

Ledger records are append-only.  SQLAlchemy fires ``before_update`` and
``before_delete`` before the SQL reaches the database; the listeners below
raise ImmutabilityViolationError so the flush aborts and the unit of work
rolls back.

    session.flush()
         |
         v
    [before_update] --> _refuse_ledger_update() --> ImmutabilityViolationError
    [before_delete] --> _refuse_ledger_delete() --> ImmutabilityViolationError

Bulk ``UPDATE``/``DELETE`` statements bypass mapper events; the store never
issues them against the ledger.

Usage:
    register_immutability_listeners()    # idempotent, called by the store
    unregister_immutability_listeners()  # tests only
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.transaction import Transaction

logger = get_logger("db.immutability")


def _refuse_ledger_update(mapper, connection, target):
    logger.error(
        "ledger_update_refused",
        extra={"transaction_id": target.id},
    )
    raise ImmutabilityViolationError(
        "Transaction", str(target.id), "ledger records cannot be modified"
    )


def _refuse_ledger_delete(mapper, connection, target):
    logger.error(
        "ledger_delete_refused",
        extra={"transaction_id": target.id},
    )
    raise ImmutabilityViolationError(
        "Transaction", str(target.id), "ledger records cannot be deleted"
    )


_LISTENERS = (
    ("before_update", _refuse_ledger_update),
    ("before_delete", _refuse_ledger_delete),
)


def register_immutability_listeners() -> None:
    for name, fn in _LISTENERS:
        if not event.contains(Transaction, name, fn):
            event.listen(Transaction, name, fn)


def unregister_immutability_listeners() -> None:
    for name, fn in _LISTENERS:
        if event.contains(Transaction, name, fn):
            event.remove(Transaction, name, fn)


def listeners_registered() -> bool:
    return all(event.contains(Transaction, name, fn) for name, fn in _LISTENERS)
