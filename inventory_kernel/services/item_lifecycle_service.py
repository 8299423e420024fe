"""
ItemLifecycleService -- the only writer of inventory item status.

Responsibility:
    Creates items in ``available`` and moves them through the transition
    table in ``domain/lifecycle.py``.  Every move is a compare-and-swap on
    the item's revision followed by one ledger record.

Write order per transition:
    1. validate_transition()            nothing written on failure
    2. item update (expected revision)  OptimisticLockError -> nothing written
    3. ledger record                    failure -> TransitionResult.partial

A failed ledger write does not undo the state change.  The pending draft is
returned so the caller retries the audit write, never the transition.

Release listeners run after a unit carrying a school order id moves to
``maintenance`` or ``available``, so the order can drop the unit from its
allocation.
"""

from __future__ import annotations

from typing import Any, Callable

from inventory_kernel.domain.dtos import (
    InventoryItemRecord,
    PartialFailure,
    TransitionResult,
)
from inventory_kernel.domain.lifecycle import (
    CANCELLABLE_STATUSES,
    SCHOOL_BOUND_STATUSES,
    ItemStatus,
    TransactionType,
    transaction_type_for,
    transition_changes,
    validate_advance,
    validate_transition,
)
from inventory_kernel.exceptions import (
    ConcurrencyError,
    InvalidTransitionError,
    ItemDetailsValidationError,
    ItemInUseError,
    MissingScanContextError,
    StoreError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.ledger_writer import TransactionLedgerWriter
from inventory_kernel.store.document_store import Collection

logger = get_logger("services.item_lifecycle")


class ItemLifecycleService(BaseService):
    def __init__(self, store, ledger: TransactionLedgerWriter, clock=None, selector=None):
        super().__init__(store, clock, selector)
        self._ledger = ledger
        self._release_listeners: list[Callable[[InventoryItemRecord], Any]] = []

    def add_release_listener(self, listener: Callable[[InventoryItemRecord], Any]) -> None:
        """Call ``listener`` with the pre-move record when an order-bound unit is released."""
        self._release_listeners.append(listener)

    # -- helpers ----------------------------------------------------------

    def _resolve(self, item: InventoryItemRecord | str) -> InventoryItemRecord:
        if isinstance(item, InventoryItemRecord):
            return item
        return self._selector.item(item)

    def _record(
        self,
        operation: str,
        item: InventoryItemRecord,
        transaction_type: TransactionType,
        performed_by: str,
        note: str,
        school_id: str | None,
        committed: str | None = None,
    ) -> tuple[str | None, PartialFailure | None]:
        draft = self._ledger.draft(
            transaction_type, item.id, performed_by, note, school_id=school_id
        )
        try:
            return self._ledger.record_draft(draft), None
        except StoreError as exc:
            logger.warning(
                "ledger_write_failed",
                extra={
                    "operation": operation,
                    "item_id": item.id,
                    "transaction_id": draft.id,
                    "reason": str(exc),
                },
            )
            return None, PartialFailure(
                operation=operation,
                reason=str(exc),
                committed=(committed or f"item:{item.id}:{item.status.value}",),
                pending_ledger=(draft,),
            )

    def _transition(
        self,
        operation: str,
        item: InventoryItemRecord,
        target: ItemStatus,
        performed_by: str,
        note: str,
        changes: dict[str, Any],
        ledger_school_id: str | None,
    ) -> TransitionResult:
        with LogContext.bind(item_id=item.id, performed_by=performed_by):
            doc = self._store.update(
                Collection.INVENTORY_ITEMS,
                item.id,
                changes,
                expected_revision=item.revision,
            )
            updated = InventoryItemRecord.from_document(doc)
            logger.info(
                "item_transitioned",
                extra={
                    "operation": operation,
                    "from_status": item.status.value,
                    "to_status": target.value,
                    "revision": updated.revision,
                },
            )
            tx_id, partial = self._record(
                operation,
                updated,
                transaction_type_for(target),
                performed_by,
                note,
                ledger_school_id,
            )
            if item.school_order_id and target not in SCHOOL_BOUND_STATUSES:
                partial = self._notify_release(operation, item, partial)
            return TransitionResult(item=updated, transaction_id=tx_id, partial=partial)

    def _notify_release(
        self,
        operation: str,
        before: InventoryItemRecord,
        partial: PartialFailure | None,
    ) -> PartialFailure | None:
        for listener in self._release_listeners:
            try:
                listener(before)
            except (StoreError, ConcurrencyError) as exc:
                logger.warning(
                    "release_listener_failed",
                    extra={
                        "operation": operation,
                        "school_order_id": before.school_order_id,
                        "reason": str(exc),
                    },
                )
                failure = PartialFailure(
                    operation=operation,
                    reason=str(exc),
                    committed=(f"item:{before.id}",),
                    pending=(f"school_order:{before.school_order_id}",),
                )
                partial = partial.merge(failure) if partial else failure
        return partial

    # -- operations -------------------------------------------------------

    def receive(
        self,
        item_type_id: str,
        barcode: str,
        performed_by: str,
        serial_number: str | None = None,
        location: str | None = None,
        is_school_specific: bool = False,
        po_line_item_id: str | None = None,
        purchase_order_id: str | None = None,
        note: str | None = None,
    ) -> TransitionResult:
        """Create one unit in ``available`` and log a ``received`` record."""
        if not barcode:
            raise MissingScanContextError("barcode")
        if not item_type_id:
            raise MissingScanContextError("item type")

        doc = self._store.create(
            Collection.INVENTORY_ITEMS,
            {
                "barcode": barcode,
                "item_type_id": item_type_id,
                "serial_number": serial_number,
                "status": ItemStatus.AVAILABLE,
                "location": location,
                "is_school_specific": is_school_specific,
                "po_line_item_id": po_line_item_id,
                "purchase_order_id": purchase_order_id,
                "received_at": self._clock.now(),
            },
        )
        item = InventoryItemRecord.from_document(doc)
        with LogContext.bind(item_id=item.id, purchase_order_id=purchase_order_id):
            logger.info("item_received", extra={"barcode": barcode, "item_type_id": item_type_id})
            tx_id, partial = self._record(
                "receive item",
                item,
                TransactionType.RECEIVED,
                performed_by,
                note or f"Received barcode {barcode}",
                None,
            )
        return TransitionResult(item=item, transaction_id=tx_id, partial=partial)

    def assign(
        self,
        item: InventoryItemRecord | str,
        school_id: str,
        performed_by: str,
        checkout_id: str | None = None,
        school_order_id: str | None = None,
        note: str | None = None,
    ) -> TransitionResult:
        """available -> assigned, recording the school and session/order."""
        item = self._resolve(item)
        if not school_id:
            raise MissingScanContextError("school")
        if not checkout_id and not school_order_id:
            raise MissingScanContextError("checkout session or school order")
        validate_transition(item.id, item.status, ItemStatus.ASSIGNED)

        changes = transition_changes(
            ItemStatus.ASSIGNED,
            self._clock.now(),
            school_id=school_id,
            checkout_id=checkout_id,
            school_order_id=school_order_id,
        )
        return self._transition(
            "assign item",
            item,
            ItemStatus.ASSIGNED,
            performed_by,
            note or f"Assigned to school {school_id}",
            changes,
            school_id,
        )

    def cancel_assignment(
        self,
        item: InventoryItemRecord | str,
        performed_by: str,
        note: str,
    ) -> TransitionResult:
        """assigned|staged -> available, clearing school/checkout/order references."""
        item = self._resolve(item)
        if item.status not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(item.id, item.status.value, ItemStatus.AVAILABLE.value)
        return self._transition(
            "cancel assignment",
            item,
            ItemStatus.AVAILABLE,
            performed_by,
            note,
            transition_changes(ItemStatus.AVAILABLE, self._clock.now()),
            item.school_id,
        )

    def advance(
        self,
        item: InventoryItemRecord | str,
        target: ItemStatus | str,
        performed_by: str,
        note: str | None = None,
    ) -> TransitionResult:
        """Forward-only move to ``staged`` or ``installed``."""
        item = self._resolve(item)
        validate_advance(item.id, item.status, target)
        target = ItemStatus(target)
        return self._transition(
            f"advance item to {target.value}",
            item,
            target,
            performed_by,
            note or f"Moved to {target.value}",
            transition_changes(target, self._clock.now()),
            item.school_id,
        )

    def send_to_maintenance(
        self,
        item: InventoryItemRecord | str,
        performed_by: str,
        note: str | None = None,
    ) -> TransitionResult:
        item = self._resolve(item)
        validate_transition(item.id, item.status, ItemStatus.MAINTENANCE)
        return self._transition(
            "send to maintenance",
            item,
            ItemStatus.MAINTENANCE,
            performed_by,
            note or "Sent to maintenance",
            transition_changes(ItemStatus.MAINTENANCE, self._clock.now()),
            item.school_id,
        )

    def return_from_maintenance(
        self,
        item: InventoryItemRecord | str,
        performed_by: str,
        note: str | None = None,
    ) -> TransitionResult:
        """maintenance -> available; school and session references are cleared."""
        item = self._resolve(item)
        if item.status != ItemStatus.MAINTENANCE:
            raise InvalidTransitionError(item.id, item.status.value, ItemStatus.AVAILABLE.value)
        return self._transition(
            "return from maintenance",
            item,
            ItemStatus.AVAILABLE,
            performed_by,
            note or "Returned from maintenance",
            transition_changes(ItemStatus.AVAILABLE, self._clock.now()),
            item.school_id,
        )

    # -- administration ---------------------------------------------------

    def update_details(
        self,
        item: InventoryItemRecord | str,
        performed_by: str,
        *,
        location: str | None = None,
        notes: str | None = None,
        serial_number: str | None = None,
        is_school_specific: bool | None = None,
    ) -> TransitionResult:
        """
        Edit descriptive fields of one unit and log a ``note`` record.

        ``None`` leaves a field alone; an empty string clears it.  Status is
        never edited here.  Supplying only the current values writes nothing
        and returns the item with no transaction id.
        """
        item = self._resolve(item)
        requested: dict[str, Any] = {}
        for field, value in (
            ("location", location),
            ("notes", notes),
            ("serial_number", serial_number),
        ):
            if value is None:
                continue
            if not isinstance(value, str):
                raise ItemDetailsValidationError(item.id, f"{field} must be text")
            requested[field] = value.strip() or None
        if is_school_specific is not None:
            if not isinstance(is_school_specific, bool):
                raise ItemDetailsValidationError(item.id, "is_school_specific must be true or false")
            requested["is_school_specific"] = is_school_specific
        if not requested:
            raise ItemDetailsValidationError(item.id, "no details supplied")

        changes = {
            field: value for field, value in requested.items() if getattr(item, field) != value
        }
        with LogContext.bind(item_id=item.id, performed_by=performed_by):
            if not changes:
                logger.info("item_details_unchanged", extra={"fields": sorted(requested)})
                return TransitionResult(item=item, transaction_id=None)

            doc = self._store.update(
                Collection.INVENTORY_ITEMS,
                item.id,
                changes,
                expected_revision=item.revision,
            )
            updated = InventoryItemRecord.from_document(doc)
            logger.info(
                "item_details_updated",
                extra={"fields": sorted(changes), "revision": updated.revision},
            )
            summary = ", ".join(
                f"{field}={'(cleared)' if value is None else value}"
                for field, value in sorted(changes.items())
            )
            tx_id, partial = self._record(
                "update item details",
                updated,
                TransactionType.NOTE,
                performed_by,
                f"Details updated: {summary}",
                updated.school_id,
            )
            return TransitionResult(item=updated, transaction_id=tx_id, partial=partial)

    def delete_item(
        self,
        item: InventoryItemRecord | str,
        performed_by: str,
        note: str | None = None,
    ) -> TransitionResult:
        """
        Remove a unit that is not held by a school and log a ``note`` record.

        Assigned, staged and installed units must be released first.  The
        delete is checked against the revision the caller read.
        """
        item = self._resolve(item)
        if item.status in SCHOOL_BOUND_STATUSES:
            raise ItemInUseError(item.id, item.status.value)

        with LogContext.bind(item_id=item.id, performed_by=performed_by):
            self._store.delete(
                Collection.INVENTORY_ITEMS, item.id, expected_revision=item.revision
            )
            logger.info(
                "item_deleted",
                extra={"barcode": item.barcode, "status": item.status.value},
            )
            tx_id, partial = self._record(
                "delete item",
                item,
                TransactionType.NOTE,
                performed_by,
                note or f"Item {item.barcode} deleted by {performed_by}",
                item.school_id,
                committed=f"item:{item.id}:deleted",
            )
            return TransitionResult(item=item, transaction_id=tx_id, partial=partial)
