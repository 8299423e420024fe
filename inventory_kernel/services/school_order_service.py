"""
SchoolOrderService -- planned installs and the stock allocated to them.

Allocation assigns hand-picked available units to the order's school.  Each
unit is its own lifecycle write; units that cannot be assigned are reported
back as rejected with a notice instead of failing the whole call.
``quantity_allocated`` is never incremented in place.  It is re-derived from
the units that still carry the order id and a school-bound status, both
after an allocation and when a unit is released back to stock, and the
order totals are then re-derived from every order item.
"""

from __future__ import annotations

import threading
from datetime import date
from typing import Iterable, Sequence

from inventory_kernel.domain.dtos import (
    AllocationResult,
    InventoryItemRecord,
    LedgerEntryDraft,
    OperationStatus,
    PartialFailure,
    SchoolOrderItemRecord,
    SchoolOrderLineInput,
    SchoolOrderRecord,
    SchoolOrderResult,
    SchoolOrderStatus,
)
from inventory_kernel.domain.numbering import school_order_number, timestamp_suffix
from inventory_kernel.domain.order_totals import recompute_school_order
from inventory_kernel.exceptions import (
    ConcurrencyError,
    DocumentNotFoundError,
    InvalidTransitionError,
    OptimisticLockError,
    SchoolOrderValidationError,
    StoreError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.base import BaseService, retry_on_conflict
from inventory_kernel.services.item_lifecycle_service import ItemLifecycleService
from inventory_kernel.store.document_store import Collection, Filter
from inventory_kernel.utils.keyed_lock import KeyedLock

logger = get_logger("services.school_order")

_CLOSED = (SchoolOrderStatus.CANCELLED, SchoolOrderStatus.INSTALLED)


class SchoolOrderService(BaseService):
    def __init__(
        self,
        store,
        lifecycle: ItemLifecycleService,
        clock=None,
        selector=None,
        *,
        school_order_prefix: str = "SO",
        max_write_retries: int = 3,
        default_performer: str = "Unknown",
    ):
        super().__init__(store, clock, selector)
        self._lifecycle = lifecycle
        self._prefix = school_order_prefix
        self._max_write_retries = max_write_retries
        self._default_performer = default_performer
        self._numbering = threading.Lock()
        self._item_locks = KeyedLock("school_order_item")
        self._order_locks = KeyedLock("school_order")

    # -- creation ---------------------------------------------------------

    def _next_order_number(self, school_code: str) -> str:
        now = self._clock.now()
        suffix = timestamp_suffix(now)
        while True:
            number = school_order_number(self._prefix, school_code, now, suffix)
            if self._store.first(Collection.SCHOOL_ORDERS, [Filter.equal("order_number", number)]) is None:
                return number
            suffix += 1

    def create_school_order(
        self,
        school_id: str,
        install_date: date,
        items: Sequence[SchoolOrderLineInput],
        created_by: str | None = None,
        notes: str | None = None,
    ) -> SchoolOrderResult:
        if not school_id:
            raise SchoolOrderValidationError("school is required")
        if install_date is None:
            raise SchoolOrderValidationError("install date is required")
        if not items:
            raise SchoolOrderValidationError("add at least one item")
        for index, line in enumerate(items, start=1):
            if not line.item_type_id:
                raise SchoolOrderValidationError(f"item {index} has no item type")
            qty = line.quantity_needed
            if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
                raise SchoolOrderValidationError(
                    f"item {index} quantity must be a whole number greater than 0"
                )
        seen: set[str] = set()
        for line in items:
            if line.item_type_id in seen:
                raise SchoolOrderValidationError(f"item type {line.item_type_id} is listed twice")
            seen.add(line.item_type_id)

        school = self._selector.school(school_id)
        created_by = created_by or self._default_performer

        with self._numbering:
            doc = self._store.create(
                Collection.SCHOOL_ORDERS,
                {
                    "school_id": school.id,
                    "order_number": self._next_order_number(school.school_code),
                    "install_date": install_date,
                    "order_status": SchoolOrderStatus.PLANNING,
                    "created_by": created_by,
                    "total_items": 0,
                    "allocated_items": 0,
                    "notes": (notes or "").strip() or None,
                },
            )
        order = SchoolOrderRecord.from_document(doc)

        with LogContext.bind(school_id=school.id, performed_by=created_by):
            created: list[SchoolOrderItemRecord] = []
            pending: list[str] = []
            reason = ""
            for line in items:
                if pending:
                    pending.append(f"order_item:{line.item_type_id}")
                    continue
                try:
                    item_doc = self._store.create(
                        Collection.SCHOOL_ORDER_ITEMS,
                        {
                            "school_order_id": order.id,
                            "item_type_id": line.item_type_id,
                            "quantity_needed": line.quantity_needed,
                            "quantity_allocated": 0,
                        },
                    )
                except StoreError as exc:
                    logger.warning(
                        "school_order_item_create_failed",
                        extra={"item_type_id": line.item_type_id, "reason": str(exc)},
                    )
                    pending.append(f"order_item:{line.item_type_id}")
                    reason = str(exc)
                    continue
                created.append(SchoolOrderItemRecord.from_document(item_doc))

            committed = [f"school_order:{order.id}"] + [
                f"order_item:{item.item_type_id}" for item in created
            ]
            if created:
                try:
                    order = self.recompute_school_order_totals(order.id)
                    committed.append(f"order_totals:{order.id}")
                except (StoreError, ConcurrencyError) as exc:
                    pending.append(f"order_totals:{order.id}")
                    reason = reason or str(exc)

            partial = None
            if pending:
                partial = PartialFailure(
                    operation="create school order",
                    reason=reason,
                    committed=tuple(committed),
                    pending=tuple(pending),
                )
            logger.info(
                "school_order_created",
                extra={
                    "order_number": order.order_number,
                    "install_date": install_date,
                    "total_items": order.total_items,
                    "partial": partial is not None,
                },
            )
            return SchoolOrderResult(
                status=OperationStatus.PARTIAL if partial else OperationStatus.SUCCESS,
                school_order=order,
                items=tuple(created),
                partial=partial,
            )

    # -- allocation -------------------------------------------------------

    def allocate(
        self,
        order_item_id: str,
        item_ids: Iterable[str],
        performed_by: str | None = None,
    ) -> AllocationResult:
        """
        Assign the selected available units to the order's school.

        A unit is rejected (with a notice) when it is of the wrong type, the
        order item already has everything it needs, it is no longer
        available, or another writer took it first.  A store failure stops
        the loop and the result is PARTIAL; units assigned before the
        failure are still counted.
        """
        performed_by = performed_by or self._default_performer
        selected = list(dict.fromkeys(item_ids))

        with self._item_locks.hold(order_item_id):
            order_item = self._selector.school_order_item(order_item_id)
            order = self._selector.school_order(order_item.school_order_id)
            if order.order_status in _CLOSED:
                raise SchoolOrderValidationError(
                    f"school order {order.order_number} is {order.order_status.value}"
                )
            school = self._selector.school(order.school_id)

            with LogContext.bind(school_id=school.id, performed_by=performed_by):
                note = (
                    f"Allocated to {school.school_name} for install on "
                    f"{order.install_date.isoformat()}"
                )
                held = len(self._selector.allocated_items(order.id, order_item.item_type_id))
                capacity = order_item.quantity_needed - held
                allocated: list[str] = []
                rejected: list[str] = []
                notices: list[str] = []
                pending: list[str] = []
                pending_ledger: list[LedgerEntryDraft] = []
                reason = ""

                for position, item_id in enumerate(selected):
                    if len(allocated) >= capacity:
                        rejected.append(item_id)
                        notices.append(f"{item_id}: order item already has all {order_item.quantity_needed} unit(s)")
                        continue
                    try:
                        item = self._selector.item(item_id)
                        if item.item_type_id != order_item.item_type_id:
                            rejected.append(item_id)
                            notices.append(f"{item_id}: wrong item type for this order item")
                            continue
                        result = self._lifecycle.assign(
                            item,
                            school_id=school.id,
                            performed_by=performed_by,
                            school_order_id=order.id,
                            note=note,
                        )
                    except (DocumentNotFoundError, InvalidTransitionError, OptimisticLockError) as exc:
                        rejected.append(item_id)
                        notices.append(f"{item_id}: {exc}")
                        continue
                    except StoreError as exc:
                        logger.warning(
                            "allocation_unit_failed",
                            extra={"item_id": item_id, "reason": str(exc)},
                        )
                        pending.extend(f"item:{rest}" for rest in selected[position:])
                        reason = str(exc)
                        break
                    allocated.append(item_id)
                    if result.partial:
                        pending_ledger.extend(result.partial.pending_ledger)

                committed = [f"item:{item_id}" for item_id in allocated]
                updated_order: SchoolOrderRecord | None = order
                if allocated:
                    try:
                        self._recompute_allocated(order_item.id)
                        committed.append(f"order_item:{order_item.id}")
                    except (StoreError, ConcurrencyError) as exc:
                        pending.append(f"order_item:{order_item.id}")
                        reason = reason or str(exc)
                    try:
                        updated_order = self.recompute_school_order_totals(order.id)
                        committed.append(f"order_totals:{order.id}")
                    except (StoreError, ConcurrencyError) as exc:
                        pending.append(f"order_totals:{order.id}")
                        reason = reason or str(exc)

                partial = None
                if pending or pending_ledger:
                    partial = PartialFailure(
                        operation="allocate",
                        reason=reason or "ledger write failed",
                        committed=tuple(committed),
                        pending=tuple(pending),
                        pending_ledger=tuple(pending_ledger),
                    )
                if partial:
                    status = OperationStatus.PARTIAL
                elif allocated:
                    status = OperationStatus.SUCCESS
                else:
                    status = OperationStatus.NOOP

                logger.info(
                    "units_allocated",
                    extra={
                        "order_item_id": order_item.id,
                        "allocated": len(allocated),
                        "rejected": len(rejected),
                        "partial": partial is not None,
                    },
                )
                return AllocationResult(
                    status=status,
                    order_item_id=order_item.id,
                    allocated_item_ids=tuple(allocated),
                    rejected_item_ids=tuple(rejected),
                    school_order=updated_order,
                    partial=partial,
                    notices=tuple(notices),
                )

    # -- counters ---------------------------------------------------------

    def _recompute_allocated(self, order_item_id: str) -> SchoolOrderItemRecord:
        # Caller holds the order item's lock.
        def attempt() -> SchoolOrderItemRecord:
            order_item = self._selector.school_order_item(order_item_id)
            held = len(
                self._selector.allocated_items(order_item.school_order_id, order_item.item_type_id)
            )
            if order_item.quantity_allocated == held:
                return order_item
            doc = self._store.update(
                Collection.SCHOOL_ORDER_ITEMS,
                order_item_id,
                {"quantity_allocated": held},
                expected_revision=order_item.revision,
            )
            logger.info(
                "allocated_quantity_recomputed",
                extra={
                    "order_item_id": order_item_id,
                    "previous": order_item.quantity_allocated,
                    "quantity_allocated": held,
                },
            )
            return SchoolOrderItemRecord.from_document(doc)

        return retry_on_conflict(attempt, self._max_write_retries)

    def recompute_allocated_quantity(self, order_item_id: str) -> SchoolOrderItemRecord:
        """Re-derive ``quantity_allocated`` from the units still held for the order."""
        with self._item_locks.hold(order_item_id):
            return self._recompute_allocated(order_item_id)

    def release_item(self, before: InventoryItemRecord) -> SchoolOrderRecord | None:
        """
        Drop a released unit from its school order's allocation.

        ``before`` is the unit as it was read before it moved to
        ``maintenance`` or ``available``.  Registered as an ItemLifecycleService release
        listener by the engine.
        """
        if not before.school_order_id:
            return None
        order_items = [
            order_item
            for order_item in self._selector.school_order_items(before.school_order_id)
            if order_item.item_type_id == before.item_type_id
        ]
        for order_item in order_items:
            self.recompute_allocated_quantity(order_item.id)
        order = self.recompute_school_order_totals(before.school_order_id)
        logger.info(
            "school_order_unit_released",
            extra={
                "school_order_id": before.school_order_id,
                "item_id": before.id,
                "allocated_items": order.allocated_items,
                "order_status": order.order_status.value,
            },
        )
        return order

    def recompute_school_order_totals(self, school_order_id: str) -> SchoolOrderRecord:
        """Re-derive totals and status from a fresh read of every order item."""

        def attempt() -> SchoolOrderRecord:
            order = self._selector.school_order(school_order_id)
            totals = recompute_school_order(
                self._selector.school_order_items(school_order_id), order.order_status
            )
            if (
                order.total_items == totals.total_items
                and order.allocated_items == totals.allocated_items
                and order.order_status == totals.order_status
            ):
                return order
            doc = self._store.update(
                Collection.SCHOOL_ORDERS,
                school_order_id,
                {
                    "total_items": totals.total_items,
                    "allocated_items": totals.allocated_items,
                    "order_status": totals.order_status,
                },
                expected_revision=order.revision,
            )
            logger.info(
                "school_order_totals_recomputed",
                extra={
                    "school_order_id": school_order_id,
                    "total_items": totals.total_items,
                    "allocated_items": totals.allocated_items,
                    "order_status": totals.order_status.value,
                },
            )
            return SchoolOrderRecord.from_document(doc)

        with self._order_locks.hold(school_order_id):
            return retry_on_conflict(attempt, self._max_write_retries)
