"""
PurchaseOrderService -- creates and cancels vendor purchase orders.

Creation writes the order (status ``ordered``, zero totals), then each line
item, then re-derives the totals from the lines that were actually
created.  A failing line returns a PARTIAL result naming the lines still
to create; the order itself is never rolled back.
"""

from __future__ import annotations

import threading
from datetime import date
from typing import Sequence

from inventory_kernel.domain.dtos import (
    OperationStatus,
    PartialFailure,
    POLineItemRecord,
    PurchaseOrderLineInput,
    PurchaseOrderRecord,
    PurchaseOrderResult,
    PurchaseOrderStatus,
)
from inventory_kernel.domain.numbering import po_number, timestamp_suffix
from inventory_kernel.exceptions import (
    ConcurrencyError,
    PurchaseOrderValidationError,
    StoreError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.base import BaseService, retry_on_conflict
from inventory_kernel.services.receiving_service import ReceivingService
from inventory_kernel.store.document_store import Collection, Filter

logger = get_logger("services.purchase_order")


class PurchaseOrderService(BaseService):
    def __init__(
        self,
        store,
        receiving: ReceivingService,
        clock=None,
        selector=None,
        *,
        po_number_prefix: str = "PO",
        max_write_retries: int = 3,
        default_performer: str = "Unknown",
    ):
        super().__init__(store, clock, selector)
        self._receiving = receiving
        self._prefix = po_number_prefix
        self._max_write_retries = max_write_retries
        self._default_performer = default_performer
        self._numbering = threading.Lock()

    def _validate(self, vendor: str, lines: Sequence[PurchaseOrderLineInput]) -> None:
        if not vendor or not vendor.strip():
            raise PurchaseOrderValidationError("vendor is required")
        if not lines:
            raise PurchaseOrderValidationError("add at least one line item")
        for index, line in enumerate(lines, start=1):
            if not line.item_type_id:
                raise PurchaseOrderValidationError(f"line {index} has no item type")
            if not line.sku or not line.sku.strip():
                raise PurchaseOrderValidationError(f"line {index} has no SKU")
            qty = line.quantity_ordered
            if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
                raise PurchaseOrderValidationError(
                    f"line {index} quantity must be a whole number greater than 0"
                )

    def _next_po_number(self) -> str:
        now = self._clock.now()
        suffix = timestamp_suffix(now)
        while True:
            number = po_number(self._prefix, now, suffix)
            if self._store.first(Collection.PURCHASE_ORDERS, [Filter.equal("po_number", number)]) is None:
                return number
            suffix += 1

    def create_purchase_order(
        self,
        vendor: str,
        lines: Sequence[PurchaseOrderLineInput],
        created_by: str | None = None,
        order_date: date | None = None,
        expected_delivery: date | None = None,
        notes: str | None = None,
    ) -> PurchaseOrderResult:
        self._validate(vendor, lines)
        created_by = created_by or self._default_performer

        with self._numbering:
            number = self._next_po_number()
            doc = self._store.create(
                Collection.PURCHASE_ORDERS,
                {
                    "po_number": number,
                    "vendor": vendor.strip(),
                    "order_date": order_date or self._clock.now().date(),
                    "expected_delivery": expected_delivery,
                    "order_status": PurchaseOrderStatus.ORDERED,
                    "created_by": created_by,
                    "total_items": 0,
                    "received_items": 0,
                    "notes": (notes or "").strip() or None,
                },
            )
        order = PurchaseOrderRecord.from_document(doc)

        with LogContext.bind(purchase_order_id=order.id, performed_by=created_by):
            created: list[POLineItemRecord] = []
            pending: list[str] = []
            reason = ""
            for line in lines:
                if pending:
                    pending.append(f"line:{line.sku}")
                    continue
                try:
                    line_doc = self._store.create(
                        Collection.PO_LINE_ITEMS,
                        {
                            "purchase_order_id": order.id,
                            "item_type_id": line.item_type_id,
                            "sku": line.sku.strip(),
                            "quantity_ordered": line.quantity_ordered,
                            "quantity_received": 0,
                        },
                    )
                except StoreError as exc:
                    logger.warning("po_line_create_failed", extra={"sku": line.sku, "reason": str(exc)})
                    pending.append(f"line:{line.sku}")
                    reason = str(exc)
                    continue
                created.append(POLineItemRecord.from_document(line_doc))

            committed = [f"purchase_order:{order.id}"] + [f"line:{l.sku}" for l in created]
            if created:
                try:
                    order = self._receiving.recompute_order_totals(order.id)
                    committed.append(f"order_totals:{order.id}")
                except (StoreError, ConcurrencyError) as exc:
                    pending.append(f"order_totals:{order.id}")
                    reason = reason or str(exc)

            partial = None
            if pending:
                partial = PartialFailure(
                    operation="create purchase order",
                    reason=reason,
                    committed=tuple(committed),
                    pending=tuple(pending),
                )
            logger.info(
                "purchase_order_created",
                extra={
                    "po_number": order.po_number,
                    "line_count": len(created),
                    "total_items": order.total_items,
                    "partial": partial is not None,
                },
            )
            return PurchaseOrderResult(
                status=OperationStatus.PARTIAL if partial else OperationStatus.SUCCESS,
                purchase_order=order,
                line_items=tuple(created),
                partial=partial,
            )

    def cancel_purchase_order(
        self, purchase_order_id: str, performed_by: str | None = None
    ) -> PurchaseOrderRecord:
        """Mark the order cancelled; its line items stop resolving for receipt."""
        performed_by = performed_by or self._default_performer

        def attempt() -> PurchaseOrderRecord:
            order = self._selector.purchase_order(purchase_order_id)
            if order.order_status == PurchaseOrderStatus.CANCELLED:
                return order
            doc = self._store.update(
                Collection.PURCHASE_ORDERS,
                purchase_order_id,
                {"order_status": PurchaseOrderStatus.CANCELLED},
                expected_revision=order.revision,
            )
            return PurchaseOrderRecord.from_document(doc)

        with LogContext.bind(purchase_order_id=purchase_order_id, performed_by=performed_by):
            order = retry_on_conflict(attempt, self._max_write_retries)
            logger.info("purchase_order_cancelled", extra={"po_number": order.po_number})
            return order
