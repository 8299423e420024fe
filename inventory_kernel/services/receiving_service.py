"""
ReceivingService -- matches scanned SKUs to purchase orders and receives units.

Responsibility:
    Resolves a SKU to the line item it should be received against, creates
    one ``available`` inventory item (plus its ``received`` record) per
    unit, raises the line item's received quantity by the number actually
    created, and re-derives the purchase order's totals and status.

Counting actual successes:
    The per-unit loop stops at the first failed create.  Counters are only
    ever raised by ``len(created)``, never by the requested quantity, so a
    retry of the remainder cannot double-receive.

Order recomputation:
    ``recompute_order_totals`` re-reads every line item of the order and
    sums them.  It is idempotent and public so callers can repair an order
    whose recompute step was reported pending.

Over-receiving:
    A quantity above what remains on the line needs an explicit
    OverReceivePolicy.  The default raises OverReceiveConfirmationRequired
    and writes nothing.
"""

from __future__ import annotations

from collections import deque

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.confirmation import OverReceivePolicy, accepted_quantity
from inventory_kernel.domain.dtos import (
    LedgerEntryDraft,
    OperationStatus,
    PartialFailure,
    POLineItemRecord,
    PurchaseOrderRecord,
    PurchaseOrderStatus,
    ReceiptSummary,
    ReceiveResult,
    ReceivingTarget,
)
from inventory_kernel.domain.order_totals import recompute
from inventory_kernel.exceptions import (
    ConcurrencyError,
    FullyReceivedError,
    InvalidQuantityError,
    MissingScanContextError,
    OverReceiveConfirmationRequired,
    PurchaseOrderValidationError,
    SKUNotFoundError,
    StoreError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.base import BaseService, retry_on_conflict
from inventory_kernel.services.item_lifecycle_service import ItemLifecycleService
from inventory_kernel.store.document_store import Collection, DocumentStore
from inventory_kernel.utils.keyed_lock import KeyedLock

logger = get_logger("services.receiving")


def validate_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity


class ReceivingService(BaseService):
    def __init__(
        self,
        store: DocumentStore,
        lifecycle: ItemLifecycleService,
        clock: Clock | None = None,
        selector=None,
        *,
        max_write_retries: int = 3,
        default_performer: str = "Unknown",
        recent_receipts_limit: int = 5,
    ):
        super().__init__(store, clock, selector)
        self._lifecycle = lifecycle
        self._max_write_retries = max_write_retries
        self._default_performer = default_performer
        self._line_locks = KeyedLock("po_line_item")
        self._order_locks = KeyedLock("purchase_order")
        self._recent: deque[ReceiptSummary] = deque(maxlen=recent_receipts_limit)

    # -- lookup -----------------------------------------------------------

    def resolve_sku(self, sku: str) -> ReceivingTarget:
        """
        Pick the line item a scan of ``sku`` receives against.

        Raises:
            SKUNotFoundError: no line item has the SKU, or every open one is
                on a cancelled purchase order.
            FullyReceivedError: every matching line item is complete.
        """
        sku = (sku or "").strip()
        if not sku:
            raise MissingScanContextError("SKU")

        lines = self._selector.line_items_by_sku(sku)
        if not lines:
            raise SKUNotFoundError(sku)

        open_lines = [line for line in lines if line.is_open]
        if not open_lines:
            raise FullyReceivedError(
                sku,
                sum(line.quantity_received for line in lines),
                sum(line.quantity_ordered for line in lines),
            )

        for line in open_lines:
            order = self._selector.purchase_order(line.purchase_order_id)
            if order.order_status == PurchaseOrderStatus.CANCELLED:
                continue
            target = ReceivingTarget(
                line_item=line,
                item_type=self._selector.item_type(line.item_type_id),
                purchase_order=order,
            )
            logger.info(
                "sku_resolved",
                extra={
                    "sku": sku,
                    "line_item_id": line.id,
                    "purchase_order_id": order.id,
                    "remaining": line.remaining,
                },
            )
            return target

        raise SKUNotFoundError(sku, reason="only open on cancelled purchase orders")

    def recent_receipts(self) -> tuple[ReceiptSummary, ...]:
        """Most recent first."""
        return tuple(self._recent)

    # -- receiving --------------------------------------------------------

    def receive(
        self,
        line_item_id: str,
        quantity: int,
        performed_by: str | None = None,
        location: str | None = None,
        over_receive: OverReceivePolicy = OverReceivePolicy.CONFIRM,
    ) -> ReceiveResult:
        """
        Receive ``quantity`` units against a line item.

        Raises before any write:
            InvalidQuantityError, OverReceiveConfirmationRequired,
            FullyReceivedError (nothing left and CLAMP chosen),
            PurchaseOrderValidationError (order cancelled).
        A store failure on the very first unit propagates; later failures
        return a PARTIAL result.
        """
        validate_quantity(quantity)
        performed_by = performed_by or self._default_performer

        with self._line_locks.hold(line_item_id):
            line = self._selector.line_item(line_item_id)
            order = self._selector.purchase_order(line.purchase_order_id)
            with LogContext.bind(purchase_order_id=order.id, performed_by=performed_by):
                if order.order_status == PurchaseOrderStatus.CANCELLED:
                    raise PurchaseOrderValidationError(
                        f"purchase order {order.po_number} is cancelled"
                    )
                accepted = accepted_quantity(quantity, line.remaining, over_receive)
                if accepted is None:
                    raise OverReceiveConfirmationRequired(line.id, quantity, line.remaining)
                if accepted == 0:
                    raise FullyReceivedError(line.sku, line.quantity_received, line.quantity_ordered)
                if accepted != quantity:
                    logger.info(
                        "receipt_clamped",
                        extra={"requested": quantity, "accepted": accepted},
                    )
                return self._receive_units(line, order, quantity, accepted, performed_by, location)

    def _receive_units(
        self,
        line: POLineItemRecord,
        order: PurchaseOrderRecord,
        requested: int,
        accepted: int,
        performed_by: str,
        location: str | None,
    ) -> ReceiveResult:
        created: list[str] = []
        pending_ledger: list[LedgerEntryDraft] = []
        failure: Exception | None = None
        note = f"Received via PO {order.po_number} (SKU: {line.sku})"
        item_type = self._selector.item_type(line.item_type_id)

        for unit in range(accepted):
            try:
                result = self._lifecycle.receive(
                    item_type_id=line.item_type_id,
                    barcode=line.sku,
                    performed_by=performed_by,
                    location=location,
                    po_line_item_id=line.id,
                    purchase_order_id=order.id,
                    note=note,
                )
            except StoreError as exc:
                logger.warning(
                    "receive_unit_failed",
                    extra={"unit": unit + 1, "accepted": accepted, "reason": str(exc)},
                )
                failure = exc
                break
            created.append(result.item.id)
            if result.partial:
                pending_ledger.extend(result.partial.pending_ledger)

        if not created and failure is not None:
            raise failure

        committed = [f"item:{item_id}" for item_id in created]
        pending = [f"item:{n + 1}" for n in range(len(created), accepted)]
        reason = str(failure) if failure else ""

        updated_line: POLineItemRecord | None = None
        try:
            updated_line = self.add_received_quantity(line.id, len(created))
            committed.append(f"line_item:{line.id}:+{len(created)}")
        except (StoreError, ConcurrencyError) as exc:
            logger.warning("line_item_update_failed", extra={"reason": str(exc)})
            pending.append(f"line_item:{line.id}:+{len(created)}")
            reason = reason or str(exc)

        updated_order: PurchaseOrderRecord | None = None
        try:
            updated_order = self.recompute_order_totals(order.id)
            committed.append(f"order_totals:{order.id}")
        except (StoreError, ConcurrencyError) as exc:
            logger.warning("order_recompute_failed", extra={"reason": str(exc)})
            pending.append(f"order_totals:{order.id}")
            reason = reason or str(exc)

        partial = None
        if pending or pending_ledger:
            partial = PartialFailure(
                operation="receive",
                reason=reason or "ledger write failed",
                committed=tuple(committed),
                pending=tuple(pending),
                pending_ledger=tuple(pending_ledger),
            )

        self._recent.appendleft(
            ReceiptSummary(
                sku=line.sku,
                quantity=len(created),
                item_name=item_type.item_name,
                po_number=order.po_number,
            )
        )
        logger.info(
            "units_received",
            extra={
                "line_item_id": line.id,
                "requested": requested,
                "accepted": accepted,
                "created": len(created),
                "partial": partial is not None,
            },
        )
        return ReceiveResult(
            status=OperationStatus.PARTIAL if partial else OperationStatus.SUCCESS,
            line_item_id=line.id,
            requested=requested,
            accepted=accepted,
            created_item_ids=tuple(created),
            line_item=updated_line,
            purchase_order=updated_order,
            partial=partial,
        )

    # -- counters ---------------------------------------------------------

    def add_received_quantity(self, line_item_id: str, count: int) -> POLineItemRecord:
        """
        Raise a line item's ``quantity_received`` by ``count`` (revision-checked).

        Use it to finish a receipt whose line-item step was reported
        pending, with the created count from that result.
        """
        validate_quantity(count)

        def attempt() -> POLineItemRecord:
            line = self._selector.line_item(line_item_id)
            doc = self._store.update(
                Collection.PO_LINE_ITEMS,
                line_item_id,
                {"quantity_received": line.quantity_received + count},
                expected_revision=line.revision,
            )
            return POLineItemRecord.from_document(doc)

        return retry_on_conflict(attempt, self._max_write_retries)

    def recompute_order_totals(self, purchase_order_id: str) -> PurchaseOrderRecord:
        """Re-derive totals and status from a fresh read of every line item."""

        def attempt() -> PurchaseOrderRecord:
            order = self._selector.purchase_order(purchase_order_id)
            totals = recompute(
                self._selector.line_items_for_order(purchase_order_id), order.order_status
            )
            if (
                order.total_items == totals.total_items
                and order.received_items == totals.received_items
                and order.order_status == totals.order_status
            ):
                return order
            doc = self._store.update(
                Collection.PURCHASE_ORDERS,
                purchase_order_id,
                {
                    "total_items": totals.total_items,
                    "received_items": totals.received_items,
                    "order_status": totals.order_status,
                },
                expected_revision=order.revision,
            )
            logger.info(
                "order_totals_recomputed",
                extra={
                    "purchase_order_id": purchase_order_id,
                    "total_items": totals.total_items,
                    "received_items": totals.received_items,
                    "order_status": totals.order_status.value,
                },
            )
            return PurchaseOrderRecord.from_document(doc)

        with self._order_locks.hold(purchase_order_id):
            return retry_on_conflict(attempt, self._max_write_retries)
