"""
Order totals -- aggregate counters derived from child documents.

Purchase-order and school-order counters are never incremented in place.
Every write re-reads the full child set and calls into this module, so a
partially failed receiving loop or a lost update cannot leave the order
counters drifting from the line items.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from inventory_kernel.domain.dtos import (
    POLineItemRecord,
    PurchaseOrderStatus,
    SchoolOrderItemRecord,
    SchoolOrderStatus,
)


@dataclass(frozen=True)
class OrderTotals:
    total_items: int
    received_items: int
    order_status: PurchaseOrderStatus


def derive_order_status(total_items: int, received_items: int) -> PurchaseOrderStatus:
    """
    fully_received iff received >= total; partially_received iff
    0 < received < total; ordered otherwise.

    An order with no line items (0/0) counts as fully received.
    """
    if received_items >= total_items:
        return PurchaseOrderStatus.FULLY_RECEIVED
    if received_items > 0:
        return PurchaseOrderStatus.PARTIALLY_RECEIVED
    return PurchaseOrderStatus.ORDERED


def recompute(
    line_items: Iterable[POLineItemRecord],
    current_status: PurchaseOrderStatus | None = None,
) -> OrderTotals:
    """Sum a fresh set of line items.  A cancelled order keeps its status."""
    lines = list(line_items)
    total = sum(line.quantity_ordered for line in lines)
    received = sum(line.quantity_received for line in lines)
    if current_status == PurchaseOrderStatus.CANCELLED:
        status = PurchaseOrderStatus.CANCELLED
    else:
        status = derive_order_status(total, received)
    return OrderTotals(total_items=total, received_items=received, order_status=status)


@dataclass(frozen=True)
class SchoolOrderTotals:
    total_items: int
    allocated_items: int
    order_status: SchoolOrderStatus


def recompute_school_order(
    order_items: Iterable[SchoolOrderItemRecord],
    current_status: SchoolOrderStatus,
) -> SchoolOrderTotals:
    items = list(order_items)
    total = sum(item.quantity_needed for item in items)
    allocated = sum(item.quantity_allocated for item in items)

    status = current_status
    if current_status in (SchoolOrderStatus.CANCELLED, SchoolOrderStatus.INSTALLED):
        pass
    elif allocated >= total and total > 0:
        status = SchoolOrderStatus.READY
    elif current_status == SchoolOrderStatus.READY:
        # A released unit leaves the order short again.
        status = SchoolOrderStatus.RECEIVING if allocated > 0 else SchoolOrderStatus.PLANNING
    elif allocated > 0 and current_status == SchoolOrderStatus.PLANNING:
        status = SchoolOrderStatus.RECEIVING
    return SchoolOrderTotals(total_items=total, allocated_items=allocated, order_status=status)


def _percent(done: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(done / total * 100)


def po_progress_percent(received_items: int, total_items: int) -> int:
    return _percent(received_items, total_items)


def school_order_progress_percent(allocated_items: int, total_items: int) -> int:
    return _percent(allocated_items, total_items)
