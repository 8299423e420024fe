"""Purchase-order and school-order counters derived from child rows."""

from datetime import date

import pytest

from inventory_kernel.domain.dtos import (
    POLineItemRecord,
    PurchaseOrderStatus,
    SchoolOrderItemRecord,
    SchoolOrderStatus,
)
from inventory_kernel.domain.order_totals import (
    derive_order_status,
    po_progress_percent,
    recompute,
    recompute_school_order,
    school_order_progress_percent,
)


def _line(ordered: int, received: int) -> POLineItemRecord:
    return POLineItemRecord(
        id=f"line-{ordered}-{received}",
        purchase_order_id="po-1",
        item_type_id="cam",
        sku="SKU",
        quantity_ordered=ordered,
        quantity_received=received,
        revision=1,
    )


def _order_item(needed: int, allocated: int) -> SchoolOrderItemRecord:
    return SchoolOrderItemRecord(
        id=f"soi-{needed}-{allocated}",
        school_order_id="so-1",
        item_type_id="cam",
        quantity_needed=needed,
        quantity_allocated=allocated,
        revision=1,
    )


class TestDeriveOrderStatus:
    @pytest.mark.parametrize(
        "total, received, expected",
        [
            (10, 0, PurchaseOrderStatus.ORDERED),
            (10, 4, PurchaseOrderStatus.PARTIALLY_RECEIVED),
            (10, 10, PurchaseOrderStatus.FULLY_RECEIVED),
            (10, 12, PurchaseOrderStatus.FULLY_RECEIVED),
            (0, 0, PurchaseOrderStatus.FULLY_RECEIVED),
        ],
    )
    def test_status_table(self, total, received, expected):
        assert derive_order_status(total, received) == expected


class TestRecompute:
    def test_sums_all_lines(self):
        totals = recompute([_line(5, 5), _line(3, 1)])
        assert totals.total_items == 8
        assert totals.received_items == 6
        assert totals.order_status == PurchaseOrderStatus.PARTIALLY_RECEIVED

    def test_cancelled_order_keeps_status(self):
        totals = recompute([_line(5, 5)], PurchaseOrderStatus.CANCELLED)
        assert totals.order_status == PurchaseOrderStatus.CANCELLED
        assert totals.received_items == 5


class TestRecomputeSchoolOrder:
    def test_planning_moves_to_receiving_on_first_allocation(self):
        totals = recompute_school_order([_order_item(3, 1)], SchoolOrderStatus.PLANNING)
        assert totals.order_status == SchoolOrderStatus.RECEIVING
        assert totals.allocated_items == 1

    def test_ready_when_everything_allocated(self):
        totals = recompute_school_order(
            [_order_item(2, 2), _order_item(1, 1)], SchoolOrderStatus.RECEIVING
        )
        assert totals.order_status == SchoolOrderStatus.READY

    def test_ordered_status_not_downgraded_to_receiving(self):
        totals = recompute_school_order([_order_item(3, 1)], SchoolOrderStatus.ORDERED)
        assert totals.order_status == SchoolOrderStatus.ORDERED

    def test_ready_order_short_again_goes_back_to_receiving(self):
        totals = recompute_school_order([_order_item(2, 1)], SchoolOrderStatus.READY)
        assert totals.order_status == SchoolOrderStatus.RECEIVING
        assert totals.allocated_items == 1

    def test_ready_order_with_nothing_left_goes_back_to_planning(self):
        totals = recompute_school_order([_order_item(2, 0)], SchoolOrderStatus.READY)
        assert totals.order_status == SchoolOrderStatus.PLANNING

    def test_empty_order_stays_planning(self):
        totals = recompute_school_order([], SchoolOrderStatus.PLANNING)
        assert totals.order_status == SchoolOrderStatus.PLANNING

    @pytest.mark.parametrize("status", [SchoolOrderStatus.CANCELLED, SchoolOrderStatus.INSTALLED])
    def test_closed_orders_keep_status(self, status):
        totals = recompute_school_order([_order_item(1, 1)], status)
        assert totals.order_status == status


class TestProgressPercent:
    def test_rounded(self):
        assert po_progress_percent(1, 3) == 33
        assert po_progress_percent(2, 3) == 67
        assert school_order_progress_percent(5, 5) == 100

    def test_zero_total_is_zero_percent(self):
        assert po_progress_percent(0, 0) == 0
        assert school_order_progress_percent(3, 0) == 0
