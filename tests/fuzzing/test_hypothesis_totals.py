"""
Property-based checks of the derived order counters.

Boundaries fuzzed here:
- purchase-order status against any set of line quantities
- school-order status against any set of allocations
- progress percentages stay within 0..100 while done <= total
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from inventory_kernel.domain.dtos import (
    POLineItemRecord,
    PurchaseOrderStatus,
    SchoolOrderItemRecord,
    SchoolOrderStatus,
)
from inventory_kernel.domain.order_totals import (
    po_progress_percent,
    recompute,
    recompute_school_order,
)

quantities = st.tuples(st.integers(min_value=1, max_value=500), st.integers(min_value=0, max_value=600))


@st.composite
def line_items(draw):
    rows = draw(st.lists(quantities, max_size=12))
    return [
        POLineItemRecord(
            id=f"line-{i}",
            purchase_order_id="po",
            item_type_id="t",
            sku=f"SKU-{i}",
            quantity_ordered=ordered,
            quantity_received=received,
            revision=1,
        )
        for i, (ordered, received) in enumerate(rows)
    ]


@st.composite
def order_items(draw):
    rows = draw(st.lists(quantities, max_size=12))
    return [
        SchoolOrderItemRecord(
            id=f"soi-{i}",
            school_order_id="so",
            item_type_id="t",
            quantity_needed=needed,
            quantity_allocated=allocated,
            revision=1,
        )
        for i, (needed, allocated) in enumerate(rows)
    ]


class TestPurchaseOrderTotalsProperties:
    @given(line_items())
    @settings(max_examples=200)
    def test_fully_received_iff_received_covers_total(self, lines):
        totals = recompute(lines)
        assert totals.total_items == sum(l.quantity_ordered for l in lines)
        assert totals.received_items == sum(l.quantity_received for l in lines)
        fully = totals.order_status == PurchaseOrderStatus.FULLY_RECEIVED
        assert fully == (totals.received_items >= totals.total_items)

    @given(line_items())
    def test_partially_received_iff_strictly_between(self, lines):
        totals = recompute(lines)
        partial = totals.order_status == PurchaseOrderStatus.PARTIALLY_RECEIVED
        assert partial == (0 < totals.received_items < totals.total_items)

    @given(line_items())
    def test_recompute_is_order_independent(self, lines):
        assert recompute(lines) == recompute(list(reversed(lines)))

    @given(line_items())
    def test_cancelled_is_sticky(self, lines):
        assert recompute(lines, PurchaseOrderStatus.CANCELLED).order_status == (
            PurchaseOrderStatus.CANCELLED
        )


class TestSchoolOrderTotalsProperties:
    @given(
        order_items(),
        st.sampled_from(
            [SchoolOrderStatus.PLANNING, SchoolOrderStatus.RECEIVING, SchoolOrderStatus.READY]
        ),
    )
    def test_ready_iff_fully_allocated(self, items, status):
        totals = recompute_school_order(items, status)
        ready = totals.order_status == SchoolOrderStatus.READY
        assert ready == (totals.total_items > 0 and totals.allocated_items >= totals.total_items)


class TestProgressPercentProperties:
    @given(st.integers(min_value=0, max_value=10_000), st.integers(min_value=0, max_value=10_000))
    def test_bounded(self, done, total):
        percent = po_progress_percent(min(done, total), total)
        assert 0 <= percent <= 100
