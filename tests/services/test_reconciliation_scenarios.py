"""
End-to-end reconciliation scenarios.

A  kit progress and a non-kit scan
B  over-receipt confirmed by clamping to what remains
C  cancel a three-item checkout, then cancel again
D  double read of one barcode inside the debounce window
"""

import pytest

from inventory_kernel.domain.confirmation import CancelConfirmationGate, OverReceivePolicy
from inventory_kernel.domain.dtos import (
    CompletionStatus,
    OperationStatus,
    PurchaseOrderLineInput,
    PurchaseOrderStatus,
    SessionStatus,
)
from inventory_kernel.domain.lifecycle import ItemStatus, TransactionType
from inventory_kernel.exceptions import NotInStandardPackageError, OverReceiveConfirmationRequired

PERFORMER = "Scenario Tech"


def _confirmed_gate():
    gate = CancelConfirmationGate()
    gate.request()
    gate.confirm()
    gate.confirm_final()
    return gate


def test_scenario_a_kit_progress(engine, deterministic_clock, stocked):
    session = engine.checkout.get_or_create_session(stocked.school_id, PERFORMER)

    result = engine.checkout.scan(session.id, "CAM-001", PERFORMER)

    camera_row = next(r for r in result.progress if r.item_type_id == stocked.camera_type_id)
    assert (camera_row.checked_out, camera_row.needed) == (1, 2)
    assert result.completion == CompletionStatus.NOT_COMPLETE

    before = engine.selector.session(session.id)
    ledger_size = len(engine.selector.transactions())
    with pytest.raises(NotInStandardPackageError):
        engine.checkout.scan(session.id, "CBL-001", PERFORMER)
    assert engine.selector.session(session.id) == before
    assert len(engine.selector.transactions()) == ledger_size
    assert engine.selector.available_items_by_barcode("CBL-001")


def test_scenario_b_over_receive_clamped(engine, catalog):
    order = engine.purchase_orders.create_purchase_order(
        "Acme AV Supply", [PurchaseOrderLineInput(catalog.camera_type_id, "CAM-SKU-100", 10)]
    )
    line_id = order.line_items[0].id
    engine.receiving.receive(line_id, 8, PERFORMER)

    with pytest.raises(OverReceiveConfirmationRequired):
        engine.receiving.receive(line_id, 5, PERFORMER)
    assert engine.selector.line_item(line_id).quantity_received == 8

    result = engine.receiving.receive(line_id, 5, PERFORMER, over_receive=OverReceivePolicy.CLAMP)

    assert result.accepted == 2
    assert result.line_item.quantity_received == 10
    assert result.purchase_order.order_status == PurchaseOrderStatus.FULLY_RECEIVED
    assert engine.selector.count_by_barcode("CAM-SKU-100") == 10


def test_scenario_c_cancel_three_items(engine, deterministic_clock, stocked):
    session = engine.checkout.get_or_create_session(stocked.school_id, PERFORMER)
    items = []
    for barcode in ("CAM-001", "CAM-001", "PRJ-001"):
        deterministic_clock.advance(3)
        items.append(engine.checkout.scan(session.id, barcode, PERFORMER).item)

    result = engine.checkout.cancel(session.id, PERFORMER, _confirmed_gate())

    assert result.session.status == SessionStatus.CANCELLED
    assert all(engine.selector.item(i.id).status == ItemStatus.AVAILABLE for i in items)
    notes = engine.selector.transactions(TransactionType.NOTE)
    assert sorted(n.inventory_item_id for n in notes) == sorted(i.id for i in items)

    again = engine.checkout.cancel(session.id, PERFORMER, _confirmed_gate())
    assert again.status == OperationStatus.NOOP
    assert len(engine.selector.transactions(TransactionType.NOTE)) == 3


def test_scenario_d_double_read(engine, deterministic_clock, stocked):
    session = engine.checkout.get_or_create_session(stocked.school_id, PERFORMER)

    first = engine.checkout.scan(session.id, "CAM-001", PERFORMER)
    deterministic_clock.advance(0.3)
    second = engine.checkout.scan(session.id, "CAM-001", PERFORMER)

    assert first.status == OperationStatus.SUCCESS
    assert second.status == OperationStatus.IGNORED
    assert len(engine.selector.checked_out_items(session.id)) == 1
    assert len(engine.selector.transactions(TransactionType.ASSIGNED)) == 1
