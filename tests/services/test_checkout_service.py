"""
CheckoutService: sessions, scanning and progress.

Every scan of the same barcode in these tests advances the clock past the
debounce window first; the debounce itself has its own tests below.
"""

import pytest

from inventory_kernel.domain.dtos import CompletionStatus, OperationStatus, SessionStatus
from inventory_kernel.domain.lifecycle import ItemStatus
from inventory_kernel.exceptions import (
    AlreadyCompleteError,
    DocumentNotFoundError,
    ItemNotFoundError,
    MissingScanContextError,
    NotInStandardPackageError,
    SessionNotActiveError,
)
from inventory_kernel.store.document_store import Collection

PERFORMER = "Checkout Tech"


@pytest.fixture
def session(engine, stocked):
    return engine.checkout.get_or_create_session(stocked.school_id, PERFORMER)


def _scan(engine, clock, session_id, barcode):
    clock.advance(5)
    return engine.checkout.scan(session_id, barcode, PERFORMER)


class TestSessions:
    def test_new_session_counts_the_kit(self, session, stocked):
        assert session.status == SessionStatus.IN_PROGRESS
        assert session.school_id == stocked.school_id
        assert session.total_items_needed == 3
        assert session.total_items_checked_out == 0
        assert session.completion == CompletionStatus.NOT_COMPLETE

    def test_existing_session_is_reused(self, engine, session, stocked):
        again = engine.checkout.get_or_create_session(stocked.school_id, PERFORMER)
        assert again.id == session.id

    def test_unknown_school(self, engine, stocked):
        with pytest.raises(DocumentNotFoundError):
            engine.checkout.get_or_create_session("no-such-school")
        assert engine.store.list(Collection.CHECKOUT_SESSIONS) == []

    def test_oldest_in_progress_session_wins(self, engine, store, stocked, captured_logs):
        fields = {
            "school_id": stocked.school_id,
            "status": SessionStatus.IN_PROGRESS,
            "total_items_needed": 3,
            "total_items_checked_out": 0,
            "created_by": "legacy",
        }
        first = store.create(Collection.CHECKOUT_SESSIONS, fields)
        store.create(Collection.CHECKOUT_SESSIONS, fields)
        chosen = engine.checkout.get_or_create_session(stocked.school_id)
        assert chosen.id == first["id"]
        assert any(r["message"] == "multiple_in_progress_sessions" for r in captured_logs())


class TestScan:
    def test_scan_assigns_first_available_unit(self, engine, deterministic_clock, session, stocked):
        first_camera = engine.selector.available_items_by_barcode("CAM-001")[0]
        result = _scan(engine, deterministic_clock, session.id, "CAM-001")

        assert result.status == OperationStatus.SUCCESS
        assert result.item.id == first_camera.id
        assert result.item.status == ItemStatus.ASSIGNED
        assert result.item.checkout_id == session.id
        assert result.session.total_items_checked_out == 1
        assert result.transaction_id is not None
        assert result.notice == "Camera checked out"

    def test_progress_rows_after_scan(self, engine, deterministic_clock, session):
        result = _scan(engine, deterministic_clock, session.id, "PRJ-001")
        assert [(r.item_name, r.checked_out, r.needed) for r in result.progress] == [
            ("Camera", 0, 2),
            ("Projector", 1, 1),
        ]
        assert engine.checkout.progress(session.id) == result.progress

    def test_completing_the_kit(self, engine, deterministic_clock, session):
        _scan(engine, deterministic_clock, session.id, "CAM-001")
        _scan(engine, deterministic_clock, session.id, "CAM-001")
        result = _scan(engine, deterministic_clock, session.id, "PRJ-001")
        assert result.session.total_items_checked_out == 3
        assert result.completion == CompletionStatus.COMPLETE
        assert result.session.status == SessionStatus.IN_PROGRESS

    def test_row_already_complete(self, engine, deterministic_clock, session):
        _scan(engine, deterministic_clock, session.id, "PRJ-001")
        with pytest.raises(AlreadyCompleteError) as exc_info:
            _scan(engine, deterministic_clock, session.id, "PRJ-001")
        assert exc_info.value.needed == 1
        assert len(engine.selector.available_items_by_barcode("PRJ-001")) == 1

    def test_item_not_in_kit(self, engine, deterministic_clock, session):
        with pytest.raises(NotInStandardPackageError) as exc_info:
            _scan(engine, deterministic_clock, session.id, "CBL-001")
        assert exc_info.value.item_name == "Spare Cable"
        assert engine.selector.available_items_by_barcode("CBL-001")

    def test_unknown_or_exhausted_barcode(self, engine, deterministic_clock, session):
        with pytest.raises(ItemNotFoundError):
            _scan(engine, deterministic_clock, session.id, "NOPE-404")

    def test_blank_barcode(self, engine, session):
        with pytest.raises(MissingScanContextError):
            engine.checkout.scan(session.id, "   ")

    def test_barcode_is_trimmed(self, engine, deterministic_clock, session):
        result = _scan(engine, deterministic_clock, session.id, "  CAM-001 \n")
        assert result.status == OperationStatus.SUCCESS

    def test_default_performer_on_ledger(self, engine, deterministic_clock, session):
        deterministic_clock.advance(5)
        result = engine.checkout.scan(session.id, "CAM-001")
        entry = engine.selector.transactions_for_item(result.item.id)[-1]
        assert entry.performed_by == "Unknown"


class TestDebounce:
    def test_double_read_is_ignored(self, engine, deterministic_clock, session):
        first = _scan(engine, deterministic_clock, session.id, "CAM-001")
        deterministic_clock.advance(0.5)
        second = engine.checkout.scan(session.id, "CAM-001", PERFORMER)

        assert first.status == OperationStatus.SUCCESS
        assert second.status == OperationStatus.IGNORED
        assert second.item is None
        assert engine.selector.session(session.id).total_items_checked_out == 1

    def test_other_barcode_not_debounced(self, engine, deterministic_clock, session):
        _scan(engine, deterministic_clock, session.id, "CAM-001")
        result = engine.checkout.scan(session.id, "PRJ-001", PERFORMER)
        assert result.status == OperationStatus.SUCCESS


class TestInactiveSession:
    def test_scan_into_cancelled_session(self, engine, store, deterministic_clock, session):
        store.update(Collection.CHECKOUT_SESSIONS, session.id, {"status": SessionStatus.CANCELLED})
        with pytest.raises(SessionNotActiveError) as exc_info:
            _scan(engine, deterministic_clock, session.id, "CAM-001")
        assert exc_info.value.status == "cancelled"


class TestCounterRecompute:
    def test_counter_derived_from_items(self, engine, store, deterministic_clock, session):
        result = _scan(engine, deterministic_clock, session.id, "CAM-001")
        store.update(Collection.CHECKOUT_SESSIONS, session.id, {"total_items_checked_out": 7})
        repaired = engine.checkout.recompute_session_counter(session.id)
        assert repaired.total_items_checked_out == 1

        engine.lifecycle.advance(result.item.id, ItemStatus.INSTALLED, PERFORMER)
        assert engine.checkout.recompute_session_counter(session.id).total_items_checked_out == 1

    def test_unchanged_counter_is_not_rewritten(self, engine, session):
        before = engine.selector.session(session.id)
        after = engine.checkout.recompute_session_counter(session.id)
        assert after.revision == before.revision
