"""
SqlDocumentStore contract.

Verifies:
- store-managed fields (seq, revision, timestamps) on create and update
- compare-and-swap on revision
- equality filters, IS NULL filters, sorting, limits and seq tie-breaks
- SQLAlchemy failures surface as kernel StoreError subclasses
"""

import pytest

from inventory_kernel.db.engine import drop_tables, get_session_factory, session_scope
from inventory_kernel.db.sequence import SequenceService
from inventory_kernel.domain.lifecycle import ItemStatus
from inventory_kernel.exceptions import (
    DocumentExistsError,
    DocumentNotFoundError,
    OptimisticLockError,
    StoreUnavailableError,
    UnknownCollectionError,
    UnknownFieldError,
)
from inventory_kernel.store.document_store import Collection, Filter, Sort


def _school(store, name: str, code: str, **extra):
    return store.create(Collection.SCHOOLS, {"school_name": name, "school_code": code, **extra})


class TestCreateAndGet:
    def test_create_sets_managed_fields(self, store, deterministic_clock):
        doc = _school(store, "Lincoln Elementary", "LIN")
        assert doc["revision"] == 1
        assert doc["seq"] == 1
        assert doc["created_at"] == deterministic_clock.now()
        assert doc["updated_at"] == deterministic_clock.now()
        assert store.get(Collection.SCHOOLS, doc["id"])["school_name"] == "Lincoln Elementary"

    def test_seq_increases_per_collection(self, store):
        first = _school(store, "A", "A")
        second = _school(store, "B", "B")
        item_type = store.create(
            Collection.ITEM_TYPES, {"item_name": "Camera", "category": "Video", "barcode": "CAM"}
        )
        assert second["seq"] == first["seq"] + 1
        assert item_type["seq"] == 1

    def test_caller_supplied_id(self, store):
        doc = store.create(
            Collection.SCHOOLS, {"school_name": "A", "school_code": "A"}, document_id="school-a"
        )
        assert doc["id"] == "school-a"

    def test_duplicate_id_rejected(self, store):
        store.create(Collection.SCHOOLS, {"school_name": "A", "school_code": "A"}, document_id="x")
        with pytest.raises(DocumentExistsError) as exc_info:
            store.create(Collection.SCHOOLS, {"school_name": "B", "school_code": "B"}, document_id="x")
        assert exc_info.value.document_id == "x"
        assert store.get(Collection.SCHOOLS, "x")["school_name"] == "A"

    def test_missing_document(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.get(Collection.SCHOOLS, "nope")

    def test_enum_values_stored_as_strings(self, store):
        doc = store.create(
            Collection.INVENTORY_ITEMS,
            {"barcode": "CAM", "item_type_id": "t", "status": ItemStatus.AVAILABLE},
        )
        assert doc["status"] == "available"


class TestUpdate:
    def test_update_bumps_revision_and_timestamp(self, store, deterministic_clock):
        doc = _school(store, "Lincoln", "LIN")
        deterministic_clock.advance(60)
        updated = store.update(
            Collection.SCHOOLS, doc["id"], {"district": "South"}, expected_revision=1
        )
        assert updated["revision"] == 2
        assert updated["district"] == "South"
        assert updated["updated_at"] == deterministic_clock.now()
        assert updated["created_at"] == doc["created_at"]

    def test_stale_revision_writes_nothing(self, store):
        doc = _school(store, "Lincoln", "LIN")
        store.update(Collection.SCHOOLS, doc["id"], {"district": "South"}, expected_revision=1)
        with pytest.raises(OptimisticLockError) as exc_info:
            store.update(Collection.SCHOOLS, doc["id"], {"district": "East"}, expected_revision=1)
        assert exc_info.value.expected_revision == 1
        assert exc_info.value.actual_revision == 2
        assert store.get(Collection.SCHOOLS, doc["id"])["district"] == "South"

    def test_update_without_revision_is_unconditional(self, store):
        doc = _school(store, "Lincoln", "LIN")
        store.update(Collection.SCHOOLS, doc["id"], {"district": "South"})
        assert store.update(Collection.SCHOOLS, doc["id"], {"active": False})["revision"] == 3

    def test_update_missing_document(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.update(Collection.SCHOOLS, "nope", {"district": "x"})

    @pytest.mark.parametrize("field", ["revision", "seq", "created_at", "updated_at"])
    def test_managed_fields_are_not_writable(self, store, field):
        doc = _school(store, "Lincoln", "LIN")
        with pytest.raises(UnknownFieldError):
            store.update(Collection.SCHOOLS, doc["id"], {field: 99})

    def test_unknown_field(self, store):
        with pytest.raises(UnknownFieldError) as exc_info:
            _school(store, "Lincoln", "LIN", principal="Ms. Ray")
        assert exc_info.value.field == "principal"


class TestList:
    def test_equality_filters_and_creation_order(self, store):
        a = _school(store, "Zeta", "Z", district="North")
        _school(store, "Beta", "B", district="South")
        c = _school(store, "Alpha", "A", district="North")
        docs = store.list(Collection.SCHOOLS, [Filter.equal("district", "North")])
        assert [d["id"] for d in docs] == [a["id"], c["id"]]

    def test_none_filter_matches_null(self, store):
        _school(store, "Zeta", "Z", district="North")
        b = _school(store, "Beta", "B")
        docs = store.list(Collection.SCHOOLS, [Filter.equal("district", None)])
        assert [d["id"] for d in docs] == [b["id"]]

    def test_sort_then_seq_tie_break(self, store):
        first = _school(store, "Same", "S1")
        second = _school(store, "Same", "S2")
        other = _school(store, "Alpha", "A")
        docs = store.list(Collection.SCHOOLS, sort=[Sort.asc("school_name")])
        assert [d["id"] for d in docs] == [other["id"], first["id"], second["id"]]
        docs = store.list(Collection.SCHOOLS, sort=[Sort.desc("school_name")])
        assert [d["id"] for d in docs] == [first["id"], second["id"], other["id"]]

    def test_limit_and_first(self, store):
        first = _school(store, "A", "A")
        _school(store, "B", "B")
        assert len(store.list(Collection.SCHOOLS, limit=1)) == 1
        assert store.first(Collection.SCHOOLS)["id"] == first["id"]
        assert store.first(Collection.SCHOOLS, [Filter.equal("school_code", "Q")]) is None

    def test_unknown_filter_field(self, store):
        with pytest.raises(UnknownFieldError):
            store.list(Collection.SCHOOLS, [Filter.equal("mascot", "owls")])

    def test_unknown_collection(self, store):
        with pytest.raises(UnknownCollectionError):
            store.list("office_supplies")


class TestDelete:
    def test_delete(self, store):
        doc = _school(store, "A", "A")
        store.delete(Collection.SCHOOLS, doc["id"])
        with pytest.raises(DocumentNotFoundError):
            store.get(Collection.SCHOOLS, doc["id"])
        with pytest.raises(DocumentNotFoundError):
            store.delete(Collection.SCHOOLS, doc["id"])

    def test_delete_checks_revision(self, store):
        doc = _school(store, "A", "A")
        store.update(Collection.SCHOOLS, doc["id"], {"district": "North"}, expected_revision=1)
        with pytest.raises(OptimisticLockError):
            store.delete(Collection.SCHOOLS, doc["id"], expected_revision=1)
        assert store.get(Collection.SCHOOLS, doc["id"])["revision"] == 2
        store.delete(Collection.SCHOOLS, doc["id"], expected_revision=2)
        with pytest.raises(DocumentNotFoundError):
            store.get(Collection.SCHOOLS, doc["id"])


class TestFailureTranslation:
    def test_operational_error_becomes_store_unavailable(self, store):
        drop_tables()
        with pytest.raises(StoreUnavailableError) as exc_info:
            store.list(Collection.SCHOOLS)
        assert exc_info.value.collection == Collection.SCHOOLS
        assert exc_info.value.operation == "list"


class TestSequenceService:
    def test_values_strictly_increase(self, store):
        with session_scope(get_session_factory()) as session:
            service = SequenceService(session)
            values = [service.next_value("widgets") for _ in range(3)]
            assert values == [1, 2, 3]
            assert service.current_value("widgets") == 3
            assert service.current_value("gadgets") is None
