"""
Pytest fixtures for the inventory kernel test suite.

Provides:
- A fresh SQLite database per test (file-backed so threads share it)
- A DeterministicClock-driven ReconciliationEngine
- A seeded catalog: one school, a two-camera + one-projector kit and a
  non-kit item type
- FailingStore, a DocumentStore wrapper that injects StoreUnavailableError
- Structured log capture
"""

import json
import logging
from io import StringIO

import pytest

from inventory_config import EngineConfig
from inventory_config.bridges import engine_settings
from inventory_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.exceptions import StoreUnavailableError
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_kernel.services.engine import ReconciliationEngine
from inventory_kernel.store.document_store import Collection, DocumentStore
from inventory_kernel.store.sql_store import SqlDocumentStore

TEST_PERFORMER = "Test Tech"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.intake.scan_in("CAM-001")
            logs = captured_logs()
            assert any(r["message"] == "item_received" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Store and engine
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'inventory_test.db'}"


@pytest.fixture
def store(db_url, deterministic_clock):
    init_engine_from_url(db_url)
    create_tables()
    yield SqlDocumentStore(get_session_factory(), deterministic_clock)
    reset_engine()


@pytest.fixture
def config(db_url):
    return EngineConfig(database_url=db_url, log_level="DEBUG")


@pytest.fixture
def engine(store, deterministic_clock, config):
    return ReconciliationEngine(store, deterministic_clock, **engine_settings(config))


# =============================================================================
# Catalog
# =============================================================================


class Catalog:
    """Ids of the seeded reference data."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.school_id = store.create(
            Collection.SCHOOLS,
            {"school_name": "Lincoln Elementary", "school_code": "LIN", "district": "North"},
        )["id"]
        self.other_school_id = store.create(
            Collection.SCHOOLS,
            {"school_name": "Adams Middle", "school_code": "ADM", "district": "North"},
        )["id"]
        self.camera_type_id = store.create(
            Collection.ITEM_TYPES,
            {"item_name": "Camera", "category": "Video", "barcode": "CAM-001"},
        )["id"]
        self.projector_type_id = store.create(
            Collection.ITEM_TYPES,
            {"item_name": "Projector", "category": "Display", "barcode": "PRJ-001"},
        )["id"]
        self.cable_type_id = store.create(
            Collection.ITEM_TYPES,
            {"item_name": "Spare Cable", "category": "Cabling", "barcode": "CBL-001"},
        )["id"]
        store.create(
            Collection.STANDARD_PACKAGE_ITEMS,
            {"item_type_id": self.camera_type_id, "quantity": 2},
        )
        store.create(
            Collection.STANDARD_PACKAGE_ITEMS,
            {"item_type_id": self.projector_type_id, "quantity": 1},
        )

    def stock(self, engine: ReconciliationEngine, item_type_id: str, barcode: str, count: int = 1):
        """Receive ``count`` available units and return their ids."""
        return [
            engine.lifecycle.receive(item_type_id, barcode, TEST_PERFORMER).item.id
            for _ in range(count)
        ]


@pytest.fixture
def catalog(store):
    return Catalog(store)


@pytest.fixture
def stocked(engine, catalog):
    """Catalog with three cameras, two projectors and one spare cable on the shelf."""
    catalog.stock(engine, catalog.camera_type_id, "CAM-001", 3)
    catalog.stock(engine, catalog.projector_type_id, "PRJ-001", 2)
    catalog.stock(engine, catalog.cable_type_id, "CBL-001", 1)
    return catalog


# =============================================================================
# Failure injection
# =============================================================================


class FailingStore(DocumentStore):
    """
    Delegating store that raises StoreUnavailableError on chosen writes.

    ``fail_on("create", Collection.TRANSACTIONS, nth=2)`` fails the second
    create on the ledger from now on; ``times`` bounds how many calls fail.
    """

    def __init__(self, inner: DocumentStore):
        self.inner = inner
        self._rules: list[dict] = []

    def fail_on(self, operation: str, collection: str, nth: int = 1, times: int = 1) -> None:
        self._rules.append(
            {"operation": operation, "collection": collection, "nth": nth, "times": times, "seen": 0}
        )

    def clear(self) -> None:
        self._rules.clear()

    def _check(self, operation: str, collection: str) -> None:
        for rule in self._rules:
            if rule["operation"] != operation or rule["collection"] != collection:
                continue
            rule["seen"] += 1
            if rule["seen"] >= rule["nth"] and rule["times"] > 0:
                rule["times"] -= 1
                raise StoreUnavailableError(operation, collection, "injected failure")

    def get(self, collection, document_id):
        self._check("get", collection)
        return self.inner.get(collection, document_id)

    def list(self, collection, filters=(), sort=(), limit=None):
        self._check("list", collection)
        return self.inner.list(collection, filters, sort, limit)

    def create(self, collection, fields, document_id=None):
        self._check("create", collection)
        return self.inner.create(collection, fields, document_id)

    def update(self, collection, document_id, fields, expected_revision=None):
        self._check("update", collection)
        return self.inner.update(collection, document_id, fields, expected_revision)

    def delete(self, collection, document_id, expected_revision=None):
        self._check("delete", collection)
        return self.inner.delete(collection, document_id, expected_revision)


@pytest.fixture
def failing_store(store):
    return FailingStore(store)


@pytest.fixture
def failing_engine(failing_store, deterministic_clock, config):
    return ReconciliationEngine(failing_store, deterministic_clock, **engine_settings(config))
