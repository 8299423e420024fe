"""
inventory_kernel.services.engine -- Central DI container for the engine.

Responsibility:
    Creates every service exactly once and wires them together.  No
    service constructs another service internally; all wiring is visible
    in ``__init__``.

Architecture position:
    Kernel > Services.  Settings arrive as plain keyword arguments so the
    kernel never imports ``inventory_config``; the config-to-engine bridge
    lives in ``inventory_config.bridges``.

Usage:
    from inventory_kernel.services.engine import ReconciliationEngine

    engine = ReconciliationEngine(store, clock=clock, scan_cooldown_seconds=2.0)

    engine.checkout.scan(session_id, barcode, performed_by="J. Tech")
    engine.receiving.resolve_sku("CAM-100-SKU")
    engine.intake.scan_in("CAM-001")
    engine.school_orders.allocate(order_item_id, [item_id])
"""

from __future__ import annotations

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.debounce import ScanDebouncer
from inventory_kernel.logging_config import get_logger
from inventory_kernel.selectors.inventory_selector import InventorySelector
from inventory_kernel.services.checkout_service import CheckoutService
from inventory_kernel.services.intake_service import IntakeService
from inventory_kernel.services.item_lifecycle_service import ItemLifecycleService
from inventory_kernel.services.ledger_writer import TransactionLedgerWriter
from inventory_kernel.services.purchase_order_service import PurchaseOrderService
from inventory_kernel.services.receiving_service import ReceivingService
from inventory_kernel.services.school_order_service import SchoolOrderService
from inventory_kernel.store.document_store import DocumentStore

logger = get_logger("services.engine")


class ReconciliationEngine:
    def __init__(
        self,
        store: DocumentStore,
        clock: Clock | None = None,
        *,
        scan_cooldown_seconds: float = 2.0,
        max_write_retries: int = 3,
        recent_receipts_limit: int = 5,
        default_performer: str = "Unknown",
        po_number_prefix: str = "PO",
        school_order_prefix: str = "SO",
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.selector = InventorySelector(store)
        self.debouncer = ScanDebouncer(self.clock, cooldown_seconds=scan_cooldown_seconds)

        self.ledger = TransactionLedgerWriter(store, self.clock, self.selector)
        self.lifecycle = ItemLifecycleService(store, self.ledger, self.clock, self.selector)
        self.checkout = CheckoutService(
            store,
            self.lifecycle,
            self.debouncer,
            self.clock,
            self.selector,
            max_write_retries=max_write_retries,
            default_performer=default_performer,
        )
        self.receiving = ReceivingService(
            store,
            self.lifecycle,
            self.clock,
            self.selector,
            max_write_retries=max_write_retries,
            default_performer=default_performer,
            recent_receipts_limit=recent_receipts_limit,
        )
        self.purchase_orders = PurchaseOrderService(
            store,
            self.receiving,
            self.clock,
            self.selector,
            po_number_prefix=po_number_prefix,
            max_write_retries=max_write_retries,
            default_performer=default_performer,
        )
        self.intake = IntakeService(
            store,
            self.lifecycle,
            self.debouncer,
            self.clock,
            self.selector,
            default_performer=default_performer,
        )
        self.school_orders = SchoolOrderService(
            store,
            self.lifecycle,
            self.clock,
            self.selector,
            school_order_prefix=school_order_prefix,
            max_write_retries=max_write_retries,
            default_performer=default_performer,
        )
        self.lifecycle.add_release_listener(self.school_orders.release_item)

        logger.info(
            "reconciliation_engine_ready",
            extra={
                "scan_cooldown_seconds": scan_cooldown_seconds,
                "max_write_retries": max_write_retries,
            },
        )
