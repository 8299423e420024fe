"""
inventory_kernel.services -- write-side services.

Dependency direction:
    services/ -> selectors/, store/, domain/, utils/   (allowed)
    domain/   -> services/                              (FORBIDDEN)
    services/ -> inventory_config                       (FORBIDDEN)

All wiring is centralised in ReconciliationEngine.
"""

from inventory_kernel.services.checkout_service import CheckoutService
from inventory_kernel.services.engine import ReconciliationEngine
from inventory_kernel.services.intake_service import IntakeService
from inventory_kernel.services.item_lifecycle_service import ItemLifecycleService
from inventory_kernel.services.ledger_writer import TransactionLedgerWriter
from inventory_kernel.services.purchase_order_service import PurchaseOrderService
from inventory_kernel.services.receiving_service import ReceivingService, validate_quantity
from inventory_kernel.services.school_order_service import SchoolOrderService

__all__ = [
    "CheckoutService",
    "IntakeService",
    "ItemLifecycleService",
    "PurchaseOrderService",
    "ReceivingService",
    "ReconciliationEngine",
    "SchoolOrderService",
    "TransactionLedgerWriter",
    "validate_quantity",
]
