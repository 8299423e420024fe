"""ORM tables backing the document-store collections."""

from inventory_kernel.models.catalog import ItemType, School, StandardPackageItem
from inventory_kernel.models.checkout import CheckoutSession
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.models.purchasing import POLineItem, PurchaseOrder
from inventory_kernel.models.school_order import SchoolOrder, SchoolOrderItem
from inventory_kernel.models.transaction import Transaction

__all__ = [
    "CheckoutSession",
    "InventoryItem",
    "ItemType",
    "POLineItem",
    "PurchaseOrder",
    "School",
    "SchoolOrder",
    "SchoolOrderItem",
    "StandardPackageItem",
    "Transaction",
]
