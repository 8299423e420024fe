"""
InventorySelector -- every read the services and callers need.

All queries are equality-filtered lists ordered by creation (``seq``);
anything an OR query would express is fetched as a superset and narrowed
here.
"""

from __future__ import annotations

from inventory_kernel.domain.dtos import (
    CheckoutSessionRecord,
    InventoryItemRecord,
    ItemTypeRecord,
    POLineItemRecord,
    PurchaseOrderRecord,
    SchoolOrderItemRecord,
    SchoolOrderRecord,
    SchoolRecord,
    SessionStatus,
    StandardPackageItemRecord,
    TransactionRecord,
)
from inventory_kernel.domain.lifecycle import (
    CANCELLABLE_STATUSES,
    SCHOOL_BOUND_STATUSES,
    ItemStatus,
)
from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.store.document_store import Collection, Filter, Sort


class InventorySelector(BaseSelector):
    # -- catalog ----------------------------------------------------------

    def item_type(self, item_type_id: str) -> ItemTypeRecord:
        return ItemTypeRecord.from_document(self.store.get(Collection.ITEM_TYPES, item_type_id))

    def item_type_by_barcode(self, barcode: str) -> ItemTypeRecord | None:
        doc = self.store.first(Collection.ITEM_TYPES, [Filter.equal("barcode", barcode)])
        return ItemTypeRecord.from_document(doc) if doc else None

    def item_types(self) -> dict[str, ItemTypeRecord]:
        return {
            doc["id"]: ItemTypeRecord.from_document(doc)
            for doc in self.store.list(Collection.ITEM_TYPES)
        }

    def school(self, school_id: str) -> SchoolRecord:
        return SchoolRecord.from_document(self.store.get(Collection.SCHOOLS, school_id))

    def active_schools(self) -> list[SchoolRecord]:
        docs = self.store.list(
            Collection.SCHOOLS,
            [Filter.equal("active", True)],
            [Sort.asc("school_name")],
        )
        return [SchoolRecord.from_document(doc) for doc in docs]

    def standard_package(self) -> list[StandardPackageItemRecord]:
        return [
            StandardPackageItemRecord.from_document(doc)
            for doc in self.store.list(Collection.STANDARD_PACKAGE_ITEMS)
        ]

    # -- inventory items --------------------------------------------------

    def item(self, item_id: str) -> InventoryItemRecord:
        return InventoryItemRecord.from_document(
            self.store.get(Collection.INVENTORY_ITEMS, item_id)
        )

    def available_items_by_barcode(
        self, barcode: str, limit: int | None = None
    ) -> list[InventoryItemRecord]:
        docs = self.store.list(
            Collection.INVENTORY_ITEMS,
            [
                Filter.equal("barcode", barcode),
                Filter.equal("status", ItemStatus.AVAILABLE),
            ],
            limit=limit,
        )
        return [InventoryItemRecord.from_document(doc) for doc in docs]

    def available_items_of_type(
        self, item_type_id: str, limit: int | None = None
    ) -> list[InventoryItemRecord]:
        docs = self.store.list(
            Collection.INVENTORY_ITEMS,
            [
                Filter.equal("item_type_id", item_type_id),
                Filter.equal("status", ItemStatus.AVAILABLE),
            ],
            limit=limit,
        )
        return [InventoryItemRecord.from_document(doc) for doc in docs]

    def items_for_session(self, checkout_id: str) -> list[InventoryItemRecord]:
        docs = self.store.list(
            Collection.INVENTORY_ITEMS, [Filter.equal("checkout_id", checkout_id)]
        )
        return [InventoryItemRecord.from_document(doc) for doc in docs]

    def checked_out_items(self, checkout_id: str) -> list[InventoryItemRecord]:
        """Items the session still holds (assigned or staged)."""
        return [
            item
            for item in self.items_for_session(checkout_id)
            if item.status in CANCELLABLE_STATUSES
        ]

    def allocated_items(self, school_order_id: str, item_type_id: str) -> list[InventoryItemRecord]:
        """Units of one type still held for the school order."""
        docs = self.store.list(
            Collection.INVENTORY_ITEMS,
            [
                Filter.equal("school_order_id", school_order_id),
                Filter.equal("item_type_id", item_type_id),
            ],
        )
        return [
            item
            for item in map(InventoryItemRecord.from_document, docs)
            if item.status in SCHOOL_BOUND_STATUSES
        ]

    def count_by_barcode(self, barcode: str) -> int:
        return len(
            self.store.list(Collection.INVENTORY_ITEMS, [Filter.equal("barcode", barcode)])
        )

    # -- checkout sessions ------------------------------------------------

    def session(self, session_id: str) -> CheckoutSessionRecord:
        return CheckoutSessionRecord.from_document(
            self.store.get(Collection.CHECKOUT_SESSIONS, session_id)
        )

    def in_progress_sessions(self, school_id: str) -> list[CheckoutSessionRecord]:
        """Every in-progress session for the school, oldest first."""
        docs = self.store.list(
            Collection.CHECKOUT_SESSIONS,
            [
                Filter.equal("school_id", school_id),
                Filter.equal("status", SessionStatus.IN_PROGRESS),
            ],
        )
        return [CheckoutSessionRecord.from_document(doc) for doc in docs]

    # -- purchasing -------------------------------------------------------

    def purchase_order(self, purchase_order_id: str) -> PurchaseOrderRecord:
        return PurchaseOrderRecord.from_document(
            self.store.get(Collection.PURCHASE_ORDERS, purchase_order_id)
        )

    def line_item(self, line_item_id: str) -> POLineItemRecord:
        return POLineItemRecord.from_document(self.store.get(Collection.PO_LINE_ITEMS, line_item_id))

    def line_items_by_sku(self, sku: str) -> list[POLineItemRecord]:
        docs = self.store.list(Collection.PO_LINE_ITEMS, [Filter.equal("sku", sku)])
        return [POLineItemRecord.from_document(doc) for doc in docs]

    def line_items_for_order(self, purchase_order_id: str) -> list[POLineItemRecord]:
        docs = self.store.list(
            Collection.PO_LINE_ITEMS, [Filter.equal("purchase_order_id", purchase_order_id)]
        )
        return [POLineItemRecord.from_document(doc) for doc in docs]

    def purchase_orders(self, status: str | None = None) -> list[PurchaseOrderRecord]:
        filters = [Filter.equal("order_status", status)] if status else []
        docs = self.store.list(Collection.PURCHASE_ORDERS, filters, [Sort.desc("order_date")])
        return [PurchaseOrderRecord.from_document(doc) for doc in docs]

    # -- school orders ----------------------------------------------------

    def school_order(self, school_order_id: str) -> SchoolOrderRecord:
        return SchoolOrderRecord.from_document(
            self.store.get(Collection.SCHOOL_ORDERS, school_order_id)
        )

    def school_order_item(self, order_item_id: str) -> SchoolOrderItemRecord:
        return SchoolOrderItemRecord.from_document(
            self.store.get(Collection.SCHOOL_ORDER_ITEMS, order_item_id)
        )

    def school_order_items(self, school_order_id: str) -> list[SchoolOrderItemRecord]:
        docs = self.store.list(
            Collection.SCHOOL_ORDER_ITEMS, [Filter.equal("school_order_id", school_order_id)]
        )
        return [SchoolOrderItemRecord.from_document(doc) for doc in docs]

    def school_orders(self, status: str | None = None) -> list[SchoolOrderRecord]:
        filters = [Filter.equal("order_status", status)] if status else []
        docs = self.store.list(Collection.SCHOOL_ORDERS, filters, [Sort.asc("install_date")])
        return [SchoolOrderRecord.from_document(doc) for doc in docs]

    # -- ledger (audit display only) --------------------------------------

    def transactions_for_item(self, item_id: str) -> list[TransactionRecord]:
        docs = self.store.list(
            Collection.TRANSACTIONS, [Filter.equal("inventory_item_id", item_id)]
        )
        return [TransactionRecord.from_document(doc) for doc in docs]

    def transactions(self, transaction_type: str | None = None) -> list[TransactionRecord]:
        filters = [Filter.equal("transaction_type", transaction_type)] if transaction_type else []
        return [
            TransactionRecord.from_document(doc)
            for doc in self.store.list(Collection.TRANSACTIONS, filters)
        ]
