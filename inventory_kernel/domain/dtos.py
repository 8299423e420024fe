"""
DTOs -- immutable records that cross the service boundary.

Responsibility:
    Read-side records built from store documents (``from_document``), the
    pre-allocated ledger draft, and the result objects every write operation
    returns.  Services never hand raw store documents to callers.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Partial failures:
    A multi-step operation that stops after some writes committed returns a
    result whose ``partial`` field holds a ``PartialFailure``.  It lists the
    committed step markers, the pending step markers, and any ledger drafts
    that still need writing, so the caller retries only the remainder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping

from inventory_kernel.domain.lifecycle import ItemStatus, TransactionType


class OperationStatus(str, Enum):
    """Outcome of a service call."""

    SUCCESS = "success"
    PARTIAL = "partial"
    IGNORED = "ignored"
    NOOP = "noop"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"


class CompletionStatus(str, Enum):
    """Whether a checkout session holds the whole standard package."""

    NOT_COMPLETE = "not_complete"
    COMPLETE = "complete"


class PurchaseOrderStatus(str, Enum):
    ORDERED = "ordered"
    PARTIALLY_RECEIVED = "partially_received"
    FULLY_RECEIVED = "fully_received"
    CANCELLED = "cancelled"


class SchoolOrderStatus(str, Enum):
    PLANNING = "planning"
    ORDERED = "ordered"
    RECEIVING = "receiving"
    READY = "ready"
    INSTALLED = "installed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Store-backed records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemTypeRecord:
    id: str
    item_name: str
    category: str
    barcode: str
    manufacturer: str | None = None
    model: str | None = None
    description: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> ItemTypeRecord:
        return cls(
            id=doc["id"],
            item_name=doc["item_name"],
            category=doc["category"],
            barcode=doc["barcode"],
            manufacturer=doc.get("manufacturer"),
            model=doc.get("model"),
            description=doc.get("description"),
        )


@dataclass(frozen=True)
class SchoolRecord:
    id: str
    school_name: str
    school_code: str
    district: str | None = None
    active: bool = True

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> SchoolRecord:
        return cls(
            id=doc["id"],
            school_name=doc["school_name"],
            school_code=doc["school_code"],
            district=doc.get("district"),
            active=bool(doc.get("active", True)),
        )


@dataclass(frozen=True)
class StandardPackageItemRecord:
    id: str
    item_type_id: str
    quantity: int

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> StandardPackageItemRecord:
        return cls(id=doc["id"], item_type_id=doc["item_type_id"], quantity=doc["quantity"])


@dataclass(frozen=True)
class InventoryItemRecord:
    """
    One physical unit.

    ``revision`` is the value read from the store; every write passes it back
    as the expected revision.
    """

    id: str
    barcode: str
    item_type_id: str
    status: ItemStatus
    revision: int
    seq: int = 0
    serial_number: str | None = None
    location: str | None = None
    school_id: str | None = None
    checkout_id: str | None = None
    school_order_id: str | None = None
    po_line_item_id: str | None = None
    purchase_order_id: str | None = None
    is_school_specific: bool = False
    received_at: datetime | None = None
    staged_at: datetime | None = None
    installed_at: datetime | None = None
    notes: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> InventoryItemRecord:
        return cls(
            id=doc["id"],
            barcode=doc["barcode"],
            item_type_id=doc["item_type_id"],
            status=ItemStatus(doc["status"]),
            revision=doc["revision"],
            seq=doc.get("seq", 0),
            serial_number=doc.get("serial_number"),
            location=doc.get("location"),
            school_id=doc.get("school_id"),
            checkout_id=doc.get("checkout_id"),
            school_order_id=doc.get("school_order_id"),
            po_line_item_id=doc.get("po_line_item_id"),
            purchase_order_id=doc.get("purchase_order_id"),
            is_school_specific=bool(doc.get("is_school_specific", False)),
            received_at=doc.get("received_at"),
            staged_at=doc.get("staged_at"),
            installed_at=doc.get("installed_at"),
            notes=doc.get("notes"),
        )


@dataclass(frozen=True)
class CheckoutSessionRecord:
    id: str
    school_id: str
    status: SessionStatus
    total_items_needed: int
    total_items_checked_out: int
    created_by: str
    revision: int
    seq: int = 0
    created_at: datetime | None = None
    cancel_started_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None

    @property
    def completion(self) -> CompletionStatus:
        if self.total_items_checked_out >= self.total_items_needed:
            return CompletionStatus.COMPLETE
        return CompletionStatus.NOT_COMPLETE

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> CheckoutSessionRecord:
        return cls(
            id=doc["id"],
            school_id=doc["school_id"],
            status=SessionStatus(doc["status"]),
            total_items_needed=doc["total_items_needed"],
            total_items_checked_out=doc["total_items_checked_out"],
            created_by=doc["created_by"],
            revision=doc["revision"],
            seq=doc.get("seq", 0),
            created_at=doc.get("created_at"),
            cancel_started_at=doc.get("cancel_started_at"),
            cancelled_at=doc.get("cancelled_at"),
            cancelled_by=doc.get("cancelled_by"),
        )


@dataclass(frozen=True)
class PurchaseOrderRecord:
    id: str
    po_number: str
    vendor: str
    order_status: PurchaseOrderStatus
    total_items: int
    received_items: int
    created_by: str
    revision: int
    order_date: date | None = None
    expected_delivery: date | None = None
    notes: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> PurchaseOrderRecord:
        return cls(
            id=doc["id"],
            po_number=doc["po_number"],
            vendor=doc["vendor"],
            order_status=PurchaseOrderStatus(doc["order_status"]),
            total_items=doc["total_items"],
            received_items=doc["received_items"],
            created_by=doc["created_by"],
            revision=doc["revision"],
            order_date=doc.get("order_date"),
            expected_delivery=doc.get("expected_delivery"),
            notes=doc.get("notes"),
        )


@dataclass(frozen=True)
class POLineItemRecord:
    id: str
    purchase_order_id: str
    item_type_id: str
    sku: str
    quantity_ordered: int
    quantity_received: int
    revision: int
    seq: int = 0

    @property
    def remaining(self) -> int:
        return max(self.quantity_ordered - self.quantity_received, 0)

    @property
    def is_open(self) -> bool:
        return self.quantity_received < self.quantity_ordered

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> POLineItemRecord:
        return cls(
            id=doc["id"],
            purchase_order_id=doc["purchase_order_id"],
            item_type_id=doc["item_type_id"],
            sku=doc["sku"],
            quantity_ordered=doc["quantity_ordered"],
            quantity_received=doc["quantity_received"],
            revision=doc["revision"],
            seq=doc.get("seq", 0),
        )


@dataclass(frozen=True)
class SchoolOrderRecord:
    id: str
    school_id: str
    order_number: str
    install_date: date
    order_status: SchoolOrderStatus
    total_items: int
    allocated_items: int
    created_by: str
    revision: int
    notes: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> SchoolOrderRecord:
        return cls(
            id=doc["id"],
            school_id=doc["school_id"],
            order_number=doc["order_number"],
            install_date=doc["install_date"],
            order_status=SchoolOrderStatus(doc["order_status"]),
            total_items=doc["total_items"],
            allocated_items=doc["allocated_items"],
            created_by=doc["created_by"],
            revision=doc["revision"],
            notes=doc.get("notes"),
        )


@dataclass(frozen=True)
class SchoolOrderItemRecord:
    id: str
    school_order_id: str
    item_type_id: str
    quantity_needed: int
    quantity_allocated: int
    revision: int

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> SchoolOrderItemRecord:
        return cls(
            id=doc["id"],
            school_order_id=doc["school_order_id"],
            item_type_id=doc["item_type_id"],
            quantity_needed=doc["quantity_needed"],
            quantity_allocated=doc["quantity_allocated"],
            revision=doc["revision"],
        )


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    transaction_type: TransactionType
    inventory_item_id: str
    performed_by: str
    transaction_date: datetime
    notes: str
    school_id: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> TransactionRecord:
        return cls(
            id=doc["id"],
            transaction_type=TransactionType(doc["transaction_type"]),
            inventory_item_id=doc["inventory_item_id"],
            performed_by=doc["performed_by"],
            transaction_date=doc["transaction_date"],
            notes=doc["notes"],
            school_id=doc.get("school_id"),
        )


# ---------------------------------------------------------------------------
# Ledger drafts and partial failures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerEntryDraft:
    """
    A ledger record with its id already allocated.

    Writing the same draft twice stores it once: the second write hits the
    existing id and is treated as already recorded.
    """

    id: str
    transaction_type: TransactionType
    inventory_item_id: str
    performed_by: str
    transaction_date: datetime
    notes: str
    school_id: str | None = None

    def to_fields(self) -> dict[str, Any]:
        return {
            "transaction_type": self.transaction_type.value,
            "inventory_item_id": self.inventory_item_id,
            "performed_by": self.performed_by,
            "transaction_date": self.transaction_date,
            "notes": self.notes,
            "school_id": self.school_id,
        }


@dataclass(frozen=True)
class PartialFailure:
    """What a multi-write operation managed to do before it stopped."""

    operation: str
    reason: str
    committed: tuple[str, ...] = ()
    pending: tuple[str, ...] = ()
    pending_ledger: tuple[LedgerEntryDraft, ...] = ()

    @property
    def notice(self) -> str:
        done = len(self.committed)
        left = len(self.pending) + len(self.pending_ledger)
        return (
            f"{self.operation} stopped partway: {done} step(s) saved, "
            f"{left} still pending ({self.reason}). Retry to finish."
        )

    def merge(self, other: PartialFailure | None) -> PartialFailure:
        if other is None:
            return self
        return PartialFailure(
            operation=self.operation,
            reason=self.reason,
            committed=self.committed + other.committed,
            pending=self.pending + other.pending,
            pending_ledger=self.pending_ledger + other.pending_ledger,
        )


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransitionResult:
    """Item after a lifecycle move; ``partial`` set when the audit write failed."""

    item: InventoryItemRecord
    transaction_id: str | None
    partial: PartialFailure | None = None

    @property
    def status(self) -> OperationStatus:
        return OperationStatus.PARTIAL if self.partial else OperationStatus.SUCCESS


@dataclass(frozen=True)
class ProgressRow:
    item_type_id: str
    item_name: str
    needed: int
    checked_out: int

    @property
    def is_complete(self) -> bool:
        return self.checked_out >= self.needed

    @property
    def remaining(self) -> int:
        return max(self.needed - self.checked_out, 0)


@dataclass(frozen=True)
class ScanResult:
    status: OperationStatus
    session: CheckoutSessionRecord
    progress: tuple[ProgressRow, ...] = ()
    item: InventoryItemRecord | None = None
    transaction_id: str | None = None
    notice: str | None = None
    partial: PartialFailure | None = None

    @property
    def completion(self) -> CompletionStatus:
        return self.session.completion


@dataclass(frozen=True)
class CancelResult:
    status: OperationStatus
    session: CheckoutSessionRecord
    reverted_item_ids: tuple[str, ...] = ()
    skipped_item_ids: tuple[str, ...] = ()
    partial: PartialFailure | None = None


@dataclass(frozen=True)
class ReceivingTarget:
    line_item: POLineItemRecord
    item_type: ItemTypeRecord
    purchase_order: PurchaseOrderRecord

    @property
    def remaining(self) -> int:
        return self.line_item.remaining


@dataclass(frozen=True)
class ReceiptSummary:
    """One entry in the recent-receipts list."""

    sku: str
    quantity: int
    item_name: str
    po_number: str


@dataclass(frozen=True)
class ReceiveResult:
    status: OperationStatus
    line_item_id: str
    requested: int
    accepted: int
    created_item_ids: tuple[str, ...] = ()
    line_item: POLineItemRecord | None = None
    purchase_order: PurchaseOrderRecord | None = None
    partial: PartialFailure | None = None

    @property
    def created(self) -> int:
        return len(self.created_item_ids)


@dataclass(frozen=True)
class IntakeResult:
    status: OperationStatus
    barcode: str
    item: InventoryItemRecord | None = None
    item_type: ItemTypeRecord | None = None
    registered: bool = False
    transaction_id: str | None = None
    notice: str | None = None
    partial: PartialFailure | None = None


@dataclass(frozen=True)
class NewItemTypeData:
    """Operator-supplied details for registering an unknown barcode."""

    item_name: str
    category: str
    manufacturer: str | None = None
    model: str | None = None
    description: str | None = None
    serial_number: str | None = None
    location: str | None = None
    is_school_specific: bool = False


@dataclass(frozen=True)
class PurchaseOrderLineInput:
    item_type_id: str
    sku: str
    quantity_ordered: int


@dataclass(frozen=True)
class PurchaseOrderResult:
    status: OperationStatus
    purchase_order: PurchaseOrderRecord
    line_items: tuple[POLineItemRecord, ...] = ()
    partial: PartialFailure | None = None


@dataclass(frozen=True)
class SchoolOrderLineInput:
    item_type_id: str
    quantity_needed: int


@dataclass(frozen=True)
class SchoolOrderResult:
    status: OperationStatus
    school_order: SchoolOrderRecord
    items: tuple[SchoolOrderItemRecord, ...] = ()
    partial: PartialFailure | None = None


@dataclass(frozen=True)
class AllocationResult:
    status: OperationStatus
    order_item_id: str
    allocated_item_ids: tuple[str, ...] = ()
    rejected_item_ids: tuple[str, ...] = ()
    school_order: SchoolOrderRecord | None = None
    partial: PartialFailure | None = None
    notices: tuple[str, ...] = field(default_factory=tuple)
