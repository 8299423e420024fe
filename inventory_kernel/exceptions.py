"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure the engine reports ends up in front of an operator holding a
scanner.  The shell must be able to tell "this barcode is not in the kit"
from "the store is down" without parsing message strings, and it must be
able to show a readable notice for either.

So every error here:
  1. Has its own class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, stable)
  3. Carries structured DATA as attributes
  4. Renders a human-readable notice via ``str(exc)``

Example - WRONG way to handle errors:
    try:
        checkout.scan(session_id, barcode, performed_by)
    except Exception as e:
        if "standard package" in str(e):
            ...

Example - RIGHT way:
    try:
        checkout.scan(session_id, barcode, performed_by)
    except NotInStandardPackageError as e:
        show_notice(str(e))               # readable notice
        metrics.count(e.code, e.barcode)  # structured data

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError                 rejected before any write
    |   +-- InvalidQuantityError
    |   +-- MissingScanContextError
    |   +-- PurchaseOrderValidationError
    |   +-- SchoolOrderValidationError
    |   +-- ItemDetailsValidationError
    |   +-- ConfirmationRequiredError
    |   +-- OverReceiveConfirmationRequired
    |
    +-- LookupFailure                   non-fatal notice, no state change
    |   +-- ItemNotFoundError
    |   +-- SKUNotFoundError
    |   +-- NotInStandardPackageError
    |   +-- FullyReceivedError
    |   +-- AlreadyCompleteError
    |   +-- UnknownBarcodeError
    |   +-- SessionNotActiveError
    |
    +-- LifecycleError
    |   +-- InvalidTransitionError
    |   +-- ItemInUseError
    |
    +-- StoreError
    |   +-- DocumentNotFoundError
    |   +-- DocumentExistsError
    |   +-- UnknownCollectionError
    |   +-- UnknownFieldError
    |   +-- StoreUnavailableError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|---------------------------------------
Validation   | INVALID_QUANTITY              | Quantity is not a positive integer
             | MISSING_SCAN_CONTEXT          | Empty barcode/SKU or missing session
             | PURCHASE_ORDER_INVALID        | Vendor or line items missing/invalid
             | SCHOOL_ORDER_INVALID          | School order input missing/invalid
             | ITEM_DETAILS_INVALID          | Item detail edit with nothing to change
             | CONFIRMATION_REQUIRED         | Cancel attempted without both confirms
             | OVER_RECEIVE_CONFIRMATION     | Quantity exceeds remaining on the line
-------------|-------------------------------|---------------------------------------
Lookup       | ITEM_NOT_FOUND                | No available item with this barcode
             | SKU_NOT_FOUND                 | No open line item for the SKU
             | NOT_IN_STANDARD_PACKAGE       | Item type is not part of the kit
             | FULLY_RECEIVED                | Every matching line item is complete
             | ALREADY_COMPLETE              | Kit quantity for this type is met
             | UNKNOWN_BARCODE               | Scan-in of an unregistered barcode
             | SESSION_NOT_ACTIVE            | Scan into a cancelled session
-------------|-------------------------------|---------------------------------------
Lifecycle    | INVALID_TRANSITION            | Move not in the transition table
             | ITEM_IN_USE                   | Delete of an assigned/staged/installed item
-------------|-------------------------------|---------------------------------------
Store        | DOCUMENT_NOT_FOUND            | get/update/delete of a missing id
             | DOCUMENT_EXISTS               | create with an id already in use
             | UNKNOWN_COLLECTION            | Collection name has no table
             | UNKNOWN_FIELD                 | Field is not part of the collection
             | STORE_UNAVAILABLE             | Connection/transport failure
-------------|-------------------------------|---------------------------------------
Concurrency  | OPTIMISTIC_LOCK_CONFLICT      | Revision changed since it was read
-------------|-------------------------------|---------------------------------------
Immutability | IMMUTABILITY_VIOLATION        | Update/delete of a ledger record

===============================================================================
HANDLING PATTERNS
===============================================================================

1. LOOKUP FAILURES ARE NOTICES, NOT CRASHES:

    except LookupFailure as e:
        show_notice(str(e))        # nothing was written

2. PARTIAL FAILURES ARE RESULTS, NOT EXCEPTIONS:

    result = receiving.receive(line_item_id, 10, performed_by)
    if result.partial is not None:
        # retry only what is pending -- never reissue the whole receipt
        ledger.retry(result.partial)

3. CONCURRENCY ERRORS ARE RETRIABLE:

    except OptimisticLockError:
        # re-read and try again; the services already do this internally
        # for the aggregate counters they own

4. STORE ERRORS ARE RETRIABLE ONLY FOR IDEMPOTENT OPERATIONS:

    Receiving a fixed quantity is NOT idempotent.  Retry with the count that
    was actually created, as reported on the result.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Validation exceptions


class ValidationError(InventoryKernelError):
    """Base exception for input rejected before any write."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Quantity must be a positive whole number."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object):
        self.quantity = quantity
        super().__init__(
            f"Invalid quantity {quantity!r}: enter a whole number greater than 0"
        )


class MissingScanContextError(ValidationError):
    """A scan or receipt was attempted without the context it needs."""

    code: str = "MISSING_SCAN_CONTEXT"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing {field}: scan or enter a value first")


class PurchaseOrderValidationError(ValidationError):
    """Purchase order input is incomplete or invalid."""

    code: str = "PURCHASE_ORDER_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Purchase order rejected: {reason}")


class SchoolOrderValidationError(ValidationError):
    """School order input is incomplete or invalid."""

    code: str = "SCHOOL_ORDER_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"School order rejected: {reason}")


class ItemDetailsValidationError(ValidationError):
    """Item detail edit is empty or invalid."""

    code: str = "ITEM_DETAILS_INVALID"

    def __init__(self, item_id: str, reason: str):
        self.item_id = item_id
        self.reason = reason
        super().__init__(f"Item {item_id} not updated: {reason}")


class ConfirmationRequiredError(ValidationError):
    """A destructive operation was attempted before it was confirmed."""

    code: str = "CONFIRMATION_REQUIRED"

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(
            f"{operation} needs both confirmations before it can run "
            f"(confirmation state: {state})"
        )


class OverReceiveConfirmationRequired(ValidationError):
    """
    Requested quantity exceeds what remains on the line item.

    The operator must choose: receive only the remaining amount, or
    explicitly accept the over-receipt.  Nothing is written until then.
    """

    code: str = "OVER_RECEIVE_CONFIRMATION"

    def __init__(self, line_item_id: str, requested: int, remaining: int):
        self.line_item_id = line_item_id
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"You are trying to receive {requested} items, but only "
            f"{remaining} remain on this PO. Receive {remaining} instead?"
        )


# Lookup exceptions


class LookupFailure(InventoryKernelError):
    """Base exception for lookups that find nothing usable (no state change)."""

    code: str = "LOOKUP_FAILURE"


class ItemNotFoundError(LookupFailure):
    """No available inventory item carries the scanned barcode."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, barcode: str):
        self.barcode = barcode
        super().__init__(f"No available item found with barcode {barcode}")


class SKUNotFoundError(LookupFailure):
    """No open purchase-order line item exists for the SKU."""

    code: str = "SKU_NOT_FOUND"

    def __init__(self, sku: str, reason: str | None = None):
        self.sku = sku
        self.reason = reason
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"No purchase order found for SKU {sku}{detail}. "
            "This SKU may not be in any active purchase orders."
        )


class NotInStandardPackageError(LookupFailure):
    """Scanned item's type is not part of the standard school kit."""

    code: str = "NOT_IN_STANDARD_PACKAGE"

    def __init__(self, barcode: str, item_type_id: str, item_name: str | None = None):
        self.barcode = barcode
        self.item_type_id = item_type_id
        self.item_name = item_name
        label = item_name or item_type_id
        super().__init__(f"{label} is not part of the standard package")


class FullyReceivedError(LookupFailure):
    """Every line item matching the SKU has been fully received."""

    code: str = "FULLY_RECEIVED"

    def __init__(self, sku: str, quantity_received: int, quantity_ordered: int):
        self.sku = sku
        self.quantity_received = quantity_received
        self.quantity_ordered = quantity_ordered
        super().__init__(
            f"SKU {sku} has already been fully received "
            f"({quantity_received} of {quantity_ordered})"
        )


class AlreadyCompleteError(LookupFailure):
    """The session already holds the kit quantity for this item type."""

    code: str = "ALREADY_COMPLETE"

    def __init__(self, item_type_id: str, item_name: str, needed: int):
        self.item_type_id = item_type_id
        self.item_name = item_name
        self.needed = needed
        super().__init__(
            f"All {needed} {item_name} for this school are already checked out"
        )


class UnknownBarcodeError(LookupFailure):
    """Scan-in of a barcode that has no registered item type."""

    code: str = "UNKNOWN_BARCODE"

    def __init__(self, barcode: str):
        self.barcode = barcode
        super().__init__(
            f"Barcode {barcode} is not registered. Enter the item details to add it."
        )


class SessionNotActiveError(LookupFailure):
    """Checkout session is not in progress."""

    code: str = "SESSION_NOT_ACTIVE"

    def __init__(self, session_id: str, status: str):
        self.session_id = session_id
        self.status = status
        super().__init__(f"Checkout session {session_id} is {status}")


# Lifecycle exceptions


class LifecycleError(InventoryKernelError):
    """Base exception for item lifecycle errors."""

    code: str = "LIFECYCLE_ERROR"


class InvalidTransitionError(LifecycleError):
    """Requested item status change is not in the transition table."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, item_id: str, from_status: str, to_status: str):
        self.item_id = item_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Item {item_id} cannot move from {from_status} to {to_status}"
        )


class ItemInUseError(LifecycleError):
    """Item is tied to a school or checkout and cannot be deleted."""

    code: str = "ITEM_IN_USE"

    def __init__(self, item_id: str, status: str):
        self.item_id = item_id
        self.status = status
        super().__init__(
            f"Item {item_id} is {status}; return it to available inventory before deleting it"
        )


# Store exceptions


class StoreError(InventoryKernelError):
    """Base exception for persistence errors."""

    code: str = "STORE_ERROR"


class DocumentNotFoundError(StoreError):
    """Document with the given id does not exist."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"{collection} document not found: {document_id}")


class DocumentExistsError(StoreError):
    """Document with the given id already exists."""

    code: str = "DOCUMENT_EXISTS"

    def __init__(self, collection: str, document_id: str):
        self.collection = collection
        self.document_id = document_id
        super().__init__(f"{collection} document already exists: {document_id}")


class UnknownCollectionError(StoreError):
    """Collection name is not backed by any table."""

    code: str = "UNKNOWN_COLLECTION"

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Unknown collection: {collection}")


class UnknownFieldError(StoreError):
    """Field does not exist on the collection."""

    code: str = "UNKNOWN_FIELD"

    def __init__(self, collection: str, field: str):
        self.collection = collection
        self.field = field
        super().__init__(f"Unknown field '{field}' on {collection}")


class StoreUnavailableError(StoreError):
    """The store could not be reached or refused the operation."""

    code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, collection: str, reason: str):
        self.operation = operation
        self.collection = collection
        self.reason = reason
        super().__init__(
            f"Store unavailable during {operation} on {collection}: {reason}. "
            "Please try again."
        )


# Concurrency exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Document changed between read and write."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_revision: int | None = None,
        actual_revision: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "record was modified by another operator"
        )


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
