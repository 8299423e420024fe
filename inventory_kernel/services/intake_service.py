"""
IntakeService -- walk-up scan-in of stock that arrives without a PO.

A scanned barcode that matches an ItemType receives one ``available`` unit
of that type.  An unknown barcode raises UnknownBarcodeError so the caller
can collect registration details and come back through
``register_and_receive`` (or pass them straight to ``scan_in``).
"""

from __future__ import annotations

from inventory_kernel.domain.debounce import ScanDebouncer
from inventory_kernel.domain.dtos import (
    IntakeResult,
    ItemTypeRecord,
    NewItemTypeData,
    OperationStatus,
)
from inventory_kernel.exceptions import MissingScanContextError, UnknownBarcodeError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.item_lifecycle_service import ItemLifecycleService
from inventory_kernel.store.document_store import Collection

logger = get_logger("services.intake")

INTAKE_SCOPE = "intake"


class IntakeService(BaseService):
    def __init__(
        self,
        store,
        lifecycle: ItemLifecycleService,
        debouncer: ScanDebouncer,
        clock=None,
        selector=None,
        *,
        default_performer: str = "Unknown",
    ):
        super().__init__(store, clock, selector)
        self._lifecycle = lifecycle
        self._debouncer = debouncer
        self._default_performer = default_performer

    def scan_in(
        self,
        barcode: str,
        performed_by: str | None = None,
        new_item: NewItemTypeData | None = None,
    ) -> IntakeResult:
        """
        Receive one unit for a scanned barcode.

        Returns IGNORED for a repeat scan inside the debounce window.

        Raises:
            MissingScanContextError: blank barcode.
            UnknownBarcodeError: no ItemType has the barcode and no
                ``new_item`` details were given.
        """
        barcode = (barcode or "").strip()
        if not barcode:
            raise MissingScanContextError("barcode")
        if not self._debouncer.should_accept(barcode, scope=INTAKE_SCOPE):
            logger.debug("intake_scan_ignored", extra={"barcode": barcode})
            return IntakeResult(status=OperationStatus.IGNORED, barcode=barcode)

        performed_by = performed_by or self._default_performer
        item_type = self._selector.item_type_by_barcode(barcode)
        if item_type is None:
            if new_item is None:
                logger.info("intake_unknown_barcode", extra={"barcode": barcode})
                raise UnknownBarcodeError(barcode)
            return self._register_and_receive(barcode, new_item, performed_by)

        return self._receive(
            barcode,
            item_type,
            performed_by,
            note=f"Scanned in via barcode: {barcode}",
        )

    def register_and_receive(
        self,
        barcode: str,
        new_item: NewItemTypeData,
        performed_by: str | None = None,
    ) -> IntakeResult:
        """Register the barcode as a new ItemType (if still unknown) and receive one unit."""
        barcode = (barcode or "").strip()
        if not barcode:
            raise MissingScanContextError("barcode")
        return self._register_and_receive(
            barcode, new_item, performed_by or self._default_performer
        )

    def _register_and_receive(
        self, barcode: str, new_item: NewItemTypeData, performed_by: str
    ) -> IntakeResult:
        name = (new_item.item_name or "").strip()
        category = (new_item.category or "").strip()
        if not name:
            raise MissingScanContextError("item name")
        if not category:
            raise MissingScanContextError("category")

        # Someone may have registered it since the unknown-barcode scan.
        item_type = self._selector.item_type_by_barcode(barcode)
        registered = item_type is None
        if registered:
            doc = self._store.create(
                Collection.ITEM_TYPES,
                {
                    "item_name": name,
                    "category": category,
                    "manufacturer": new_item.manufacturer or None,
                    "model": new_item.model or None,
                    "barcode": barcode,
                    "description": new_item.description or None,
                },
            )
            item_type = ItemTypeRecord.from_document(doc)
            logger.info(
                "item_type_registered",
                extra={"barcode": barcode, "item_type_id": item_type.id, "category": category},
            )

        return self._receive(
            barcode,
            item_type,
            performed_by,
            note=f"New item created and scanned in: {item_type.item_name}",
            new_item=new_item,
            registered=registered,
        )

    def _receive(
        self,
        barcode: str,
        item_type: ItemTypeRecord,
        performed_by: str,
        note: str,
        new_item: NewItemTypeData | None = None,
        registered: bool = False,
    ) -> IntakeResult:
        with LogContext.bind(performed_by=performed_by):
            result = self._lifecycle.receive(
                item_type_id=item_type.id,
                barcode=barcode,
                performed_by=performed_by,
                serial_number=new_item.serial_number if new_item else None,
                location=new_item.location if new_item else None,
                is_school_specific=new_item.is_school_specific if new_item else False,
                note=note,
            )
        return IntakeResult(
            status=result.status,
            barcode=barcode,
            item=result.item,
            item_type=item_type,
            registered=registered,
            transaction_id=result.transaction_id,
            notice=result.partial.notice if result.partial else None,
            partial=result.partial,
        )
