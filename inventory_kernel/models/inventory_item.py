"""InventoryItem -- one physical, individually tracked unit."""

from datetime import datetime

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import DocumentBase


class InventoryItem(DocumentBase):
    """
    Physical unit with its lifecycle status.

    Status writes go through ItemLifecycleService only; the store checks the
    revision on every update.
    """

    __tablename__ = "inventory_items"
    __table_args__ = (
        Index("ix_inventory_items_barcode_status", "barcode", "status"),
    )

    barcode: Mapped[str] = mapped_column(String(128), nullable=False)
    item_type_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    serial_number: Mapped[str | None] = mapped_column(String(128))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="available")
    location: Mapped[str | None] = mapped_column(String(200))
    school_id: Mapped[str | None] = mapped_column(String(36), index=True)
    checkout_id: Mapped[str | None] = mapped_column(String(36), index=True)
    school_order_id: Mapped[str | None] = mapped_column(String(36), index=True)
    po_line_item_id: Mapped[str | None] = mapped_column(String(36))
    purchase_order_id: Mapped[str | None] = mapped_column(String(36))
    is_school_specific: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    received_at: Mapped[datetime] = mapped_column(nullable=False)
    staged_at: Mapped[datetime | None] = mapped_column()
    installed_at: Mapped[datetime | None] = mapped_column()
    notes: Mapped[str | None] = mapped_column(Text)
