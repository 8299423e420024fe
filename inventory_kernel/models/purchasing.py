"""Purchase orders and their line items."""

from datetime import date

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import DocumentBase


class PurchaseOrder(DocumentBase):
    """
    Vendor order.

    total_items/received_items are re-derived from the line items on every
    receipt, never incremented in place.
    """

    __tablename__ = "purchase_orders"

    po_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    vendor: Mapped[str] = mapped_column(String(200), nullable=False)
    order_date: Mapped[date] = mapped_column(nullable=False)
    expected_delivery: Mapped[date | None] = mapped_column()
    order_status: Mapped[str] = mapped_column(String(32), nullable=False, default="ordered")
    created_by: Mapped[str] = mapped_column(String(200), nullable=False)
    total_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    received_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text)


class POLineItem(DocumentBase):
    """One SKU row of a purchase order."""

    __tablename__ = "po_line_items"

    purchase_order_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    item_type_id: Mapped[str] = mapped_column(String(36), nullable=False)
    sku: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
