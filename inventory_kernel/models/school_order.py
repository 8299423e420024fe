"""School orders: planned installs and the stock allocated to them."""

from datetime import date

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import DocumentBase


class SchoolOrder(DocumentBase):
    __tablename__ = "school_orders"

    school_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    order_number: Mapped[str] = mapped_column(String(64), nullable=False)
    install_date: Mapped[date] = mapped_column(nullable=False)
    order_status: Mapped[str] = mapped_column(String(32), nullable=False, default="planning")
    created_by: Mapped[str] = mapped_column(String(200), nullable=False)
    total_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allocated_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text)


class SchoolOrderItem(DocumentBase):
    __tablename__ = "school_order_items"

    school_order_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    item_type_id: Mapped[str] = mapped_column(String(36), nullable=False)
    quantity_needed: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_allocated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
