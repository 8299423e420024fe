"""Catalog reference data: item types, schools and the standard package."""

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import DocumentBase


class ItemType(DocumentBase):
    """Catalog definition of a kind of equipment (not a physical unit)."""

    __tablename__ = "item_types"

    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    manufacturer: Mapped[str | None] = mapped_column(String(200))
    model: Mapped[str | None] = mapped_column(String(200))
    barcode: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)


class School(DocumentBase):
    __tablename__ = "schools"

    school_name: Mapped[str] = mapped_column(String(200), nullable=False)
    school_code: Mapped[str] = mapped_column(String(32), nullable=False)
    district: Mapped[str | None] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class StandardPackageItem(DocumentBase):
    """How many units of an item type belong in every school kit."""

    __tablename__ = "standard_package_items"

    item_type_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
