"""
Transaction -- append-only ledger record.

Never updated or deleted (see db/immutability.py).  Not authoritative for
current state: item, session and order documents are.
"""

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import DocumentBase


class Transaction(DocumentBase):
    __tablename__ = "transactions"

    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    inventory_item_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    school_id: Mapped[str | None] = mapped_column(String(36))
    performed_by: Mapped[str] = mapped_column(String(200), nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
