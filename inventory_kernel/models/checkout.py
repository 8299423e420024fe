"""CheckoutSession -- one equipping pass for one school."""

from datetime import datetime

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import DocumentBase


class CheckoutSession(DocumentBase):
    __tablename__ = "checkout_sessions"

    school_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="in_progress")
    total_items_needed: Mapped[int] = mapped_column(Integer, nullable=False)
    total_items_checked_out: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str] = mapped_column(String(200), nullable=False)
    # Set before any item is reverted; a cancel that stopped partway leaves
    # this set while status is still in_progress.
    cancel_started_at: Mapped[datetime | None] = mapped_column()
    cancelled_at: Mapped[datetime | None] = mapped_column()
    cancelled_by: Mapped[str | None] = mapped_column(String(200))
