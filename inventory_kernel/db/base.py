"""
Module: inventory_kernel.db.base
Responsibility: Declarative base classes for all ORM models.  Provides the
    string id convention, the store-managed document fields (seq, revision,
    created_at, updated_at) and a timezone-preserving datetime column type.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, store/, services/ or domain/.

Document fields:
    - id: String(36), uuid4 by default.  Callers may supply their own id
      (ledger drafts pre-allocate theirs).
    - seq: per-collection creation sequence.  "Creation order" everywhere in
      the engine means ascending seq.
    - revision: starts at 1 and is bumped by the store on every update; the
      compare-and-swap check reads it.
"""

from datetime import date, datetime, timezone
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import BigInteger, Date, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def new_id() -> str:
    return str(uuid4())


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime that survives backends without tz support.

    SQLite drops tzinfo on the way in; values are normalized to UTC on bind
    and tagged as UTC on load.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for every table, including infrastructure tables."""

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        date: Date(),
        int: Integer,
    }

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)


class DocumentBase(Base):
    """
    Abstract base for tables exposed as document-store collections.

    The store, not the caller, owns seq/revision/created_at/updated_at.
    """

    __abstract__ = True

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    # Store-managed fields callers may not write directly.
    MANAGED_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"id", "seq", "revision", "created_at", "updated_at"}
    )
