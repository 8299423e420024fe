"""Human-facing order numbers: ``PO-2024-123456`` and ``SO-LIN-2024-123456``."""

from __future__ import annotations

from datetime import datetime


def timestamp_suffix(now: datetime) -> int:
    """Last six digits of the epoch-millisecond timestamp."""
    return int(now.timestamp() * 1000) % 1_000_000


def po_number(prefix: str, now: datetime, suffix: int) -> str:
    return f"{prefix}-{now.year}-{suffix % 1_000_000:06d}"


def school_order_number(prefix: str, school_code: str, now: datetime, suffix: int) -> str:
    return f"{prefix}-{school_code}-{now.year}-{suffix % 1_000_000:06d}"
