"""
Checkout progress classification.

Given the standard package and the items a session currently holds, build
one row per kit item type.  Rows are ordered so that remaining work shows
first: incomplete types before complete ones, then by item name.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Mapping

from inventory_kernel.domain.dtos import (
    InventoryItemRecord,
    ItemTypeRecord,
    ProgressRow,
    StandardPackageItemRecord,
)


def progress_sort_key(row: ProgressRow) -> tuple[bool, str, str]:
    return (row.is_complete, row.item_name.casefold(), row.item_type_id)


def build_progress(
    package: Iterable[StandardPackageItemRecord],
    item_types: Mapping[str, ItemTypeRecord],
    session_items: Iterable[InventoryItemRecord],
) -> tuple[ProgressRow, ...]:
    """
    Count session items per kit type and return the sorted progress rows.

    ``session_items`` may be a superset (for example every item carrying the
    session id, whatever its status); only types present in the package
    produce rows.
    """
    counts = Counter(item.item_type_id for item in session_items)
    needed: dict[str, int] = {}
    for entry in package:
        needed[entry.item_type_id] = needed.get(entry.item_type_id, 0) + entry.quantity

    rows = []
    for type_id, quantity in needed.items():
        item_type = item_types.get(type_id)
        name = item_type.item_name if item_type else "Unknown Item"
        rows.append(
            ProgressRow(
                item_type_id=type_id,
                item_name=name,
                needed=quantity,
                checked_out=counts.get(type_id, 0),
            )
        )
    return tuple(sorted(rows, key=progress_sort_key))


def find_row(rows: Iterable[ProgressRow], item_type_id: str) -> ProgressRow | None:
    for row in rows:
        if row.item_type_id == item_type_id:
            return row
    return None


def total_needed(package: Iterable[StandardPackageItemRecord]) -> int:
    return sum(entry.quantity for entry in package)
