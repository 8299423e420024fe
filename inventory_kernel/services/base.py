"""
BaseService -- common constructor for the write-side services.

Responsibility:
    Holds the document store, the clock and the read selector every
    service needs.  Each store call a service makes commits on its own;
    services never assume two writes land together.

Architecture position:
    Kernel > Services -- imperative shell.  May import from store/,
    selectors/, domain/ and utils/.
"""

from __future__ import annotations

from abc import ABC
from typing import Callable, TypeVar

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import OptimisticLockError
from inventory_kernel.selectors.inventory_selector import InventorySelector
from inventory_kernel.store.document_store import DocumentStore

T = TypeVar("T")


class BaseService(ABC):
    def __init__(
        self,
        store: DocumentStore,
        clock: Clock | None = None,
        selector: InventorySelector | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._selector = selector or InventorySelector(store)

    @property
    def selector(self) -> InventorySelector:
        return self._selector


def retry_on_conflict(attempt: Callable[[], T], max_attempts: int) -> T:
    """
    Run ``attempt`` until it stops raising OptimisticLockError.

    ``attempt`` must re-read whatever it writes, so each try computes from
    fresh state.  The last conflict propagates once attempts run out.
    """
    attempts = max(max_attempts, 1)
    for number in range(1, attempts + 1):
        try:
            return attempt()
        except OptimisticLockError:
            if number == attempts:
                raise
    raise RuntimeError("retry_on_conflict made no attempt")
