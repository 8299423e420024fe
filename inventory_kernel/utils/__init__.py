"""Utility functions for the inventory kernel."""

from inventory_kernel.utils.keyed_lock import KeyedLock

__all__ = ["KeyedLock"]
