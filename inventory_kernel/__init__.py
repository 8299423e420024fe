"""
Inventory Kernel - school equipment reconciliation engine

Keeps inventory state consistent across non-atomic document writes:
- Item lifecycle with a single transition table
- Checkout sessions that equip a school with the standard package
- Purchase-order receiving with counters re-derived from line items
- Append-only transaction ledger with retryable audit writes
"""

__version__ = "0.1.0"
