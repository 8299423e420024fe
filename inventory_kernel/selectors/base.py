"""
Module: inventory_kernel.selectors.base
Responsibility: Base class for read-only selectors.  Selectors are the query
    side of the engine: they read through the DocumentStore and return
    frozen records, never raw documents.
Architecture position: Kernel > Selectors.  May import from store/ and
    domain/.  MUST NOT import from services/.  Selectors never create,
    update or delete documents.
"""

from abc import ABC

from inventory_kernel.store.document_store import DocumentStore


class BaseSelector(ABC):
    """Holds the store; subclasses add the queries."""

    def __init__(self, store: DocumentStore):
        self.store = store
