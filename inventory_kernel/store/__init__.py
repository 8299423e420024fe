"""Document-store contract and its SQLAlchemy-backed implementation."""

from inventory_kernel.store.document_store import (
    Collection,
    Document,
    DocumentStore,
    Filter,
    Sort,
)
from inventory_kernel.store.sql_store import SqlDocumentStore

__all__ = [
    "Collection",
    "Document",
    "DocumentStore",
    "Filter",
    "Sort",
    "SqlDocumentStore",
]
