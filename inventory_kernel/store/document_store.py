"""
DocumentStore -- collection-oriented persistence contract.

Every call is independently atomic.  There are no multi-document
transactions and no OR filters: callers fetch a superset with equality
filters and narrow it locally.

Documents are plain dicts.  Besides their own fields they always carry the
store-managed ``id``, ``seq``, ``revision``, ``created_at`` and
``updated_at``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

Document = dict[str, Any]


class Collection:
    """Collection names understood by every store."""

    ITEM_TYPES = "item_types"
    INVENTORY_ITEMS = "inventory_items"
    SCHOOLS = "schools"
    STANDARD_PACKAGE_ITEMS = "standard_package_items"
    CHECKOUT_SESSIONS = "checkout_sessions"
    PURCHASE_ORDERS = "purchase_orders"
    PO_LINE_ITEMS = "po_line_items"
    SCHOOL_ORDERS = "school_orders"
    SCHOOL_ORDER_ITEMS = "school_order_items"
    TRANSACTIONS = "transactions"

    ALL = (
        ITEM_TYPES,
        INVENTORY_ITEMS,
        SCHOOLS,
        STANDARD_PACKAGE_ITEMS,
        CHECKOUT_SESSIONS,
        PURCHASE_ORDERS,
        PO_LINE_ITEMS,
        SCHOOL_ORDERS,
        SCHOOL_ORDER_ITEMS,
        TRANSACTIONS,
    )


@dataclass(frozen=True)
class Filter:
    """Equality filter on one field."""

    field: str
    value: Any

    @classmethod
    def equal(cls, field: str, value: Any) -> Filter:
        return cls(field, value)


@dataclass(frozen=True)
class Sort:
    field: str
    descending: bool = False

    @classmethod
    def asc(cls, field: str) -> Sort:
        return cls(field, False)

    @classmethod
    def desc(cls, field: str) -> Sort:
        return cls(field, True)


class DocumentStore(ABC):
    """
    Abstract persistence service.

    Contract:
        - get(): DocumentNotFoundError if the id does not exist.
        - list(): equality filters AND-ed together; results ordered by the
          given sorts, then by ``seq`` ascending.
        - create(): DocumentExistsError if ``document_id`` is already used.
        - update(): OptimisticLockError when ``expected_revision`` is given
          and differs from the stored revision.  Nothing is written then.
        - delete(): DocumentNotFoundError if the id does not exist;
          OptimisticLockError when ``expected_revision`` does not match.
        - Transport failures raise StoreUnavailableError.
    """

    @abstractmethod
    def get(self, collection: str, document_id: str) -> Document: ...

    @abstractmethod
    def list(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        sort: Iterable[Sort] = (),
        limit: int | None = None,
    ) -> list[Document]: ...

    @abstractmethod
    def create(
        self,
        collection: str,
        fields: Mapping[str, Any],
        document_id: str | None = None,
    ) -> Document: ...

    @abstractmethod
    def update(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
        expected_revision: int | None = None,
    ) -> Document: ...

    @abstractmethod
    def delete(
        self,
        collection: str,
        document_id: str,
        expected_revision: int | None = None,
    ) -> None: ...

    def first(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        sort: Iterable[Sort] = (),
    ) -> Document | None:
        docs = self.list(collection, filters, sort, limit=1)
        return docs[0] if docs else None
