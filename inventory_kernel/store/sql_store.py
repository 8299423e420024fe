"""
SqlDocumentStore -- DocumentStore over SQLAlchemy ORM tables.

Responsibility:
    Maps each collection to an ORM model, runs every call in its own
    ``session_scope`` and translates SQLAlchemy failures into kernel
    exceptions at this boundary.  Nothing above the store sees a
    SQLAlchemy exception.

Compare-and-swap:
    update() loads the row with ``FOR UPDATE`` (a no-op on SQLite, where the
    BEGIN IMMEDIATE transaction already holds the write lock), compares
    ``revision`` with the caller's expected revision, applies the changes
    and bumps ``revision`` in the same unit of work.

Failure modes:
    - UnknownCollectionError / UnknownFieldError for bad names.
    - DocumentNotFoundError, DocumentExistsError, OptimisticLockError.
    - ImmutabilityViolationError from the ledger listeners.
    - StoreUnavailableError wrapping OperationalError and other DBAPI errors.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Any, Generator, Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.db.base import DocumentBase, new_id
from inventory_kernel.db.engine import get_session_factory, session_scope
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.db.sequence import SequenceService
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import (
    DocumentExistsError,
    DocumentNotFoundError,
    OptimisticLockError,
    StoreUnavailableError,
    UnknownCollectionError,
    UnknownFieldError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models import (
    CheckoutSession,
    InventoryItem,
    ItemType,
    POLineItem,
    PurchaseOrder,
    School,
    SchoolOrder,
    SchoolOrderItem,
    StandardPackageItem,
    Transaction,
)
from inventory_kernel.store.document_store import (
    Collection,
    Document,
    DocumentStore,
    Filter,
    Sort,
)

logger = get_logger("store.sql")

COLLECTION_MODELS: dict[str, type[DocumentBase]] = {
    Collection.ITEM_TYPES: ItemType,
    Collection.INVENTORY_ITEMS: InventoryItem,
    Collection.SCHOOLS: School,
    Collection.STANDARD_PACKAGE_ITEMS: StandardPackageItem,
    Collection.CHECKOUT_SESSIONS: CheckoutSession,
    Collection.PURCHASE_ORDERS: PurchaseOrder,
    Collection.PO_LINE_ITEMS: POLineItem,
    Collection.SCHOOL_ORDERS: SchoolOrder,
    Collection.SCHOOL_ORDER_ITEMS: SchoolOrderItem,
    Collection.TRANSACTIONS: Transaction,
}


def _coerce(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class SqlDocumentStore(DocumentStore):
    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()
        register_immutability_listeners()

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _model(collection: str) -> type[DocumentBase]:
        try:
            return COLLECTION_MODELS[collection]
        except KeyError:
            raise UnknownCollectionError(collection) from None

    @staticmethod
    def _columns(model: type[DocumentBase]) -> dict[str, Any]:
        return {attr.key: attr for attr in model.__mapper__.column_attrs}

    def _check_fields(
        self, collection: str, model: type[DocumentBase], names: Iterable[str], writable: bool
    ) -> None:
        columns = self._columns(model)
        for name in names:
            if name not in columns:
                raise UnknownFieldError(collection, name)
            if writable and name in DocumentBase.MANAGED_FIELDS:
                raise UnknownFieldError(collection, name)

    @staticmethod
    def _to_document(row: DocumentBase) -> Document:
        return {attr.key: getattr(row, attr.key) for attr in row.__mapper__.column_attrs}

    @contextmanager
    def _unit(self, operation: str, collection: str) -> Generator[Session, None, None]:
        """One committed unit of work with SQLAlchemy errors translated."""
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except OperationalError as exc:
            logger.warning(
                "store_unavailable",
                extra={"operation": operation, "collection": collection},
            )
            raise StoreUnavailableError(operation, collection, str(exc.orig)) from exc
        except IntegrityError:
            raise
        except DBAPIError as exc:
            raise StoreUnavailableError(operation, collection, str(exc.orig)) from exc

    # -- DocumentStore -----------------------------------------------------

    def get(self, collection: str, document_id: str) -> Document:
        model = self._model(collection)
        with self._unit("get", collection) as session:
            row = session.get(model, document_id)
            if row is None:
                raise DocumentNotFoundError(collection, document_id)
            return self._to_document(row)

    def list(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        sort: Iterable[Sort] = (),
        limit: int | None = None,
    ) -> list[Document]:
        model = self._model(collection)
        filters = list(filters)
        sort = list(sort)
        self._check_fields(
            collection, model, [f.field for f in filters] + [s.field for s in sort], writable=False
        )
        columns = model.__table__.c

        stmt = select(model)
        for flt in filters:
            column = columns[flt.field]
            value = _coerce(flt.value)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        for order in sort:
            column = columns[order.field]
            stmt = stmt.order_by(column.desc() if order.descending else column.asc())
        stmt = stmt.order_by(columns["seq"].asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._unit("list", collection) as session:
            return [self._to_document(row) for row in session.execute(stmt).scalars()]

    def create(
        self,
        collection: str,
        fields: Mapping[str, Any],
        document_id: str | None = None,
    ) -> Document:
        model = self._model(collection)
        self._check_fields(collection, model, fields.keys(), writable=True)
        doc_id = document_id or new_id()
        now = self._clock.now()

        try:
            with self._unit("create", collection) as session:
                if session.get(model, doc_id) is not None:
                    raise DocumentExistsError(collection, doc_id)
                seq = SequenceService(session).next_value(collection)
                row = model(
                    id=doc_id,
                    seq=seq,
                    revision=1,
                    created_at=now,
                    updated_at=now,
                    **{k: _coerce(v) for k, v in fields.items()},
                )
                session.add(row)
                session.flush()
                return self._to_document(row)
        except IntegrityError as exc:
            # Lost a race for the same id on a backend without BEGIN IMMEDIATE.
            raise DocumentExistsError(collection, doc_id) from exc

    def update(
        self,
        collection: str,
        document_id: str,
        fields: Mapping[str, Any],
        expected_revision: int | None = None,
    ) -> Document:
        model = self._model(collection)
        self._check_fields(collection, model, fields.keys(), writable=True)

        with self._unit("update", collection) as session:
            row = session.get(model, document_id, with_for_update=True)
            if row is None:
                raise DocumentNotFoundError(collection, document_id)
            if expected_revision is not None and row.revision != expected_revision:
                logger.info(
                    "revision_conflict",
                    extra={
                        "collection": collection,
                        "document_id": document_id,
                        "expected_revision": expected_revision,
                        "actual_revision": row.revision,
                    },
                )
                raise OptimisticLockError(
                    collection, document_id, expected_revision, row.revision
                )
            for key, value in fields.items():
                setattr(row, key, _coerce(value))
            row.revision = row.revision + 1
            row.updated_at = self._clock.now()
            session.flush()
            return self._to_document(row)

    def delete(
        self,
        collection: str,
        document_id: str,
        expected_revision: int | None = None,
    ) -> None:
        model = self._model(collection)
        with self._unit("delete", collection) as session:
            row = session.get(model, document_id, with_for_update=True)
            if row is None:
                raise DocumentNotFoundError(collection, document_id)
            if expected_revision is not None and row.revision != expected_revision:
                raise OptimisticLockError(
                    collection, document_id, expected_revision, row.revision
                )
            session.delete(row)
            session.flush()
