"""
TransactionLedgerWriter -- append-only audit records.

Responsibility:
    Appends one Transaction per state-changing event.  There is no update
    and no delete; the ORM listeners refuse both anyway.  The ledger is an
    audit trail only: nothing in the engine reads it back to decide
    current state.

Idempotent retries:
    Every record starts life as a ``LedgerEntryDraft`` with its id already
    allocated.  Writing a draft whose id already exists means an earlier
    attempt landed, so it counts as recorded.  Retrying the drafts carried
    by a ``PartialFailure`` can never double-log.

Failure modes:
    - StoreError subclasses propagate from record()/record_draft().
    - retry() never raises for store failures; it returns whatever is still
      pending as a new PartialFailure.
"""

from __future__ import annotations

from datetime import datetime

from inventory_kernel.db.base import new_id
from inventory_kernel.domain.dtos import LedgerEntryDraft, PartialFailure
from inventory_kernel.domain.lifecycle import TransactionType
from inventory_kernel.exceptions import DocumentExistsError, StoreError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.store.document_store import Collection

logger = get_logger("services.ledger")


class TransactionLedgerWriter(BaseService):
    def draft(
        self,
        transaction_type: TransactionType,
        item_id: str,
        performed_by: str,
        note: str,
        school_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> LedgerEntryDraft:
        return LedgerEntryDraft(
            id=new_id(),
            transaction_type=TransactionType(transaction_type),
            inventory_item_id=item_id,
            performed_by=performed_by,
            transaction_date=timestamp or self._clock.now(),
            notes=note,
            school_id=school_id,
        )

    def record_draft(self, draft: LedgerEntryDraft) -> str:
        """Write ``draft``; a duplicate id counts as already recorded."""
        try:
            self._store.create(Collection.TRANSACTIONS, draft.to_fields(), document_id=draft.id)
        except DocumentExistsError:
            logger.info(
                "ledger_entry_already_recorded",
                extra={"transaction_id": draft.id, "item_id": draft.inventory_item_id},
            )
            return draft.id
        logger.debug(
            "ledger_entry_recorded",
            extra={
                "transaction_id": draft.id,
                "transaction_type": draft.transaction_type.value,
                "item_id": draft.inventory_item_id,
            },
        )
        return draft.id

    def record(
        self,
        transaction_type: TransactionType,
        item_id: str,
        performed_by: str,
        note: str,
        school_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> str:
        """Append one record and return its id."""
        return self.record_draft(
            self.draft(transaction_type, item_id, performed_by, note, school_id, timestamp)
        )

    def retry(self, partial: PartialFailure) -> PartialFailure | None:
        """
        Write every pending draft of ``partial``.

        Returns None when all drafts are recorded, otherwise a PartialFailure
        holding the drafts that are still pending.  Non-ledger pending steps
        are carried over untouched.
        """
        written: list[str] = []
        still_pending: list[LedgerEntryDraft] = []
        reason = partial.reason
        for draft in partial.pending_ledger:
            if still_pending:
                still_pending.append(draft)
                continue
            try:
                self.record_draft(draft)
                written.append(f"ledger:{draft.id}")
            except StoreError as exc:
                reason = str(exc)
                still_pending.append(draft)

        logger.info(
            "ledger_retry_finished",
            extra={
                "operation": partial.operation,
                "written": len(written),
                "pending": len(still_pending),
            },
        )
        if not still_pending and not partial.pending:
            return None
        return PartialFailure(
            operation=partial.operation,
            reason=reason,
            committed=partial.committed + tuple(written),
            pending=partial.pending,
            pending_ledger=tuple(still_pending),
        )
