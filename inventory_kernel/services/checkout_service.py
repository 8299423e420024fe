"""
CheckoutService -- equips one school with the standard package.

Responsibility:
    Creates or resumes the school's in-progress checkout session, assigns
    scanned items to it, keeps its counter and per-type progress current,
    and cancels it with a rollback of every item it still holds.

Serialization:
    - Session creation runs under a per-school KeyedLock, so at most one
      in-progress session is created per school by this process.  If a
      cross-device race still produced several, the oldest by creation
      order wins and a warning is logged.
    - Scans and cancellation of one session run under a per-session lock.
    - ``total_items_checked_out`` is re-derived from the items that carry
      the session id, never incremented, and written with a revision check.

Cancellation:
    1. write ``cancel_started_at``
    2. revert every assigned/staged item of the session (one ``note``
       record each)
    3. set status ``cancelled``
    Installed and maintenance items are left where they are and reported
    as skipped.  Re-running picks up whatever is left; reverted items no
    longer reference the session, so nothing is reverted or logged twice.
"""

from __future__ import annotations

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.confirmation import CancelConfirmationGate
from inventory_kernel.domain.debounce import ScanDebouncer
from inventory_kernel.domain.dtos import (
    CancelResult,
    CheckoutSessionRecord,
    InventoryItemRecord,
    ItemTypeRecord,
    OperationStatus,
    PartialFailure,
    ProgressRow,
    ScanResult,
    SessionStatus,
    StandardPackageItemRecord,
)
from inventory_kernel.domain.lifecycle import CANCELLABLE_STATUSES, SCHOOL_BOUND_STATUSES
from inventory_kernel.domain.progress import build_progress, find_row, total_needed
from inventory_kernel.exceptions import (
    AlreadyCompleteError,
    ConcurrencyError,
    ConfirmationRequiredError,
    ItemNotFoundError,
    MissingScanContextError,
    NotInStandardPackageError,
    OptimisticLockError,
    SessionNotActiveError,
    StoreError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.base import BaseService, retry_on_conflict
from inventory_kernel.services.item_lifecycle_service import ItemLifecycleService
from inventory_kernel.store.document_store import Collection, DocumentStore
from inventory_kernel.utils.keyed_lock import KeyedLock

logger = get_logger("services.checkout")


class CheckoutService(BaseService):
    def __init__(
        self,
        store: DocumentStore,
        lifecycle: ItemLifecycleService,
        debouncer: ScanDebouncer,
        clock: Clock | None = None,
        selector=None,
        *,
        max_write_retries: int = 3,
        default_performer: str = "Unknown",
    ):
        super().__init__(store, clock, selector)
        self._lifecycle = lifecycle
        self._debouncer = debouncer
        self._max_write_retries = max_write_retries
        self._default_performer = default_performer
        self._school_locks = KeyedLock("school")
        self._session_locks = KeyedLock("checkout_session")

    # -- sessions ---------------------------------------------------------

    def get_or_create_session(
        self, school_id: str, created_by: str | None = None
    ) -> CheckoutSessionRecord:
        """Return the school's in-progress session, creating it on first use."""
        if not school_id:
            raise MissingScanContextError("school")
        created_by = created_by or self._default_performer

        with self._school_locks.hold(school_id), LogContext.bind(school_id=school_id):
            sessions = self._selector.in_progress_sessions(school_id)
            if sessions:
                if len(sessions) > 1:
                    logger.warning(
                        "multiple_in_progress_sessions",
                        extra={
                            "session_ids": [s.id for s in sessions],
                            "chosen_session_id": sessions[0].id,
                        },
                    )
                return sessions[0]

            # Unknown school raises DocumentNotFoundError before anything is written.
            self._selector.school(school_id)
            needed = total_needed(self._selector.standard_package())
            doc = self._store.create(
                Collection.CHECKOUT_SESSIONS,
                {
                    "school_id": school_id,
                    "status": SessionStatus.IN_PROGRESS,
                    "total_items_needed": needed,
                    "total_items_checked_out": 0,
                    "created_by": created_by,
                },
            )
            session = CheckoutSessionRecord.from_document(doc)
            logger.info(
                "checkout_session_created",
                extra={"checkout_id": session.id, "total_items_needed": needed},
            )
            return session

    def progress(self, session_id: str) -> tuple[ProgressRow, ...]:
        """Sorted per-type progress: incomplete first, then by item name."""
        return self._progress(
            session_id, self._selector.standard_package(), self._selector.item_types()
        )

    def _progress(
        self,
        session_id: str,
        package: list[StandardPackageItemRecord],
        item_types: dict[str, ItemTypeRecord],
    ) -> tuple[ProgressRow, ...]:
        return build_progress(package, item_types, self._held_items(session_id))

    def _held_items(self, session_id: str) -> list[InventoryItemRecord]:
        return [
            item
            for item in self._selector.items_for_session(session_id)
            if item.status in SCHOOL_BOUND_STATUSES
        ]

    def recompute_session_counter(self, session_id: str) -> CheckoutSessionRecord:
        """
        Re-derive ``total_items_checked_out`` from the session's items.

        Idempotent; safe to call after a scan reported the counter pending.
        """

        def attempt() -> CheckoutSessionRecord:
            session = self._selector.session(session_id)
            count = len(self._held_items(session_id))
            if session.total_items_checked_out == count:
                return session
            doc = self._store.update(
                Collection.CHECKOUT_SESSIONS,
                session_id,
                {"total_items_checked_out": count},
                expected_revision=session.revision,
            )
            return CheckoutSessionRecord.from_document(doc)

        return retry_on_conflict(attempt, self._max_write_retries)

    # -- scanning ---------------------------------------------------------

    def scan(
        self, session_id: str, barcode: str, performed_by: str | None = None
    ) -> ScanResult:
        """
        Assign the first available item with ``barcode`` to the session.

        Raises (no state change):
            ItemNotFoundError, NotInStandardPackageError, AlreadyCompleteError,
            SessionNotActiveError, MissingScanContextError.
        """
        barcode = (barcode or "").strip()
        if not session_id:
            raise MissingScanContextError("checkout session")
        if not barcode:
            raise MissingScanContextError("barcode")
        performed_by = performed_by or self._default_performer

        session = self._selector.session(session_id)
        with LogContext.bind(
            checkout_id=session_id, school_id=session.school_id, performed_by=performed_by
        ):
            if not self._debouncer.should_accept(barcode, scope=session_id):
                logger.info("duplicate_scan_ignored", extra={"barcode": barcode})
                return ScanResult(
                    status=OperationStatus.IGNORED,
                    session=session,
                    notice=f"Duplicate scan of {barcode} ignored",
                )

            with self._session_locks.hold(session_id):
                # A cancel may have finished while this scan waited for the lock.
                session = self._selector.session(session_id)
                if session.status != SessionStatus.IN_PROGRESS:
                    raise SessionNotActiveError(session_id, session.status.value)
                return self._scan_locked(session, barcode, performed_by)

    def _scan_locked(
        self, session: CheckoutSessionRecord, barcode: str, performed_by: str
    ) -> ScanResult:
        package = self._selector.standard_package()
        item_types = self._selector.item_types()
        kit_types = {entry.item_type_id for entry in package}

        tried: set[str] = set()
        attempts = max(self._max_write_retries, 1)
        for attempt in range(1, attempts + 1):
            candidates = [
                item
                for item in self._selector.available_items_by_barcode(barcode)
                if item.id not in tried
            ]
            if not candidates:
                raise ItemNotFoundError(barcode)
            item = candidates[0]
            item_type = item_types.get(item.item_type_id)

            if item.item_type_id not in kit_types:
                raise NotInStandardPackageError(
                    barcode, item.item_type_id, item_type.item_name if item_type else None
                )
            row = find_row(self._progress(session.id, package, item_types), item.item_type_id)
            if row is not None and row.is_complete:
                raise AlreadyCompleteError(item.item_type_id, row.item_name, row.needed)

            try:
                result = self._lifecycle.assign(
                    item,
                    session.school_id,
                    performed_by,
                    checkout_id=session.id,
                    note=f"Checked out to school via checkout session {session.id}",
                )
            except OptimisticLockError:
                if attempt == attempts:
                    # Every attempt lost a race.
                    raise
                # Another scan took this unit; try the next one with the same barcode.
                logger.info("scan_item_taken_retry", extra={"item_id": item.id})
                tried.add(item.id)
                continue
            return self._after_assign(
                session, result.item, result.transaction_id, result.partial, package, item_types
            )

    def _after_assign(
        self,
        session: CheckoutSessionRecord,
        item: InventoryItemRecord,
        transaction_id: str | None,
        partial: PartialFailure | None,
        package: list[StandardPackageItemRecord],
        item_types: dict[str, ItemTypeRecord],
    ) -> ScanResult:
        try:
            session = self.recompute_session_counter(session.id)
        except (StoreError, ConcurrencyError) as exc:
            logger.warning(
                "session_counter_update_failed",
                extra={"item_id": item.id, "reason": str(exc)},
            )
            counter_failure = PartialFailure(
                operation="scan",
                reason=str(exc),
                committed=(f"item:{item.id}:assigned",),
                pending=(f"session_counter:{session.id}",),
            )
            partial = counter_failure.merge(partial)

        progress = self._progress(session.id, package, item_types)
        item_type = item_types.get(item.item_type_id)
        name = item_type.item_name if item_type else item.barcode
        logger.info(
            "item_checked_out",
            extra={
                "item_id": item.id,
                "checked_out": session.total_items_checked_out,
                "needed": session.total_items_needed,
            },
        )
        return ScanResult(
            status=OperationStatus.PARTIAL if partial else OperationStatus.SUCCESS,
            session=session,
            progress=progress,
            item=item,
            transaction_id=transaction_id,
            notice=partial.notice if partial else f"{name} checked out",
            partial=partial,
        )

    # -- cancellation -----------------------------------------------------

    def cancel(
        self,
        session_id: str,
        performed_by: str | None,
        gate: CancelConfirmationGate,
    ) -> CancelResult:
        """Roll the session back once ``gate`` has passed both confirmations."""
        gate.require_executing()
        performed_by = performed_by or self._default_performer

        try:
            if gate.session_id is not None and gate.session_id != session_id:
                raise ConfirmationRequiredError(gate.OPERATION, "confirmed for another session")
            with self._session_locks.hold(session_id), LogContext.bind(
                checkout_id=session_id, performed_by=performed_by
            ):
                return self._cancel_locked(session_id, performed_by)
        finally:
            gate.complete()

    def _update_session(self, session_id: str, fields: dict) -> CheckoutSessionRecord:
        def attempt() -> CheckoutSessionRecord:
            session = self._selector.session(session_id)
            doc = self._store.update(
                Collection.CHECKOUT_SESSIONS,
                session_id,
                fields,
                expected_revision=session.revision,
            )
            return CheckoutSessionRecord.from_document(doc)

        return retry_on_conflict(attempt, self._max_write_retries)

    def _cancel_locked(self, session_id: str, performed_by: str) -> CancelResult:
        session = self._selector.session(session_id)
        if session.status == SessionStatus.CANCELLED:
            logger.info("checkout_cancel_noop")
            return CancelResult(status=OperationStatus.NOOP, session=session)

        if session.cancel_started_at is None:
            session = self._update_session(session_id, {"cancel_started_at": self._clock.now()})
        else:
            logger.info("checkout_cancel_resumed")

        reverted: list[str] = []
        skipped: list[str] = []
        pending: list[str] = []
        pending_ledger = []
        reason = ""
        note = f"Checkout cancelled by {performed_by}; item returned to available inventory"

        for item in self._selector.items_for_session(session_id):
            if item.status not in CANCELLABLE_STATUSES:
                skipped.append(item.id)
                continue
            try:
                result = self._lifecycle.cancel_assignment(item, performed_by, note)
            except (StoreError, ConcurrencyError) as exc:
                logger.warning(
                    "cancel_item_revert_failed",
                    extra={"item_id": item.id, "reason": str(exc)},
                )
                pending.append(f"revert:{item.id}")
                reason = str(exc)
                continue
            reverted.append(item.id)
            if result.partial:
                pending_ledger.extend(result.partial.pending_ledger)
                reason = result.partial.reason

        if skipped:
            logger.warning("cancel_items_skipped", extra={"item_ids": skipped})

        committed = tuple(f"revert:{item_id}" for item_id in reverted)
        if pending:
            # Leave the session in progress so a re-run finishes the revert.
            partial = PartialFailure(
                operation="cancel checkout",
                reason=reason,
                committed=committed,
                pending=tuple(pending) + (f"session_status:{session_id}",),
                pending_ledger=tuple(pending_ledger),
            )
            return CancelResult(
                status=OperationStatus.PARTIAL,
                session=self._selector.session(session_id),
                reverted_item_ids=tuple(reverted),
                skipped_item_ids=tuple(skipped),
                partial=partial,
            )

        try:
            session = self._update_session(
                session_id,
                {
                    "status": SessionStatus.CANCELLED,
                    "cancelled_at": self._clock.now(),
                    "cancelled_by": performed_by,
                    "total_items_checked_out": len(self._held_items(session_id)),
                },
            )
        except (StoreError, ConcurrencyError) as exc:
            partial = PartialFailure(
                operation="cancel checkout",
                reason=str(exc),
                committed=committed,
                pending=(f"session_status:{session_id}",),
                pending_ledger=tuple(pending_ledger),
            )
            return CancelResult(
                status=OperationStatus.PARTIAL,
                session=self._selector.session(session_id),
                reverted_item_ids=tuple(reverted),
                skipped_item_ids=tuple(skipped),
                partial=partial,
            )

        logger.info(
            "checkout_cancelled",
            extra={"reverted": len(reverted), "skipped": len(skipped)},
        )
        partial = None
        if pending_ledger:
            partial = PartialFailure(
                operation="cancel checkout",
                reason=reason,
                committed=committed + (f"session_status:{session_id}",),
                pending_ledger=tuple(pending_ledger),
            )
        return CancelResult(
            status=OperationStatus.PARTIAL if partial else OperationStatus.SUCCESS,
            session=session,
            reverted_item_ids=tuple(reverted),
            skipped_item_ids=tuple(skipped),
            partial=partial,
        )
