"""
desk.py – Student issuance desk: the boundary where operations meet the backend.

Every public method returns a ``StatusMessage``.  Failures are caught here
and turned into text for the operator; nothing is raised to the caller.

Flow: eligibility → draft → save (or queue when offline) → history merges
queued and confirmed transactions → component / paid updates, each followed
by a forced re-fetch of the student's transactions.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .cache import TransactionCache
from .client import StationeryAPI
from .draft import TransactionDraft, apply_received
from .errors import ApiError, DraftValidationError, IdentifierError, StationeryError
from .fulfillment import mark_component_taken, paid_status_update
from .models import LineItem, SetComponent, Student, Transaction
from .pending import PendingQueue
from .reconcile import merge_for_display

logger = logging.getLogger(__name__)

LEVEL_SUCCESS = "success"
LEVEL_WARNING = "warning"
LEVEL_ERROR = "error"

# Seconds before a timed message disappears; None = stays until dismissed.
SUCCESS_TIMEOUT = 1.5
ERROR_TIMEOUT = 3.0


@dataclass
class StatusMessage:
    text: str
    level: str = LEVEL_SUCCESS
    timeout: Optional[float] = SUCCESS_TIMEOUT
    record: Any = None

    @property
    def ok(self) -> bool:
        return self.level != LEVEL_ERROR


def _inline(exc: StationeryError) -> StatusMessage:
    return StatusMessage(str(exc), LEVEL_ERROR, timeout=None)


def _timed(text: str, level: str = LEVEL_ERROR, record: Any = None) -> StatusMessage:
    return StatusMessage(text, level, timeout=ERROR_TIMEOUT, record=record)


class StudentDesk:
    """Issues items to students and keeps their transaction history current."""

    def __init__(
        self,
        api: StationeryAPI,
        queue: Optional[PendingQueue] = None,
        cache: Optional[TransactionCache] = None,
    ):
        self.api = api
        self.queue = queue if queue is not None else PendingQueue()
        self.cache = cache if cache is not None else TransactionCache()
        self.saving = False
        self.updating = False

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def history(self, student: Student, force: bool = False) -> StatusMessage:
        """Queued and confirmed transactions of *student*, newest first."""
        queued = self.queue.for_student(student.id)
        stale = self.cache.get(student.id) or []
        try:
            confirmed = self.cache.fetch(student.id, self.api.list_student_transactions, force=force)
        except ApiError as exc:
            return _timed(
                f"Could not load transactions: {exc}",
                record=merge_for_display(stale, queued),
            )
        return StatusMessage("", LEVEL_SUCCESS, timeout=None, record=merge_for_display(confirmed, queued))

    # ------------------------------------------------------------------
    # Saving a draft
    # ------------------------------------------------------------------

    def save_draft(
        self,
        draft: TransactionDraft,
        payment_method: str = "cash",
        is_paid: bool = False,
        remarks: str = "",
    ) -> StatusMessage:
        """
        Submit *draft*.  When the backend cannot be reached the transaction
        is queued locally and shown as pending until a synced copy appears.
        """
        if self.saving:
            return StatusMessage("A save is already in progress", LEVEL_WARNING, timeout=ERROR_TIMEOUT)
        try:
            payload = draft.build_payload(payment_method, is_paid, remarks)
        except DraftValidationError as exc:
            return _inline(exc)

        self.saving = True
        try:
            try:
                transaction = self.api.create_transaction(payload)
            except ApiError as exc:
                if exc.status_code is not None:
                    return _timed(str(exc) or "Failed to save transaction")
                try:
                    entry = self.queue.enqueue(payload)
                except OSError as save_exc:
                    logger.error("Could not queue transaction locally: %s", save_exc)
                    return _timed("Offline, and the transaction could not be stored locally")
                draft.clear()
                return _timed(
                    "Offline: transaction saved locally and will sync when the connection returns",
                    LEVEL_WARNING,
                    record=entry,
                )

            self.cache.invalidate(draft.student.id)
            message = StatusMessage("Transaction saved successfully!", record=transaction)
            try:
                draft.student = self._record_received(draft)
            except ApiError as exc:
                logger.warning("Transaction %s saved but student refresh failed: %s", transaction.id, exc)
                message = _timed(
                    "Transaction saved, but the student record could not be refreshed",
                    LEVEL_WARNING,
                    record=transaction,
                )
            draft.clear()
            return message
        finally:
            self.saving = False

    def _record_received(self, draft: TransactionDraft) -> Student:
        """Flag mapped kit items as received, then read the student back."""
        student = draft.student
        keys = draft.mapped_item_keys()
        if keys:
            items = apply_received(student.items, keys)
            if items != student.items:
                self.api.update_student_items(student, items)
        return self.api.get_student(student.course, student.id)

    # ------------------------------------------------------------------
    # Updating saved transactions
    # ------------------------------------------------------------------

    def mark_component_taken(
        self,
        student: Student,
        transaction: Transaction,
        line_item: LineItem,
        component: SetComponent,
    ) -> StatusMessage:
        """Hand out one component of a set; local state changes only after the server agrees."""
        try:
            update = mark_component_taken(transaction, line_item, component)
        except IdentifierError as exc:
            return _inline(exc)
        return self._send_update(
            student, transaction, update, f"{component.name or 'Component'} marked as taken"
        )

    def set_paid(self, student: Student, transaction: Transaction, is_paid: bool) -> StatusMessage:
        try:
            update = paid_status_update(transaction, is_paid)
        except IdentifierError as exc:
            return _inline(exc)
        return self._send_update(
            student, transaction, update, "Marked as paid" if is_paid else "Marked as unpaid"
        )

    def _send_update(self, student, transaction, update, success_text) -> StatusMessage:
        if self.updating:
            return StatusMessage("An update is already in progress", LEVEL_WARNING, timeout=ERROR_TIMEOUT)
        self.updating = True
        try:
            try:
                self.api.update_transaction(transaction.id, update)
            except ApiError as exc:
                return _timed(f"Update failed: {exc}")
            try:
                refreshed = self.cache.fetch(student.id, self.api.list_student_transactions, force=True)
            except ApiError as exc:
                logger.warning("Updated transaction %s but re-fetch failed: %s", transaction.id, exc)
                return _timed(f"{success_text}; refresh failed", LEVEL_WARNING)
            queued = self.queue.for_student(student.id)
            return StatusMessage(success_text, record=merge_for_display(refreshed, queued))
        finally:
            self.updating = False
