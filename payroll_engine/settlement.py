"""
Settlement Reconciler

Keeps the paid flags of payroll lines consistent with the sale entries they
summarize, for the frontend and backend dimensions independently.

Write order: entry flags first, then the line flag, then linked adjustments.
A failure part-way leaves a line reading "unpaid" rather than falsely "paid".
"""

import logging
from datetime import date, datetime, timezone

from . import store as tables
from .adjustments import AdjustmentService
from .entries import EntryRepository
from .models import FRONTEND, DIMENSIONS, EntryRef, PayrollLine, SaleEntry
from .store import RecordStore
from .validators import RequestValidator

logger = logging.getLogger(__name__)


def utc_today(now: datetime | date | None) -> date:
    if now is None:
        return datetime.now(timezone.utc).date()
    if isinstance(now, datetime):
        return now.date()
    return now


class SettlementReconciler:
    """Paid/unpaid state machine over lines, entries and adjustments."""

    OVERDUE_AFTER_DAYS = 90

    def __init__(self, store: RecordStore, adjustments: AdjustmentService | None = None):
        self.store = store
        self.entries = EntryRepository(store)
        self.adjustments = adjustments or AdjustmentService(store)
        self.validator = RequestValidator()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def get_line(self, line_id: str) -> PayrollLine:
        row = self.store.get(tables.LINES, line_id)
        if row is None:
            raise ValueError(f"Payroll line not found: {line_id}")
        return PayrollLine.from_dict(row)

    def load_lines(self, batch_id: str) -> tuple[list[PayrollLine], dict[EntryRef, SaleEntry]]:
        """
        Load a batch's lines (sorted by name) and the entries they reference.

        Any line whose entries are all paid for a dimension while its own flag
        says unpaid is promoted and written back. Lines without details are
        never promoted.
        """
        lines = [PayrollLine.from_dict(r) for r in self.store.select(tables.LINES, {"batch_id": batch_id})]
        lines.sort(key=lambda line: line.name or "")
        entries = self.entries.load([ref for line in lines for ref in line.entry_refs()])

        for line in lines:
            for dimension in DIMENSIONS:
                if line.is_paid(dimension) or not line.details:
                    continue
                if self._all_paid(line, entries, dimension):
                    setattr(line, f"{dimension}_is_paid", True)
                    self.store.update(tables.LINES, {f"{dimension}_is_paid": True}, {"id": line.id})
                    logger.info(f"Promoted line {line.id} to {dimension} paid on load")
        return lines, entries

    # -------------------------------------------------------------------------
    # Toggles
    # -------------------------------------------------------------------------

    def toggle_line(self, line_id: str, dimension: str, now: datetime | None = None) -> PayrollLine:
        """
        Flip a line's paid flag and write the same value onto its entries.

        Paying the frontend also completes the open adjustments linked to
        the line. Un-paying never re-opens them.
        """
        self.validator.validate_dimension(dimension)
        line = self.get_line(line_id)
        new_value = not line.is_paid(dimension)

        self.entries.set_paid(line.entry_refs(), dimension, new_value)
        self.store.update(tables.LINES, {f"{dimension}_is_paid": new_value}, {"id": line_id})
        setattr(line, f"{dimension}_is_paid", new_value)

        if new_value and dimension == FRONTEND:
            self.adjustments.complete_open_for_line(line_id, now)

        logger.info(f"Line {line_id} {dimension} set to {'paid' if new_value else 'unpaid'}")
        return line

    def toggle_entry(self, line_id: str, entry_ref: EntryRef, dimension: str) -> PayrollLine:
        """
        Flip one entry's paid flag, then recompute the line flag as the
        conjunction over all of the line's entries (promote or demote).
        """
        self.validator.validate_dimension(dimension)
        line = self.get_line(line_id)
        if entry_ref not in line.entry_refs():
            raise ValueError(f"Entry {entry_ref.entry_id} is not part of payroll line {line_id}")
        entry = self.entries.get(entry_ref)
        if entry is None:
            raise ValueError(f"Sale entry not found: {entry_ref.entry_id}")

        self.entries.set_paid([entry_ref], dimension, not entry.is_paid(dimension))

        entries = self.entries.load(line.entry_refs())
        all_paid = self._all_paid(line, entries, dimension)
        if all_paid != line.is_paid(dimension):
            self.store.update(tables.LINES, {f"{dimension}_is_paid": all_paid}, {"id": line_id})
            setattr(line, f"{dimension}_is_paid", all_paid)
            logger.info(f"Line {line_id} {dimension} recomputed to {'paid' if all_paid else 'unpaid'}")
        return line

    @staticmethod
    def _all_paid(line: PayrollLine, entries: dict[EntryRef, SaleEntry], dimension: str) -> bool:
        # A referenced entry that no longer exists counts as unpaid
        return all(
            ref in entries and entries[ref].is_paid(dimension) for ref in line.entry_refs()
        )

    # -------------------------------------------------------------------------
    # Overdue derivation
    # -------------------------------------------------------------------------

    def elapsed_days(self, entry: SaleEntry, now: datetime | date | None = None) -> int | None:
        if entry.install_date is None:
            return None
        return (utc_today(now) - entry.install_date).days

    def is_overdue(self, entry: SaleEntry, now: datetime | date | None = None) -> bool:
        """Backend unpaid more than 90 days after install."""
        if entry.backend_paid:
            return False
        elapsed = self.elapsed_days(entry, now)
        return elapsed is not None and elapsed > self.OVERDUE_AFTER_DAYS

    def overdue_days(self, entry: SaleEntry, now: datetime | date | None = None) -> int:
        """Days past the 90-day window (0 when not overdue)."""
        if not self.is_overdue(entry, now):
            return 0
        return self.elapsed_days(entry, now) - self.OVERDUE_AFTER_DAYS
