"""
Payroll Batch Persistence

Saving drafts, listing batches with their settlement progress, renaming and
deleting.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from . import store as tables
from .entries import EntryRepository
from .models import DIMENSIONS, PayrollBatch, PayrollLine, parse_timestamp, to_decimal
from .settlement import SettlementReconciler, utc_today
from .store import RecordStore
from .validators import RequestValidator

logger = logging.getLogger(__name__)


@dataclass
class BatchSummary:
    """A batch with its settlement progress."""

    batch: PayrollBatch
    line_count: int
    paid_percentage: dict[str, Decimal]
    overdue_entries: int


@dataclass
class AgentEarnings:
    """Personal earnings of one agent for the current month and year."""

    agent_id: str
    year: int
    month: int
    monthly_total: Decimal
    yearly_total: Decimal


class BatchService:
    """Stores and manages payroll batches."""

    def __init__(self, store: RecordStore, settlement: SettlementReconciler | None = None):
        self.store = store
        self.entries = EntryRepository(store)
        self.settlement = settlement or SettlementReconciler(store)
        self.validator = RequestValidator()

    def save(self, draft: PayrollBatch, name: str | None = None) -> PayrollBatch:
        """
        Persist a draft batch and its lines. Lines start unpaid on both dimensions.

        The batch header is written before its lines; a failure in between
        leaves an empty batch, which is safe to delete and re-run.
        """
        batch_name = name if name is not None else draft.name
        self.validator.validate_batch_name(batch_name)

        header = self.store.insert(tables.BATCHES, [{"name": batch_name.strip(), "channel": draft.channel}])[0]
        rows = []
        for line in draft.lines:
            row = line.to_dict()
            row.pop("id")
            row.pop("grand_total")
            row.update(batch_id=header["id"], frontend_is_paid=False, backend_is_paid=False)
            rows.append(row)
        stored = self.store.insert(tables.LINES, rows) if rows else []

        logger.info(f"Saved batch '{header['name']}' ({header['id']}) with {len(stored)} lines")
        return PayrollBatch.from_dict(header, [PayrollLine.from_dict(r) for r in stored])

    def get(self, batch_id: str) -> PayrollBatch:
        row = self.store.get(tables.BATCHES, batch_id)
        if row is None:
            raise ValueError(f"Payroll batch not found: {batch_id}")
        return PayrollBatch.from_dict(row)

    def list_batches(self, now: datetime | date | None = None) -> list[BatchSummary]:
        """All batches, newest first, with paid percentages and overdue counts."""
        batches = [PayrollBatch.from_dict(r) for r in self.store.select(tables.BATCHES)]
        batches.sort(key=lambda b: b.created_at.timestamp() if b.created_at else 0, reverse=True)
        return [self._summarize(batch, now) for batch in batches]

    def rename(self, batch_id: str, name: str) -> PayrollBatch:
        self.validator.validate_batch_name(name)
        self.get(batch_id)
        rows = self.store.update(tables.BATCHES, {"name": name.strip()}, {"id": batch_id})
        return PayrollBatch.from_dict(rows[0])

    def delete(self, batch_id: str) -> None:
        """Delete a batch: its lines first, then the header."""
        self.get(batch_id)
        removed = self.store.delete(tables.LINES, {"batch_id": batch_id})
        self.store.delete(tables.BATCHES, {"id": batch_id})
        logger.info(f"Deleted batch {batch_id} and {removed} lines")

    def agent_earnings(self, agent_id: str, now: datetime | date | None = None) -> AgentEarnings:
        """
        Sum the personal totals of an agent's payroll lines created in the
        month and year of `now` (UTC, default today).
        """
        today = utc_today(now)
        monthly = yearly = Decimal("0")
        for row in self.store.select(tables.LINES, {"agent_id": agent_id}):
            created = parse_timestamp(row.get("created_at"))
            if created is None or created.year != today.year:
                continue
            amount = to_decimal(row.get("personal_total"))
            yearly += amount
            if created.month == today.month:
                monthly += amount
        return AgentEarnings(
            agent_id=agent_id, year=today.year, month=today.month, monthly_total=monthly, yearly_total=yearly
        )

    def _summarize(self, batch: PayrollBatch, now) -> BatchSummary:
        lines = [PayrollLine.from_dict(r) for r in self.store.select(tables.LINES, {"batch_id": batch.id})]
        paid = {d: self._paid_percentage(lines, d) for d in DIMENSIONS}

        entries = self.entries.load([ref for line in lines for ref in line.entry_refs()])
        overdue = sum(1 for e in entries.values() if self.settlement.is_overdue(e, now))
        return BatchSummary(batch=batch, line_count=len(lines), paid_percentage=paid, overdue_entries=overdue)

    @staticmethod
    def _paid_percentage(lines: list[PayrollLine], dimension: str) -> Decimal:
        if not lines:
            return Decimal("0")
        paid = sum(1 for line in lines if line.is_paid(dimension))
        pct = Decimal(paid) * Decimal("100") / Decimal(len(lines))
        return pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
