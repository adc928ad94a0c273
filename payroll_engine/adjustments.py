"""
Deductions and Reimbursements

Adjustments are created by users against an agent and are completed either
manually or automatically when the payroll line they are linked to has its
frontend paid.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from . import store as tables
from .models import AdjustmentRecord, PayrollLine, to_decimal
from .store import RecordStore
from .validators import RequestValidator

logger = logging.getLogger(__name__)


class AdjustmentService:
    """Lifecycle of AdjustmentRecords."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.validator = RequestValidator()

    def create(
        self,
        agent_id: str,
        kind: str,
        amount,
        reason: str = "",
        payroll_line_id: str | None = None,
    ) -> AdjustmentRecord:
        value = to_decimal(amount)
        self.validator.validate_adjustment(kind, value)
        row = {
            "agent_id": agent_id,
            "kind": kind,
            "amount": value,
            "reason": reason or "",
            "payroll_line_id": payroll_line_id,
            "is_completed": False,
            "completed_at": None,
        }
        return AdjustmentRecord.from_dict(self.store.insert(tables.ADJUSTMENTS, [row])[0])

    def update(self, adjustment_id: str, kind: str, amount, reason: str = "") -> AdjustmentRecord:
        value = to_decimal(amount)
        self.validator.validate_adjustment(kind, value)
        self.get(adjustment_id)
        rows = self.store.update(
            tables.ADJUSTMENTS,
            {"kind": kind, "amount": value, "reason": reason or ""},
            {"id": adjustment_id},
        )
        return AdjustmentRecord.from_dict(rows[0])

    def get(self, adjustment_id: str) -> AdjustmentRecord:
        row = self.store.get(tables.ADJUSTMENTS, adjustment_id)
        if row is None:
            raise ValueError(f"Adjustment not found: {adjustment_id}")
        return AdjustmentRecord.from_dict(row)

    def list_adjustments(self, agent_id: str | None = None, is_completed: bool | None = None) -> list[AdjustmentRecord]:
        filters = {}
        if agent_id is not None:
            filters["agent_id"] = agent_id
        if is_completed is not None:
            filters["is_completed"] = is_completed
        rows = self.store.select(tables.ADJUSTMENTS, filters)
        rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return [AdjustmentRecord.from_dict(r) for r in rows]

    def for_line(self, line_id: str) -> list[AdjustmentRecord]:
        return [AdjustmentRecord.from_dict(r) for r in self.store.select(tables.ADJUSTMENTS, {"payroll_line_id": line_id})]

    def complete(
        self, adjustment_id: str, payroll_line_id: str | None = None, now: datetime | None = None
    ) -> AdjustmentRecord:
        """Mark an adjustment done, optionally settling it against a payroll line."""
        current = self.get(adjustment_id)
        stamp = now or datetime.now(timezone.utc)
        line_id = payroll_line_id or current.payroll_line_id
        rows = self.store.update(
            tables.ADJUSTMENTS,
            {"is_completed": True, "completed_at": stamp.isoformat(), "payroll_line_id": line_id},
            {"id": adjustment_id},
        )
        return AdjustmentRecord.from_dict(rows[0])

    def reopen(self, adjustment_id: str) -> AdjustmentRecord:
        """Re-open a completed adjustment and detach it from its line."""
        self.get(adjustment_id)
        rows = self.store.update(
            tables.ADJUSTMENTS,
            {"is_completed": False, "completed_at": None, "payroll_line_id": None},
            {"id": adjustment_id},
        )
        return AdjustmentRecord.from_dict(rows[0])

    def delete(self, adjustment_id: str) -> None:
        if not self.store.delete(tables.ADJUSTMENTS, {"id": adjustment_id}):
            raise ValueError(f"Adjustment not found: {adjustment_id}")

    def complete_open_for_line(self, line_id: str, now: datetime | None = None) -> list[AdjustmentRecord]:
        """Complete every open adjustment linked to `line_id`."""
        stamp = now or datetime.now(timezone.utc)
        rows = self.store.update(
            tables.ADJUSTMENTS,
            {"is_completed": True, "completed_at": stamp.isoformat()},
            {"payroll_line_id": line_id, "is_completed": False},
        )
        if rows:
            logger.info(f"Auto-completed {len(rows)} adjustment(s) linked to line {line_id}")
        return [AdjustmentRecord.from_dict(r) for r in rows]

    def net_total(self, line: PayrollLine) -> Decimal:
        """Line grand total plus the signed amounts of its linked adjustments."""
        return line.grand_total + sum((a.signed_amount for a in self.for_line(line.id)), Decimal("0"))
