"""
Output Builder

Renders engine results as JSON-ready dicts for the API layers.
Money is displayed with two decimals.
"""

from datetime import date, datetime
from decimal import Decimal

from .batches import AgentEarnings, BatchSummary
from .models import AdjustmentRecord, EntryRef, LineDetail, PayrollBatch, PayrollLine, SaleEntry
from .settlement import SettlementReconciler


def to_money(value: Decimal | None) -> float | None:
    """Convert Decimal to float with 2 decimal places."""
    if value is None:
        return None
    return round(float(value), 2)


def _percent(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


class OutputBuilder:
    """Builds API responses."""

    def __init__(self, settlement: SettlementReconciler | None = None):
        self.settlement = settlement

    def build_batch(self, batch: PayrollBatch) -> dict:
        """Batch header plus lines; drafts also report how many rows were used."""
        output = {
            "id": batch.id,
            "name": batch.name,
            "channel": batch.channel,
            "created_at": _iso(batch.created_at),
            "is_draft": batch.is_draft,
            "lines": [self.build_line(line) for line in batch.lines],
        }
        if batch.is_draft:
            output["matched_rows"] = batch.matched_rows
            output["skipped_rows"] = batch.skipped_rows
        return output

    def build_line(
        self,
        line: PayrollLine,
        entries: dict[EntryRef, SaleEntry] | None = None,
        now: datetime | date | None = None,
    ) -> dict:
        return {
            "id": line.id,
            "batch_id": line.batch_id,
            "agent_id": line.agent_id,
            "name": line.name,
            "channel": line.channel,
            "accounts": line.accounts,
            "personal_total": to_money(line.personal_total),
            "manager_total": to_money(line.manager_total),
            "grand_total": to_money(line.grand_total),
            "upfront_percentage": _percent(line.upfront_percentage),
            "backend_percentage": _percent(line.backend_percentage),
            "upfront_value": to_money(line.upfront_value),
            "backend_value": to_money(line.backend_value),
            "frontend_is_paid": line.frontend_is_paid,
            "backend_is_paid": line.backend_is_paid,
            "details": [self._build_detail(d, entries, now) for d in line.details],
        }

    def _build_detail(
        self,
        detail: LineDetail,
        entries: dict[EntryRef, SaleEntry] | None,
        now: datetime | date | None,
    ) -> dict:
        output = {
            "entry": detail.entry.to_dict(),
            "personal_commission": to_money(detail.personal_commission),
            "is_upgrade": detail.is_upgrade,
        }
        entry = (entries or {}).get(detail.entry)
        if entry is not None:
            output["sale"] = self.build_entry(entry, now)
        return output

    def build_entry(self, entry: SaleEntry, now: datetime | date | None = None) -> dict:
        output = {
            "id": entry.id,
            "channel": entry.channel,
            "order_number": entry.order_number,
            "plan_name": entry.plan_name,
            "seller": entry.seller,
            "customer_name": entry.customer_name,
            "submission_date": _iso(entry.submission_date),
            "install_date": _iso(entry.install_date),
            "frontend_paid": entry.frontend_paid,
            "backend_paid": entry.backend_paid,
        }
        if self.settlement is not None:
            output["is_overdue"] = self.settlement.is_overdue(entry, now)
            output["overdue_days"] = self.settlement.overdue_days(entry, now)
        return output

    def build_summary(self, summary: BatchSummary) -> dict:
        batch = summary.batch
        return {
            "id": batch.id,
            "name": batch.name,
            "channel": batch.channel,
            "created_at": _iso(batch.created_at),
            "line_count": summary.line_count,
            "paid_percentage": {d: float(p) for d, p in summary.paid_percentage.items()},
            "overdue_entries": summary.overdue_entries,
        }

    def build_earnings(self, earnings: AgentEarnings) -> dict:
        return {
            "agent_id": earnings.agent_id,
            "year": earnings.year,
            "month": earnings.month,
            "monthly_total": to_money(earnings.monthly_total),
            "yearly_total": to_money(earnings.yearly_total),
        }

    def build_adjustment(self, adjustment: AdjustmentRecord) -> dict:
        output = adjustment.to_dict()
        output["amount"] = to_money(adjustment.amount)
        output["signed_amount"] = to_money(adjustment.signed_amount)
        return output
