"""
Payroll Service

Dict-in / dict-out facade over the engine, shared by the Flask app and the
Lambda handler.
"""

from typing import Any, Dict

from .adjustments import AdjustmentService
from .batches import BatchService
from .models import EntryRef
from .output import OutputBuilder
from .processor import ReconciliationProcessor
from .settlement import SettlementReconciler
from .store import InMemoryRecordStore, RecordStore


class PayrollService:
    """Wires the engine components around one record store."""

    def __init__(self, store: RecordStore | None = None):
        self.store = store or InMemoryRecordStore()
        self.processor = ReconciliationProcessor(self.store)
        self.adjustments = AdjustmentService(self.store)
        self.settlement = SettlementReconciler(self.store, self.adjustments)
        self.batches = BatchService(self.store, self.settlement)
        self.output = OutputBuilder(self.settlement)

    def reconcile_from_dict(self, channel: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Reconcile extracts and, unless dry_run is set, save the batch.

        Expected body: {"extracts": {...}, "batch_name": "...", "dry_run": false}
        """
        batch_name = data.get("batch_name") or ""
        dry_run = bool(data.get("dry_run", False))
        if not dry_run:
            self.batches.validator.validate_batch_name(batch_name)

        draft = self.processor.reconcile(channel, data.get("extracts"), batch_name)
        if dry_run:
            return self.output.build_batch(draft)

        saved = self.batches.save(draft, batch_name)
        result = self.output.build_batch(saved)
        result["matched_rows"] = draft.matched_rows
        result["skipped_rows"] = draft.skipped_rows
        return result

    def list_batches(self) -> list[Dict[str, Any]]:
        return [self.output.build_summary(s) for s in self.batches.list_batches()]

    def load_batch(self, batch_id: str) -> Dict[str, Any]:
        """Batch with its lines and entries; repairs line flags on the way."""
        batch = self.batches.get(batch_id)
        lines, entries = self.settlement.load_lines(batch_id)
        output = self.output.build_batch(batch)
        output["lines"] = [self.output.build_line(line, entries) for line in lines]
        return output

    def rename_batch(self, batch_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.output.build_batch(self.batches.rename(batch_id, data.get("batch_name")))

    def delete_batch(self, batch_id: str) -> None:
        self.batches.delete(batch_id)

    def agent_earnings(self, agent_id: str) -> Dict[str, Any]:
        """Personal earnings for the current month and year."""
        return self.output.build_earnings(self.batches.agent_earnings(agent_id))

    def toggle_line_from_dict(self, line_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        line = self.settlement.toggle_line(line_id, data.get("dimension"))
        return self.output.build_line(line)

    def toggle_entry_from_dict(self, line_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        entry = data.get("entry")
        if not isinstance(entry, dict):
            raise ValueError("entry is required as {'kind': ..., 'id': ...}")
        line = self.settlement.toggle_entry(line_id, EntryRef.from_dict(entry), data.get("dimension"))
        return self.output.build_line(line)

    def list_adjustments(self, agent_id: str | None = None) -> list[Dict[str, Any]]:
        return [self.output.build_adjustment(a) for a in self.adjustments.list_adjustments(agent_id=agent_id)]

    def create_adjustment_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data.get("agent_id"):
            raise ValueError("agent_id is required")
        adjustment = self.adjustments.create(
            agent_id=data["agent_id"],
            kind=data.get("kind", "deduction"),
            amount=data.get("amount", 0),
            reason=data.get("reason", ""),
            payroll_line_id=data.get("payroll_line_id"),
        )
        return self.output.build_adjustment(adjustment)

    def complete_adjustment(self, adjustment_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        adjustment = self.adjustments.complete(adjustment_id, data.get("payroll_line_id"))
        return self.output.build_adjustment(adjustment)

    def reopen_adjustment(self, adjustment_id: str) -> Dict[str, Any]:
        return self.output.build_adjustment(self.adjustments.reopen(adjustment_id))
