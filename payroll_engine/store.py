"""
Record Store

The engine talks to persistence through a small table-oriented interface:
select / get / insert / update / delete / upsert over plain dict records.
Each call is atomic on its own; there are no cross-call transactions.

InMemoryRecordStore is the reference implementation used by the HTTP entry
points and the test suite.
"""

import copy
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable


class RecordStoreError(RuntimeError):
    """Raised when the underlying store cannot complete a read or write."""


def _matches(record: dict, filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    for key, expected in filters.items():
        value = record.get(key)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class RecordStore(ABC):
    """Abstract table-oriented record store.

    Filters are equality matches on column values; a list/tuple/set value
    means "column value is one of these".
    """

    @abstractmethod
    def select(self, table: str, filters: dict[str, Any] | None = None) -> list[dict]:
        """Return copies of all records in `table` matching `filters`."""

    @abstractmethod
    def insert(self, table: str, rows: Iterable[dict]) -> list[dict]:
        """Insert rows, assigning ids where missing. Returns the stored rows."""

    @abstractmethod
    def update(self, table: str, values: dict, filters: dict[str, Any]) -> list[dict]:
        """Apply `values` to every record matching `filters`. Returns updated rows."""

    @abstractmethod
    def delete(self, table: str, filters: dict[str, Any]) -> int:
        """Delete records matching `filters`. Returns the number deleted."""

    @abstractmethod
    def upsert(
        self,
        table: str,
        rows: Iterable[dict],
        on_conflict: tuple[str, ...],
        insert_defaults: dict | None = None,
    ) -> list[dict]:
        """
        Insert or update rows keyed by the `on_conflict` columns.

        Existing records only receive the columns present in the row, so
        columns the caller does not send (for example settlement flags) are
        never overwritten. `insert_defaults` fill missing columns on insert only.
        """

    def get(self, table: str, record_id: str) -> dict | None:
        rows = self.select(table, {"id": record_id})
        return rows[0] if rows else None


class InMemoryRecordStore(RecordStore):
    """Dict-backed record store. Returns deep copies so callers never share state.

    One lock guards all tables, so each call is atomic when the store is
    shared between request threads.
    """

    def __init__(self):
        self._tables: dict[str, dict[str, dict]] = {}
        self._lock = threading.RLock()

    def _table(self, name: str) -> dict[str, dict]:
        return self._tables.setdefault(name, {})

    @staticmethod
    def _new_record(row: dict) -> dict:
        record = copy.deepcopy(row)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        return record

    def select(self, table: str, filters: dict[str, Any] | None = None) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._table(table).values() if _matches(r, filters)]

    def insert(self, table: str, rows: Iterable[dict]) -> list[dict]:
        with self._lock:
            records = self._table(table)
            new_records = [self._new_record(row) for row in rows]
            seen = set()
            for record in new_records:
                if record["id"] in records or record["id"] in seen:
                    raise RecordStoreError(f"Duplicate id {record['id']} in table {table}")
                seen.add(record["id"])
            for record in new_records:
                records[record["id"]] = record
            return [copy.deepcopy(r) for r in new_records]

    def update(self, table: str, values: dict, filters: dict[str, Any]) -> list[dict]:
        with self._lock:
            updated = []
            for record in self._table(table).values():
                if _matches(record, filters):
                    record.update(copy.deepcopy(values))
                    updated.append(copy.deepcopy(record))
            return updated

    def delete(self, table: str, filters: dict[str, Any]) -> int:
        with self._lock:
            records = self._table(table)
            doomed = [key for key, r in records.items() if _matches(r, filters)]
            for key in doomed:
                del records[key]
            return len(doomed)

    def upsert(
        self,
        table: str,
        rows: Iterable[dict],
        on_conflict: tuple[str, ...],
        insert_defaults: dict | None = None,
    ) -> list[dict]:
        with self._lock:
            records = self._table(table)
            index = {tuple(r.get(c) for c in on_conflict): r for r in records.values()}
            result = []
            for row in rows:
                key = tuple(row.get(c) for c in on_conflict)
                existing = index.get(key)
                if existing is not None:
                    existing.update({k: copy.deepcopy(v) for k, v in row.items() if k != "id"})
                    result.append(copy.deepcopy(existing))
                    continue
                record = self._new_record({**(insert_defaults or {}), **row})
                records[record["id"]] = record
                index[key] = record
                result.append(copy.deepcopy(record))
            return result


# =============================================================================
# TABLE NAMES
# =============================================================================

AGENTS = "agents"
AGENT_MANAGERS = "agent_managers"
PLANS = "plans"
PAYSCALES = "payscales"
PAYSCALE_RATES = "payscale_plan_commissions"
DATE_RANGES = "date_ranges"  # owner_kind is "payscale" or "override"
DATE_RANGE_RATES = "date_range_plan_commissions"
OVERRIDES = "manager_agent_overrides"
BATCHES = "payroll_batches"
LINES = "payroll_lines"
ADJUSTMENTS = "adjustments"
