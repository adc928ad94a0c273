"""
Sale Entry Repository

Reads and writes canonical sale entries through EntryRef. The channel named
by the reference decides which table is used.
"""

from collections import defaultdict

from .channels import get_channel
from .models import EntryRef, SaleEntry
from .store import RecordStore

PAID_DEFAULTS = {"frontend_paid": False, "backend_paid": False}


class EntryRepository:
    """Channel-dispatching access to sale entries."""

    def __init__(self, store: RecordStore):
        self.store = store

    def upsert(self, channel_name: str, records: list[dict]) -> dict[tuple, EntryRef]:
        """
        Upsert entry records keyed by the channel's identity key.

        Settlement flags are only set on insert, so existing paid flags
        survive re-runs. Returns identity key -> EntryRef.
        """
        channel = get_channel(channel_name)
        unique = {channel.entry_key(r): r for r in records}
        if not unique:
            return {}
        stored = self.store.upsert(
            channel.entry_table,
            list(unique.values()),
            on_conflict=channel.entry_key_fields,
            insert_defaults=PAID_DEFAULTS,
        )
        return {channel.entry_key(r): EntryRef(channel.name, r["id"]) for r in stored}

    def get(self, ref: EntryRef) -> SaleEntry | None:
        row = self.store.get(get_channel(ref.channel).entry_table, ref.entry_id)
        return SaleEntry.from_dict(row, ref.channel) if row else None

    def load(self, refs: list[EntryRef]) -> dict[EntryRef, SaleEntry]:
        """Load many entries, one query per channel."""
        result = {}
        for channel_name, ids in self._group(refs).items():
            table = get_channel(channel_name).entry_table
            for row in self.store.select(table, {"id": ids}):
                entry = SaleEntry.from_dict(row, channel_name)
                result[entry.ref] = entry
        return result

    def set_paid(self, refs: list[EntryRef], dimension: str, value: bool) -> None:
        for channel_name, ids in self._group(refs).items():
            table = get_channel(channel_name).entry_table
            self.store.update(table, {f"{dimension}_paid": value}, {"id": ids})

    def all(self, channel_name: str) -> list[SaleEntry]:
        table = get_channel(channel_name).entry_table
        return [SaleEntry.from_dict(r, channel_name) for r in self.store.select(table)]

    @staticmethod
    def _group(refs: list[EntryRef]) -> dict[str, list[str]]:
        grouped = defaultdict(list)
        for ref in refs:
            grouped[ref.channel].append(ref.entry_id)
        return grouped
